# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from task_console.config import Settings


def test_settings_defaults(monkeypatch) -> None:
    for name in ("SERVICE_URL", "POLL_INTERVAL_MS", "RUN_INDICATOR_MS", "DATA_DIR", "CONSOLE_ENABLED"):
        monkeypatch.delenv(f"TASK_CONSOLE_{name}", raising=False)

    settings = Settings.from_env()

    assert settings.service_url == "http://127.0.0.1:7878"
    assert settings.poll_interval_seconds == 2.0
    assert settings.run_indicator_seconds == 1.0
    assert settings.data_dir == Path(".local/task-console")
    assert settings.console_enabled is True


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("TASK_CONSOLE_SERVICE_URL", " http://10.0.0.2:9000 ")
    monkeypatch.setenv("TASK_CONSOLE_POLL_INTERVAL_MS", "500")
    monkeypatch.setenv("TASK_CONSOLE_RUN_INDICATOR_MS", "not-a-number")
    monkeypatch.setenv("TASK_CONSOLE_CONSOLE_ENABLED", "off")

    settings = Settings.from_env()

    assert settings.service_url == "http://10.0.0.2:9000"
    assert settings.poll_interval_ms == 500
    assert settings.run_indicator_ms == 1000
    assert settings.console_enabled is False
