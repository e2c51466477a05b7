# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Keep machine-specific values in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASK_CONSOLE_APP_NAME": "App display name (default: task-console).",
    "TASK_CONSOLE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TASK_CONSOLE_DATA_DIR": "Local data dir for log files (default: .local/task-console).",
    # Scheduler service
    "TASK_CONSOLE_SERVICE_URL": "Base URL of the scheduler service RPC endpoint (default: http://127.0.0.1:7878).",
    # Timings
    "TASK_CONSOLE_POLL_INTERVAL_MS": "Status reconciliation cadence in ms (default: 2000, minimum 100).",
    "TASK_CONSOLE_RUN_INDICATOR_MS": "How long a manual run shows as running before the poll confirms it (default: 1000).",
    # Connectors
    "TASK_CONSOLE_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
}
