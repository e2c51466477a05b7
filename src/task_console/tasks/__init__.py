"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Trigger variants, TaskStatus, AppConfig)
- task_store.py: in-memory task list mirrored from the scheduler service
- task_actions.py: command dispatcher (save/remove/switch/run/stop/config)
- task_reconciler.py: polling loop that republishes running/runnable state
- task_editor.py: edit session for one task (naming mode, trigger cache)
- task_list.py: list presenter (optimistic run marker, two-phase delete)
"""
