"""Local-first persistence.

Layout (FileKeyValueStore, default ~/.floraguard/data/):
    ├── flora_guard_history.json      # HistoryLedger, newest first
    ├── flora_guard_reminders.json    # ReminderRegistry, insertion order
    ├── flora_guard_user.json         # Mocked signed-in identity
    └── notified_<reminder id>.json   # Dispatch marker: last notified day
"""
