# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "Program name shown in help and error messages (default: todo).",
    "TODO_LOG_LEVEL": "Console logging level (default: WARNING).",
    "TODO_LOG_TO_FILE": "Also write full DEBUG logs to <data_dir>/todo.log (true/false, default: false).",
    # Paths
    "TODO_DATA_DIR": "Local data directory for the log file (default: .local/todo).",
    "TODO_STORE_PATH": "JSON todo file (default: ./todo.json). The -f/--file flag overrides it.",
    # Locking
    "TODO_LOCK_TIMEOUT": (
        "Seconds to wait for another process to release the todo file "
        "(default: empty = wait forever)."
    ),
}
