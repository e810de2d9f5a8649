# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep the auth token in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKER_APP_NAME": "App display name (default: tasker).",
    "TASKER_LOG_LEVEL": "Console logging level (default: INFO).",
    # Connectors
    "TASKER_CONSOLE_ENABLED": "Enable console connector (true/false).",
    # Backend
    "TASKER_BACKEND_URL": "Marketplace API base URL (default: http://localhost:8000/api).",
    "TASKER_AUTH_TOKEN": "Bearer token for the backend (never sent to the object store).",
    "TASKER_ACTOR_ID": "Your user id; decides owner vs tasker actions (required).",
    "TASKER_REQUEST_TIMEOUT_SECONDS": "Backend request timeout (default: 10).",
    # Uploads
    "TASKER_UPLOAD_TIMEOUT_SECONDS": "Object store PUT timeout (default: 120).",
    "TASKER_UPLOAD_CHUNK_BYTES": "Streamed PUT chunk size, min 1024 (default: 65536).",
    "TASKER_GRANT_TTL_SECONDS": "Assumed grant lifetime when the backend sends no expiresAt (default: 900).",
    # Limits
    "TASKER_MAX_FILE_MB": "Per-file limit for work submissions (default: 10).",
    "TASKER_MAX_EVIDENCE_MB": "Per-file limit for dispute evidence (default: 5).",
    "TASKER_MAX_BATCH_MB": "Aggregate limit for one submission (default: 50).",
    "TASKER_MAX_BATCH_FILES": "Max files in one submission (default: 10).",
    # Paths (gitignored)
    "TASKER_DATA_DIR": "Local data directory; logs go to <data_dir>/tasker.log (default: .local/tasker).",
}
