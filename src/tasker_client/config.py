# src/tasker_client/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole client.
- No secrets required at import time (the auth token is optional until a request is made).
- Upload limits live here so the validator and the dispute flow read the same numbers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKER"

MIB = 1024 * 1024

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    console_enabled: bool

    # ---- Backend ----
    backend_url: str
    auth_token: str | None
    actor_id: str | None
    request_timeout_seconds: float

    # ---- Uploads ----
    upload_timeout_seconds: float
    upload_chunk_bytes: int
    grant_ttl_seconds: float

    max_file_bytes: int
    max_evidence_bytes: int
    max_batch_bytes: int
    max_batch_files: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasker").strip() or "tasker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        backend_url = _env(_k("BACKEND_URL"), "http://localhost:8000/api").strip().rstrip("/")
        auth_token = _env_optional(_k("AUTH_TOKEN"))
        actor_id = _env_optional(_k("ACTOR_ID"))
        request_timeout_seconds = _env_float(_k("REQUEST_TIMEOUT_SECONDS"), 10.0)

        upload_timeout_seconds = _env_float(_k("UPLOAD_TIMEOUT_SECONDS"), 120.0)
        # keep chunks >= 1 KiB; tiny chunks only add progress callbacks
        upload_chunk_bytes = max(1024, _env_int(_k("UPLOAD_CHUNK_BYTES"), 64 * 1024))
        grant_ttl_seconds = _env_float(_k("GRANT_TTL_SECONDS"), 900.0)

        max_file_bytes = _env_int(_k("MAX_FILE_MB"), 10) * MIB
        max_evidence_bytes = _env_int(_k("MAX_EVIDENCE_MB"), 5) * MIB
        max_batch_bytes = _env_int(_k("MAX_BATCH_MB"), 50) * MIB
        max_batch_files = _env_int(_k("MAX_BATCH_FILES"), 10)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasker"))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            backend_url=backend_url,
            auth_token=auth_token,
            actor_id=actor_id,
            request_timeout_seconds=request_timeout_seconds,
            upload_timeout_seconds=upload_timeout_seconds,
            upload_chunk_bytes=upload_chunk_bytes,
            grant_ttl_seconds=grant_ttl_seconds,
            max_file_bytes=max_file_bytes,
            max_evidence_bytes=max_evidence_bytes,
            max_batch_bytes=max_batch_bytes,
            max_batch_files=max_batch_files,
            data_dir=data_dir,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
