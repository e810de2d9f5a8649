# src/tasker_client/uploads/upload_models.py

from __future__ import annotations

import mimetypes
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

# progress value reserved for "this file ultimately failed"; not a percentage
FAILED_PROGRESS = -1

GRANT_PROGRESS = 30


class UploadPurpose(StrEnum):
    WORK_SUBMISSION = "work_submission"
    DISPUTE_EVIDENCE = "dispute_evidence"


class UploadState(StrEnum):
    PENDING = "pending"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class PendingFile:
    """
    A file picked by the user and not yet uploaded.

    `local_handle` is opaque to everything but the transfer strategies:
    a filesystem path, or an in-memory bytes buffer.
    """

    name: str
    local_handle: Path | bytes
    mime_type: str
    size_bytes: int

    @classmethod
    def from_path(cls, path: str | Path, *, mime_type: str | None = None) -> PendingFile:
        p = Path(path).expanduser()
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(
            name=p.name,
            local_handle=p,
            mime_type=mime_type or guessed or "application/octet-stream",
            size_bytes=p.stat().st_size,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, *, mime_type: str = "application/octet-stream") -> PendingFile:
        return cls(name=name, local_handle=bytes(data), mime_type=mime_type, size_bytes=len(data))


@dataclass(slots=True, frozen=True)
class UploadContext:
    """Who the upload is for. Work submissions carry the owning task id."""

    purpose: UploadPurpose
    task_id: str | None = None

    @classmethod
    def for_work(cls, task_id: str) -> UploadContext:
        return cls(purpose=UploadPurpose.WORK_SUBMISSION, task_id=task_id)

    @classmethod
    def for_dispute(cls, task_id: str | None = None) -> UploadContext:
        return cls(purpose=UploadPurpose.DISPUTE_EVIDENCE, task_id=task_id)


@dataclass(slots=True, frozen=True)
class UploadGrant:
    """Short-lived destination + storage key for exactly one file."""

    file_key: str
    destination: str
    expires_at: float
    public_url: str | None = None

    def is_expired(self, now_ts: float | None = None) -> bool:
        now = time.time() if now_ts is None else now_ts
        return now >= self.expires_at


@dataclass(slots=True)
class UploadOutcome:
    """Per-file progress record; mutated only by the UploadCoordinator."""

    file_name: str
    file_key: str | None = None
    state: UploadState = UploadState.PENDING
    progress_percent: int = 0


@dataclass(slots=True)
class UploadBatchResult:
    file_keys: list[str] = field(default_factory=list)
    failed_names: list[str] = field(default_factory=list)
    outcomes: list[UploadOutcome] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.file_keys) and bool(self.failed_names)
