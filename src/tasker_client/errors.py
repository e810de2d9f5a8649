# src/tasker_client/errors.py

"""
Error taxonomy.

Recovered locally (only the offending file is dropped):
- ValidationError (pre-network)
- GrantError / TransferError for a single file inside a batch

Fatal for the current attempt:
- SubmissionCreateError (including AllUploadsFailed)

Forces a snapshot re-fetch before anything is re-offered:
- LifecycleConflict
"""

from __future__ import annotations

from typing import Any


class TaskerClientError(Exception):
    """Base class for every error raised by tasker_client."""


class ValidationError(TaskerClientError):
    """Local validation failed; nothing was sent to the backend."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class BackendError(TaskerClientError):
    """The backend answered with an unexpected status, or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GrantError(BackendError):
    """An upload destination could not be acquired for one file."""


class SubmissionCreateError(BackendError):
    """The submission record could not be created."""


class AllUploadsFailed(SubmissionCreateError):
    """Every file in the batch failed; no submission was created."""

    def __init__(self, failed_names: list[str]) -> None:
        super().__init__(f"All file uploads failed ({len(failed_names)} file(s))")
        self.failed_names = list(failed_names)


class LifecycleConflict(BackendError):
    """
    The backend rejected a task transition (stale snapshot, not authorized).

    `view` is filled by the lifecycle service with the freshly re-fetched task view,
    so callers re-offer actions from it instead of from their stale copy.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)
        self.view: Any = None


class TransferError(TaskerClientError):
    """Both the primary and the fallback byte-transfer strategies failed."""

    def __init__(
        self,
        message: str,
        *,
        primary_error: BaseException | None = None,
        fallback_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.primary_error = primary_error
        self.fallback_error = fallback_error
