# src/tasker_client/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The upload pipeline and the lifecycle service depend on Protocols instead of
the concrete httpx client. This keeps the backend swappable and makes testing easier.
"""

from typing import Any, Awaitable, Callable, Protocol

from ..tasks.task_models import Submission, TaskSnapshot
from ..uploads.upload_models import PendingFile, UploadContext, UploadGrant

ProgressCallback = Callable[[float], None]
# Raw strategy progress, 0..100 for the bytes of one file.


class GrantIssuer(Protocol):
    """Backend side of upload grants."""

    def request_upload_grant(self, context: UploadContext, file: PendingFile) -> Awaitable[UploadGrant]: ...


class TransferStrategy(Protocol):
    """One way of pushing a file's bytes to a granted destination."""

    name: str

    def transfer(
            self,
            grant: UploadGrant,
            file: PendingFile,
            on_progress: ProgressCallback,
    ) -> Awaitable[None]: ...


class MarketplaceBackend(GrantIssuer, Protocol):
    # Snapshots
    def get_task_snapshot(self, task_id: str) -> Awaitable[TaskSnapshot]: ...

    # Tasker transitions
    def apply_to_task(self, task_id: str) -> Awaitable[None]: ...
    def bid_on_task(self, task_id: str, *, amount: str, timeline: str, message: str = "") -> Awaitable[None]: ...
    def accept_assignment(self, task_id: str) -> Awaitable[None]: ...
    def reject_assignment(self, task_id: str) -> Awaitable[None]: ...
    def mark_done(self, task_id: str) -> Awaitable[None]: ...

    # Submissions
    def create_submission(self, task_id: str, *, message: str, file_keys: list[str]) -> Awaitable[Submission]: ...
    def list_submissions(self, task_id: str) -> Awaitable[list[Submission]]: ...
    def delete_submission(self, submission_id: str) -> Awaitable[None]: ...
    def review_submission(self, submission_id: str, *, status: str, feedback: str) -> Awaitable[None]: ...
    def get_preview_url(self, submission_id: str, *, file_key: str, status: str) -> Awaitable[str]: ...

    # Disputes
    def create_dispute(
            self,
            task_id: str,
            *,
            reason: str,
            details: str = "",
            evidence_url: str | None = None,
    ) -> Awaitable[dict[str, Any]]: ...
