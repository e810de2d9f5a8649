# src/tasker_client/tasks/work_submission.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..core.ports import MarketplaceBackend
from ..errors import SubmissionCreateError, ValidationError
from ..uploads.coordinator import UploadCoordinator
from ..uploads.file_validator import UploadLimits, ValidationResult, validate_files
from ..uploads.upload_models import PendingFile, UploadContext
from .task_models import Submission

logger = logging.getLogger(__name__)

MIN_MESSAGE_CHARS = 10
MAX_MESSAGE_CHARS = 1000


@dataclass(slots=True)
class SubmissionDraft:
    """
    Files and message being composed for one work submission.

    The draft exclusively owns its PendingFiles; every addition goes through the validator.
    """

    limits: UploadLimits = field(default_factory=UploadLimits.for_work)
    files: list[PendingFile] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    def add_files(self, picked: Iterable[PendingFile]) -> ValidationResult:
        result = validate_files(self.files, picked, self.limits)
        self.files.extend(result.accepted)
        self.errors.update(result.rejected)
        return result

    def remove_file(self, index: int) -> PendingFile:
        return self.files.pop(index)

    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    def reset(self) -> None:
        self.files.clear()
        self.errors.clear()


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    submission: Submission
    failed_names: tuple[str, ...] = ()

    @property
    def partial(self) -> bool:
        return bool(self.failed_names)


def validate_submission_form(message: str, files: list[PendingFile]) -> str:
    text = (message or "").strip()
    if not text:
        raise ValidationError("Please describe your submission", field="message")
    if len(text) < MIN_MESSAGE_CHARS:
        raise ValidationError(
            f"Description should be at least {MIN_MESSAGE_CHARS} characters", field="message"
        )
    if len(text) > MAX_MESSAGE_CHARS:
        raise ValidationError(
            f"Description should be at most {MAX_MESSAGE_CHARS} characters", field="message"
        )
    if not files:
        raise ValidationError("Please add at least one file", field="files")
    return text


class WorkSubmitter:
    """
    Upload a draft's files and create the Submission record.

    Partial success is a normal outcome: the submission carries whatever uploaded,
    and `failed_names` tells the caller what was dropped.
    """

    def __init__(self, backend: MarketplaceBackend, coordinator: UploadCoordinator) -> None:
        self._backend = backend
        self._coordinator = coordinator

    async def submit(self, task_id: str, message: str, draft: SubmissionDraft) -> SubmissionResult:
        text = validate_submission_form(message, draft.files)

        # AllUploadsFailed propagates: no submission without at least one file
        batch = await self._coordinator.submit_files(list(draft.files), UploadContext.for_work(task_id))

        try:
            submission = await self._backend.create_submission(
                task_id, message=text, file_keys=list(batch.file_keys)
            )
        except SubmissionCreateError:
            logger.warning("Submission rejected for task=%s after %d upload(s)", task_id, len(batch.file_keys))
            raise

        logger.info(
            "Submitted work for task=%s submission=%s files=%d failed=%d",
            task_id,
            submission.id or "?",
            len(batch.file_keys),
            len(batch.failed_names),
        )
        draft.reset()
        return SubmissionResult(submission=submission, failed_names=tuple(batch.failed_names))
