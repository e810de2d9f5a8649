# src/tasker_client/uploads/coordinator.py

from __future__ import annotations

"""
Upload coordinator.

Sequences grant -> transfer for an ordered list of files, one file at a time:
- files never upload concurrently (the fallback strategy may hold a whole file in memory),
- a failed file is recorded and skipped, the batch goes on,
- per-file progress: 0 before the grant, 30 once granted, 30..100 while bytes flow,
  -1 when the file ultimately failed.

The caller creates the Submission from `file_keys`; an empty result raises AllUploadsFailed.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace

from ..errors import AllUploadsFailed, GrantError, TransferError
from .grant_client import UploadGrantClient
from .object_store import ObjectStoreUploader, rescale_progress
from .upload_models import (
    FAILED_PROGRESS,
    GRANT_PROGRESS,
    PendingFile,
    UploadBatchResult,
    UploadContext,
    UploadOutcome,
    UploadState,
)

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[int, UploadOutcome], None]


class UploadCoordinator:
    def __init__(
            self,
            grants: UploadGrantClient,
            uploader: ObjectStoreUploader,
            *,
            on_outcome: OutcomeCallback | None = None,
    ) -> None:
        self._grants = grants
        self._uploader = uploader
        self._on_outcome = on_outcome

    def _publish(self, index: int, outcome: UploadOutcome) -> None:
        if self._on_outcome is None:
            return
        try:
            # hand out a copy: outcomes are only ever mutated here
            self._on_outcome(index, replace(outcome))
        except Exception:
            logger.exception("on_outcome callback failed index=%s", index)

    def _set_progress(self, index: int, outcome: UploadOutcome, percent: int) -> None:
        # fallback restarts from 0 raw; never let the bar move backwards
        if percent <= outcome.progress_percent:
            return
        outcome.progress_percent = min(100, percent)
        self._publish(index, outcome)

    def _fail(self, index: int, outcome: UploadOutcome, result: UploadBatchResult, name: str) -> None:
        outcome.state = UploadState.FAILED
        outcome.progress_percent = FAILED_PROGRESS
        result.failed_names.append(name)
        self._publish(index, outcome)

    async def submit_files(
            self,
            files: Sequence[PendingFile],
            context: UploadContext,
    ) -> UploadBatchResult:
        """
        Upload `files` in order. Returns succeeded keys (in input order) and failed names.

        Invariant: len(file_keys) + len(failed_names) == len(files).
        Raises AllUploadsFailed when nothing succeeded (including an empty input).
        """
        result = UploadBatchResult(outcomes=[UploadOutcome(file_name=f.name) for f in files])

        for index, file in enumerate(files):
            outcome = result.outcomes[index]
            outcome.state = UploadState.UPLOADING
            outcome.progress_percent = 0
            self._publish(index, outcome)

            try:
                grant = await self._grants.request_grant(context, file)
            except GrantError as e:
                logger.warning("Grant failed for %s: %s", file.name, e)
                self._fail(index, outcome, result, file.name)
                continue

            outcome.file_key = grant.file_key
            self._set_progress(index, outcome, GRANT_PROGRESS)
            logger.info("Got upload grant for %s (%d/%d)", file.name, index + 1, len(files))

            def on_progress(raw: float, _i: int = index, _o: UploadOutcome = outcome) -> None:
                self._set_progress(_i, _o, rescale_progress(raw))

            try:
                used = await self._uploader.upload(grant, file, on_progress)
            except TransferError as e:
                logger.warning("Upload failed for %s: %s", file.name, e)
                self._fail(index, outcome, result, file.name)
                continue

            result.file_keys.append(grant.file_key)
            outcome.state = UploadState.UPLOADED
            outcome.progress_percent = 100
            self._publish(index, outcome)
            logger.info("Uploaded %s via %s strategy", file.name, used)

        if not result.file_keys:
            raise AllUploadsFailed(result.failed_names)

        if result.failed_names:
            logger.info(
                "Batch finished with %d uploaded, %d failed: %s",
                len(result.file_keys),
                len(result.failed_names),
                ", ".join(result.failed_names),
            )
        return result
