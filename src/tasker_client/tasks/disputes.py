# src/tasker_client/tasks/disputes.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..core.ports import MarketplaceBackend
from ..errors import GrantError, TransferError, ValidationError
from ..uploads.file_validator import UploadLimits, validate_files
from ..uploads.grant_client import UploadGrantClient
from ..uploads.object_store import ObjectStoreUploader
from ..uploads.upload_models import PendingFile, UploadContext

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DisputeResult:
    record: dict[str, Any]
    evidence_url: str | None
    evidence_dropped: bool = False


class DisputeReporter:
    """
    File a dispute about a task, with at most one small evidence file.

    Evidence goes through the same grant -> primary/fallback pipeline as work files.
    """

    def __init__(
        self,
        backend: MarketplaceBackend,
        grants: UploadGrantClient,
        uploader: ObjectStoreUploader,
        *,
        limits: UploadLimits | None = None,
    ) -> None:
        self._backend = backend
        self._grants = grants
        self._uploader = uploader
        self._limits = limits or UploadLimits.for_dispute()

    def check_evidence(self, evidence: PendingFile) -> None:
        result = validate_files([], [evidence], self._limits)
        if evidence.name in result.rejected:
            raise ValidationError(result.rejected[evidence.name], field="evidence")

    async def _upload_evidence(self, task_id: str, evidence: PendingFile) -> str:
        grant = await self._grants.request_grant(UploadContext.for_dispute(task_id), evidence)
        await self._uploader.upload(grant, evidence, lambda _raw: None)
        return grant.public_url or grant.file_key

    async def raise_dispute(
        self,
        task_id: str,
        *,
        reason: str,
        details: str = "",
        evidence: PendingFile | None = None,
        submit_without_evidence: bool = False,
    ) -> DisputeResult:
        """
        Upload evidence (if any), then create the dispute.

        When the evidence upload fails, the dispute is filed without it only if
        `submit_without_evidence` is set; otherwise the GrantError/TransferError propagates.
        """
        if not (reason or "").strip():
            raise ValidationError("Reason is required", field="reason")
        if evidence is not None:
            self.check_evidence(evidence)

        evidence_url: str | None = None
        dropped = False
        if evidence is not None:
            try:
                evidence_url = await self._upload_evidence(task_id, evidence)
            except (GrantError, TransferError) as e:
                if not submit_without_evidence:
                    raise
                logger.warning("Evidence upload failed for task=%s (%s); filing without it", task_id, e)
                dropped = True

        record = await self._backend.create_dispute(
            task_id, reason=reason.strip(), details=(details or "").strip(), evidence_url=evidence_url
        )
        logger.info("Dispute filed for task=%s evidence=%s", task_id, "yes" if evidence_url else "no")
        return DisputeResult(record=record, evidence_url=evidence_url, evidence_dropped=dropped)
