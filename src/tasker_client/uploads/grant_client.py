# src/tasker_client/uploads/grant_client.py

from __future__ import annotations

import logging

from ..core.ports import GrantIssuer
from ..errors import BackendError, GrantError
from .upload_models import PendingFile, UploadContext, UploadGrant, UploadPurpose

logger = logging.getLogger(__name__)


class UploadGrantClient:
    """
    Acquires one upload grant per file.

    Every failure surfaces as GrantError; the caller must not transfer bytes without a grant.
    Grants are never cached: each file gets its own destination and storage key.
    """

    def __init__(self, issuer: GrantIssuer) -> None:
        self._issuer = issuer

    async def request_grant(self, context: UploadContext, file: PendingFile) -> UploadGrant:
        if context.purpose == UploadPurpose.WORK_SUBMISSION and not context.task_id:
            raise GrantError("Work submission uploads need a task id")

        try:
            grant = await self._issuer.request_upload_grant(context, file)
        except GrantError:
            raise
        except BackendError as e:
            raise GrantError(str(e), status_code=e.status_code) from e

        if grant.is_expired():
            raise GrantError(f"Upload grant for {file.name} expired before use")

        logger.debug("Grant for %s -> key=%s", file.name, grant.file_key)
        return grant
