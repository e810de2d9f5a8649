# src/tasker_client/api/preview_cache.py

from __future__ import annotations

import logging

from ..core.ports import MarketplaceBackend

logger = logging.getLogger(__name__)


class PreviewUrlCache:
    """
    Session cache of short-lived preview URLs, keyed by (file_key, submission status).

    The same file key resolves to a different URL depending on the submission status.
    """

    def __init__(self, backend: MarketplaceBackend) -> None:
        self._backend = backend
        self._urls: dict[tuple[str, str], str] = {}

    async def get(self, submission_id: str, *, file_key: str, status: str) -> str:
        key = (file_key, str(status))
        cached = self._urls.get(key)
        if cached is not None:
            return cached
        url = await self._backend.get_preview_url(submission_id, file_key=file_key, status=str(status))
        self._urls[key] = url
        logger.debug("Cached preview url for %s (%s)", file_key, status)
        return url

    def clear(self) -> None:
        self._urls.clear()

    def __len__(self) -> int:
        return len(self._urls)
