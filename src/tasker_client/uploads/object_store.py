# src/tasker_client/uploads/object_store.py

from __future__ import annotations

"""
Byte transfer to granted object-store destinations.

Two strategies with the same outcome (bytes land at grant.destination) and a different
local cost:
- StreamedPutStrategy (primary): reads the local handle chunk by chunk while sending.
- BufferedPutStrategy (fallback): loads the whole file into memory first, then sends it.

ObjectStoreUploader tries the primary, and only after it has fully failed, the fallback once.
This is a one-shot switch, not a retry loop.
"""

import asyncio
import logging
import math
from collections.abc import AsyncIterator
from pathlib import Path

import httpx

from ..core.ports import ProgressCallback, TransferStrategy
from ..errors import TransferError
from .upload_models import GRANT_PROGRESS, PendingFile, UploadGrant

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_BYTES = 64 * 1024


def rescale_progress(raw_percent: float) -> int:
    """Map strategy progress (0..100) into the per-file range reserved for the transfer (30..100)."""
    raw = min(100.0, max(0.0, float(raw_percent)))
    return GRANT_PROGRESS + math.floor(raw * (100 - GRANT_PROGRESS) / 100)


def _percent(sent: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return min(100.0, sent * 100.0 / total)


def _materialize(handle: object) -> bytes:
    """Load a local handle fully into memory."""
    if isinstance(handle, (bytes, bytearray, memoryview)):
        return bytes(handle)
    if isinstance(handle, (str, Path)):
        return Path(handle).expanduser().read_bytes()
    read = getattr(handle, "read", None)
    if callable(read):
        data = read()
        if isinstance(data, str):
            data = data.encode("utf-8")
        return bytes(data)
    raise TypeError(f"Unsupported local handle: {type(handle).__name__}")


async def _chunks_from_buffer(
        data: bytes,
        chunk_size: int,
        on_progress: ProgressCallback,
) -> AsyncIterator[bytes]:
    view = memoryview(data)
    total = len(data)
    sent = 0
    on_progress(0.0)
    while sent < total:
        chunk = bytes(view[sent:sent + chunk_size])
        yield chunk
        sent += len(chunk)
        on_progress(_percent(sent, total))
    if total == 0:
        on_progress(100.0)


async def _chunks_from_path(
        path: Path,
        total: int,
        chunk_size: int,
        on_progress: ProgressCallback,
) -> AsyncIterator[bytes]:
    sent = 0
    on_progress(0.0)
    with path.open("rb") as fh:
        while True:
            chunk = await asyncio.to_thread(fh.read, chunk_size)
            if not chunk:
                break
            yield chunk
            sent += len(chunk)
            on_progress(_percent(sent, total))
    if total == 0:
        on_progress(100.0)


async def _put(
        http: httpx.AsyncClient,
        grant: UploadGrant,
        file: PendingFile,
        body: AsyncIterator[bytes],
        content_length: int,
) -> None:
    headers = {
        "Content-Type": file.mime_type,
        # object stores reject chunked transfer-encoding on presigned PUTs
        "Content-Length": str(content_length),
    }
    resp = await http.put(grant.destination, content=body, headers=headers)
    resp.raise_for_status()


class StreamedPutStrategy:
    """Primary: stream the raw bytes straight from the local handle."""

    name = "streamed"

    def __init__(self, http: httpx.AsyncClient, *, chunk_size: int = DEFAULT_CHUNK_BYTES) -> None:
        self._http = http
        self._chunk_size = max(1, int(chunk_size))

    async def transfer(self, grant: UploadGrant, file: PendingFile, on_progress: ProgressCallback) -> None:
        handle = file.local_handle
        if isinstance(handle, Path):
            total = handle.stat().st_size
            body = _chunks_from_path(handle, total, self._chunk_size, on_progress)
        elif isinstance(handle, bytes):
            total = len(handle)
            body = _chunks_from_buffer(handle, self._chunk_size, on_progress)
        else:
            raise TypeError(f"Cannot stream local handle of type {type(handle).__name__}")

        await _put(self._http, grant, file, body, total)


class BufferedPutStrategy:
    """Fallback: hold the whole file in memory, then PUT that buffer."""

    name = "buffered"

    def __init__(self, http: httpx.AsyncClient, *, chunk_size: int = DEFAULT_CHUNK_BYTES) -> None:
        self._http = http
        self._chunk_size = max(1, int(chunk_size))

    async def transfer(self, grant: UploadGrant, file: PendingFile, on_progress: ProgressCallback) -> None:
        # whole-file read off the event loop
        data = await asyncio.to_thread(_materialize, file.local_handle)
        logger.debug("Buffered %s in memory (%d bytes)", file.name, len(data))
        body = _chunks_from_buffer(data, self._chunk_size, on_progress)
        await _put(self._http, grant, file, body, len(data))


class ObjectStoreUploader:
    """
    Pushes one file to its granted destination.

    The storage client carries no Authorization header: presigned destinations
    authorize themselves and reject extra credentials.
    """

    def __init__(
            self,
            primary: TransferStrategy,
            fallback: TransferStrategy,
            *,
            http: httpx.AsyncClient | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self._http = http

    @classmethod
    def from_settings(cls, settings, *, transport: httpx.AsyncBaseTransport | None = None) -> ObjectStoreUploader:
        http = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upload_timeout_seconds),
            transport=transport,
        )
        chunk = int(getattr(settings, "upload_chunk_bytes", DEFAULT_CHUNK_BYTES))
        return cls(
            StreamedPutStrategy(http, chunk_size=chunk),
            BufferedPutStrategy(http, chunk_size=chunk),
            http=http,
        )

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()

    async def upload(self, grant: UploadGrant, file: PendingFile, on_progress: ProgressCallback) -> str:
        """
        Upload `file` to `grant.destination`.

        Returns the name of the strategy that delivered the bytes.
        Raises TransferError when the primary and the fallback both failed.
        """
        try:
            await self.primary.transfer(grant, file, on_progress)
            return self.primary.name
        except Exception as primary_error:
            logger.warning(
                "Primary transfer (%s) failed for %s: %s; switching to %s",
                self.primary.name,
                file.name,
                primary_error.__class__.__name__,
                self.fallback.name,
            )
            try:
                await self.fallback.transfer(grant, file, on_progress)
            except Exception as fallback_error:
                logger.warning(
                    "Fallback transfer (%s) failed for %s: %s",
                    self.fallback.name,
                    file.name,
                    fallback_error.__class__.__name__,
                )
                raise TransferError(
                    f"Both transfer strategies failed for {file.name}",
                    primary_error=primary_error,
                    fallback_error=fallback_error,
                ) from fallback_error
            return self.fallback.name
