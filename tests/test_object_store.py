# tests/test_object_store.py

from __future__ import annotations

import threading
import time
from pathlib import Path

import httpx
import pytest

from tasker_client.errors import TransferError
from tasker_client.uploads.object_store import (
    BufferedPutStrategy,
    ObjectStoreUploader,
    StreamedPutStrategy,
    rescale_progress,
)
from tasker_client.uploads.upload_models import PendingFile, UploadGrant

from .fakes import ScriptedStrategy, make_file


def _grant() -> UploadGrant:
    return UploadGrant(file_key="k1", destination="https://storage.example/put/k1", expires_at=time.time() + 60)


class StorageRecorder:
    """httpx MockTransport handler that records PUT bodies and headers."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        # MockTransport has already drained the streamed body into request.content
        self.requests.append(request)
        self.bodies.append(request.content)
        return httpx.Response(self.status_code)


def test_rescale_progress_maps_into_30_to_100() -> None:
    assert rescale_progress(0) == 30
    assert rescale_progress(50) == 65
    assert rescale_progress(100) == 100
    assert rescale_progress(33) == 53  # 30 + floor(23.1)
    assert rescale_progress(-5) == 30
    assert rescale_progress(250) == 100


def test_rescale_progress_is_monotonic() -> None:
    values = [rescale_progress(p / 10) for p in range(0, 1001)]
    assert values == sorted(values)


@pytest.mark.asyncio
async def test_streamed_put_sends_file_from_path(tmp_path: Path) -> None:
    payload = bytes(range(256)) * 20  # 5120 bytes
    path = tmp_path / "report.pdf"
    path.write_bytes(payload)
    file = PendingFile.from_path(path)

    recorder = StorageRecorder()
    progress: list[float] = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
        await StreamedPutStrategy(http, chunk_size=1024).transfer(_grant(), file, progress.append)

    assert recorder.bodies == [payload]
    req = recorder.requests[0]
    assert req.method == "PUT"
    assert req.headers["Content-Type"] == "application/pdf"
    assert req.headers["Content-Length"] == str(len(payload))
    assert "Authorization" not in req.headers
    assert progress[0] == 0.0
    assert progress[-1] == 100.0
    assert progress == sorted(progress)


@pytest.mark.asyncio
async def test_streamed_put_rejects_unstreamable_handle() -> None:
    file = PendingFile(name="odd.bin", local_handle="not-a-path-object", mime_type="x/y", size_bytes=3)  # type: ignore[arg-type]
    async with httpx.AsyncClient(transport=httpx.MockTransport(StorageRecorder())) as http:
        with pytest.raises(TypeError):
            await StreamedPutStrategy(http).transfer(_grant(), file, lambda _p: None)


@pytest.mark.asyncio
async def test_buffered_put_materializes_string_path(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello world")
    file = PendingFile(name="notes.txt", local_handle=str(path), mime_type="text/plain", size_bytes=11)  # type: ignore[arg-type]

    recorder = StorageRecorder()
    progress: list[float] = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
        await BufferedPutStrategy(http, chunk_size=4).transfer(_grant(), file, progress.append)

    assert recorder.bodies == [b"hello world"]
    assert progress[-1] == 100.0


class ThreadRecordingReader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.read_threads: list[int] = []

    def read(self) -> bytes:
        self.read_threads.append(threading.get_ident())
        return self.data


@pytest.mark.asyncio
async def test_buffered_put_reads_file_off_the_event_loop() -> None:
    reader = ThreadRecordingReader(b"evidence")
    file = PendingFile(name="e.txt", local_handle=reader, mime_type="text/plain", size_bytes=8)  # type: ignore[arg-type]

    recorder = StorageRecorder()
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
        await BufferedPutStrategy(http).transfer(_grant(), file, lambda _p: None)

    assert recorder.bodies == [b"evidence"]
    assert reader.read_threads and threading.get_ident() not in reader.read_threads


@pytest.mark.asyncio
async def test_non_2xx_from_storage_raises() -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(StorageRecorder(status_code=403))) as http:
        with pytest.raises(httpx.HTTPStatusError):
            await BufferedPutStrategy(http).transfer(_grant(), make_file("a.png", 10), lambda _p: None)


@pytest.mark.asyncio
async def test_uploader_uses_primary_only_when_it_succeeds() -> None:
    primary, fallback = ScriptedStrategy("streamed"), ScriptedStrategy("buffered")
    used = await ObjectStoreUploader(primary, fallback).upload(_grant(), make_file("a.png"), lambda _p: None)

    assert used == "streamed"
    assert primary.calls == ["a.png"]
    assert fallback.calls == []


@pytest.mark.asyncio
async def test_uploader_falls_back_once_after_primary_failure() -> None:
    primary = ScriptedStrategy("streamed", fail_for={"a.png"})
    fallback = ScriptedStrategy("buffered")
    used = await ObjectStoreUploader(primary, fallback).upload(_grant(), make_file("a.png"), lambda _p: None)

    assert used == "buffered"
    assert primary.calls == ["a.png"]
    assert fallback.calls == ["a.png"]
    assert fallback.delivered == {"k1": "a.png"}


@pytest.mark.asyncio
async def test_uploader_raises_transfer_error_when_both_fail() -> None:
    primary = ScriptedStrategy("streamed", fail_for={"a.png"})
    fallback = ScriptedStrategy("buffered", fail_for={"a.png"})

    with pytest.raises(TransferError) as exc:
        await ObjectStoreUploader(primary, fallback).upload(_grant(), make_file("a.png"), lambda _p: None)

    assert isinstance(exc.value.primary_error, OSError)
    assert isinstance(exc.value.fallback_error, OSError)
    assert fallback.calls == ["a.png"]


@pytest.mark.asyncio
async def test_from_settings_builds_streamed_then_buffered(settings) -> None:
    recorder = StorageRecorder()
    uploader = ObjectStoreUploader.from_settings(settings, transport=httpx.MockTransport(recorder))
    try:
        assert uploader.primary.name == "streamed"
        assert uploader.fallback.name == "buffered"
        used = await uploader.upload(_grant(), make_file("a.png", 3000), lambda _p: None)
    finally:
        await uploader.aclose()

    assert used == "streamed"
    assert recorder.bodies == [b"x" * 3000]
