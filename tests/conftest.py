# tests/conftest.py

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from tasker_client.api.preview_cache import PreviewUrlCache
from tasker_client.config import MIB
from tasker_client.core.state import AppState
from tasker_client.tasks.disputes import DisputeReporter
from tasker_client.tasks.task_api import TaskLifecycleService
from tasker_client.tasks.work_submission import WorkSubmitter
from tasker_client.uploads.coordinator import UploadCoordinator
from tasker_client.uploads.grant_client import UploadGrantClient
from tasker_client.uploads.object_store import ObjectStoreUploader

from .fakes import FakeBackend, ScriptedStrategy


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="tasker-test",
        log_level="DEBUG",
        console_enabled=False,
        backend_url="https://api.example/api",
        auth_token="token-123",
        actor_id="tasker-1",
        request_timeout_seconds=5.0,
        upload_timeout_seconds=5.0,
        upload_chunk_bytes=1024,
        grant_ttl_seconds=600.0,
        max_file_bytes=10 * MIB,
        max_evidence_bytes=5 * MIB,
        max_batch_bytes=50 * MIB,
        max_batch_files=10,
        data_dir=tmp_path / "data",
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def primary() -> ScriptedStrategy:
    return ScriptedStrategy("streamed")


@pytest.fixture()
def fallback() -> ScriptedStrategy:
    return ScriptedStrategy("buffered")


@pytest.fixture()
def uploader(primary: ScriptedStrategy, fallback: ScriptedStrategy) -> ObjectStoreUploader:
    return ObjectStoreUploader(primary, fallback)


@pytest.fixture()
def state(settings: SimpleNamespace, backend: FakeBackend, uploader: ObjectStoreUploader) -> Iterator[AppState]:
    """
    AppState wired with deterministic fakes: in-memory backend, scripted strategies.
    """
    grants = UploadGrantClient(backend)
    submitter = WorkSubmitter(backend, UploadCoordinator(grants, uploader))
    runner = asyncio.Runner()
    st = AppState(
        settings=settings,
        backend=backend,  # type: ignore[arg-type]
        uploader=uploader,
        lifecycle=TaskLifecycleService(backend, settings.actor_id, submitter=submitter),
        disputes=DisputeReporter(backend, grants, uploader),
        previews=PreviewUrlCache(backend),
        runner=runner,
    )
    yield st
    runner.close()
