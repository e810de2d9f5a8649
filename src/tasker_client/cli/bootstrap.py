# src/tasker_client/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the backend client, upload pipeline and lifecycle service into AppState,
- closes the HTTP clients on shutdown.
"""

from __future__ import annotations

import asyncio
import logging

from ..api.client import BackendClient
from ..api.preview_cache import PreviewUrlCache
from ..config import get_settings
from ..core.state import AppState
from ..tasks.disputes import DisputeReporter
from ..tasks.task_api import TaskLifecycleService
from ..tasks.work_submission import SubmissionDraft, WorkSubmitter
from ..uploads.coordinator import UploadCoordinator
from ..uploads.file_validator import UploadLimits
from ..uploads.grant_client import UploadGrantClient
from ..uploads.object_store import ObjectStoreUploader

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def _print_progress(index: int, outcome) -> None:
    if outcome.progress_percent < 0:
        print(f"  [{index + 1}] {outcome.file_name}: failed")
    else:
        print(f"  [{index + 1}] {outcome.file_name}: {outcome.progress_percent}%")


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if not settings.actor_id:
        raise RuntimeError("Actor id is not set. Set TASKER_ACTOR_ID in your .env.")

    _ensure_local_dirs(settings)

    backend = BackendClient.from_settings(settings)
    uploader = ObjectStoreUploader.from_settings(settings)
    grants = UploadGrantClient(backend)
    coordinator = UploadCoordinator(grants, uploader, on_outcome=_print_progress)
    submitter = WorkSubmitter(backend, coordinator)

    state = AppState(
        settings=settings,
        backend=backend,
        uploader=uploader,
        lifecycle=TaskLifecycleService(backend, settings.actor_id, submitter=submitter),
        disputes=DisputeReporter(backend, grants, uploader, limits=UploadLimits.for_dispute(settings)),
        previews=PreviewUrlCache(backend),
        runner=asyncio.Runner(),
        draft=SubmissionDraft(limits=UploadLimits.for_work(settings)),
    )
    logger.info("Client ready backend=%s actor=%s", settings.backend_url, settings.actor_id)
    return state


def close_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.run(state.backend.aclose())
        state.run(state.uploader.aclose())
    except Exception:
        logger.exception("Failed to close HTTP clients.")
    finally:
        state.runner.close()
