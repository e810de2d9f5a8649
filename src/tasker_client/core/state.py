# src/tasker_client/core/state.py

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..api.client import BackendClient
from ..api.preview_cache import PreviewUrlCache
from ..tasks.disputes import DisputeReporter
from ..tasks.task_api import TaskLifecycleService, TaskView
from ..tasks.work_submission import SubmissionDraft
from ..uploads.object_store import ObjectStoreUploader

T = TypeVar("T")


@dataclass
class AppState:
    """
    Everything a connector needs, wired once in cli/bootstrap.py.

    `runner` owns the single event loop all backend calls run on; the console
    is synchronous and hands coroutines to `run()`.
    """

    settings: Any
    backend: BackendClient
    uploader: ObjectStoreUploader
    lifecycle: TaskLifecycleService
    disputes: DisputeReporter
    previews: PreviewUrlCache
    runner: asyncio.Runner

    draft: SubmissionDraft = field(default_factory=SubmissionDraft)
    views: dict[str, TaskView] = field(default_factory=dict)

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        return self.runner.run(coro)

    def remember(self, view: TaskView) -> TaskView:
        self.views[view.task_id] = view
        return view
