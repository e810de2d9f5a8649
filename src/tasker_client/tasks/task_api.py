# src/tasker_client/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..core.ports import MarketplaceBackend
from ..errors import LifecycleConflict, ValidationError
from .lifecycle import AllowedActions, ReviewDecision, TaskAction, allowed_actions, validate_bid, validate_review
from .task_models import Submission, TaskSnapshot
from .work_submission import SubmissionDraft, SubmissionResult, WorkSubmitter

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TaskView:
    """A snapshot and the actions derived from it for one actor. Rebuilt on every fetch."""

    snapshot: TaskSnapshot
    allowed: AllowedActions

    @property
    def task_id(self) -> str:
        return self.snapshot.task.id


class TaskLifecycleService:
    """
    Runs lifecycle actions against the backend.

    Every action:
    - is checked against the view it was offered from (client-side guard),
    - is sent to the backend (which re-validates),
    - is followed by a fresh snapshot fetch; the client never patches task fields itself.

    A LifecycleConflict gets the fresh view attached and is re-raised, never retried.
    """

    def __init__(
        self,
        backend: MarketplaceBackend,
        actor_id: str,
        *,
        submitter: WorkSubmitter | None = None,
    ) -> None:
        if not actor_id:
            raise ValueError("actor_id is required")
        self._backend = backend
        self._actor_id = actor_id
        self._submitter = submitter

    @property
    def actor_id(self) -> str:
        return self._actor_id

    def view_of(self, snapshot: TaskSnapshot) -> TaskView:
        return TaskView(snapshot=snapshot, allowed=allowed_actions(snapshot, self._actor_id))

    async def refresh(self, task_id: str) -> TaskView:
        snapshot = await self._backend.get_task_snapshot(task_id)
        view = self.view_of(snapshot)
        logger.debug(
            "Task %s phase=%s actions=%s",
            task_id,
            view.allowed.phase.value,
            ",".join(sorted(a.value for a in view.allowed.actions)) or "-",
        )
        return view

    @staticmethod
    def _require(view: TaskView, action: TaskAction) -> None:
        if not view.allowed.allows(action):
            raise ValidationError(
                f"Action {action.value} is not available (phase={view.allowed.phase.value})",
                field="action",
            )

    async def _transition(
        self,
        view: TaskView,
        action: TaskAction,
        call: Callable[[], Awaitable[object]],
    ) -> TaskView:
        self._require(view, action)
        task_id = view.task_id
        try:
            await call()
        except LifecycleConflict as e:
            logger.info("Task %s: %s rejected by backend (%s); re-fetching", task_id, action.value, e)
            e.view = await self.refresh(task_id)
            raise
        logger.info("Task %s: %s ok", task_id, action.value)
        return await self.refresh(task_id)

    # ---- tasker actions ----

    async def apply(self, view: TaskView) -> TaskView:
        return await self._transition(view, TaskAction.APPLY, lambda: self._backend.apply_to_task(view.task_id))

    async def bid(self, view: TaskView, *, amount: str, timeline: str, message: str = "") -> TaskView:
        validate_bid(amount, timeline)
        return await self._transition(
            view,
            TaskAction.BID,
            lambda: self._backend.bid_on_task(
                view.task_id, amount=str(amount).strip(), timeline=str(timeline).strip(), message=message
            ),
        )

    async def accept_assignment(self, view: TaskView) -> TaskView:
        return await self._transition(
            view, TaskAction.ACCEPT_ASSIGNMENT, lambda: self._backend.accept_assignment(view.task_id)
        )

    async def decline_assignment(self, view: TaskView) -> TaskView:
        return await self._transition(
            view, TaskAction.DECLINE_ASSIGNMENT, lambda: self._backend.reject_assignment(view.task_id)
        )

    async def mark_done(self, view: TaskView) -> TaskView:
        return await self._transition(view, TaskAction.MARK_DONE, lambda: self._backend.mark_done(view.task_id))

    async def list_submissions(self, task_id: str) -> list[Submission]:
        """Submissions on the task sent by this actor (all of them for the owner)."""
        subs = await self._backend.list_submissions(task_id)
        snapshot = await self._backend.get_task_snapshot(task_id)
        if snapshot.task.posted_by == self._actor_id:
            return subs
        return [s for s in subs if s.submitted_by in (None, self._actor_id)]

    async def delete_submission(self, view: TaskView, submission_id: str) -> TaskView:
        if submission_id not in view.allowed.deletable_submission_ids:
            raise ValidationError(f"Submission {submission_id} cannot be deleted", field="submission")
        return await self._transition(
            view, TaskAction.DELETE_SUBMISSION, lambda: self._backend.delete_submission(submission_id)
        )

    async def submit_work(
        self,
        view: TaskView,
        message: str,
        draft: SubmissionDraft,
    ) -> tuple[SubmissionResult, TaskView]:
        if self._submitter is None:
            raise RuntimeError("TaskLifecycleService was built without a WorkSubmitter")
        self._require(view, TaskAction.SUBMIT_WORK)
        result = await self._submitter.submit(view.task_id, message, draft)
        return result, await self.refresh(view.task_id)

    # ---- reviewing party ----

    async def review_submission(
        self,
        view: TaskView,
        submission_id: str,
        decision: ReviewDecision | str,
        feedback: str = "",
    ) -> TaskView:
        d = validate_review(decision, feedback)
        if submission_id not in view.allowed.reviewable_submission_ids:
            raise ValidationError(f"Submission {submission_id} is not awaiting review", field="submission")
        return await self._transition(
            view,
            d.action,
            lambda: self._backend.review_submission(submission_id, status=d.value, feedback=(feedback or "").strip()),
        )
