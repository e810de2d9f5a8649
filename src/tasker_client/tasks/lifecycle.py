# src/tasker_client/tasks/lifecycle.py

from __future__ import annotations

"""
Task lifecycle engine.

A pure function of (snapshot, actor_id): no hidden state survives between fetches,
so the offered actions are always re-derivable from a fresh snapshot.

Tasker phases (relative to one task):

    open -> applied -> assigned_pending_acceptance -> assigned_accepted
         -> (submitted_for_review <-> revision_requested) -> mutually_completed

A rejected application/bid or a task given to somebody else puts the tasker in
`locked_out`. Declining frees the task on the backend, so the decliner sees it as
`open` again (or `locked_out` once it is no longer open).

The guards only decide what to offer. The backend re-validates every transition.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from ..errors import ValidationError
from .task_models import BidStatus, BiddingType, SubmissionStatus, Task, TaskSnapshot, TaskStatus


class TaskerPhase(StrEnum):
    OPEN = "open"
    APPLIED = "applied"
    ASSIGNED_PENDING_ACCEPTANCE = "assigned_pending_acceptance"
    ASSIGNED_ACCEPTED = "assigned_accepted"
    SUBMITTED_FOR_REVIEW = "submitted_for_review"
    REVISION_REQUESTED = "revision_requested"
    MUTUALLY_COMPLETED = "mutually_completed"
    LOCKED_OUT = "locked_out"


class ActorRole(StrEnum):
    OWNER = "owner"
    TASKER = "tasker"


class TaskAction(StrEnum):
    # tasker
    APPLY = "apply"
    BID = "bid"
    ACCEPT_ASSIGNMENT = "accept_assignment"
    DECLINE_ASSIGNMENT = "decline_assignment"
    SUBMIT_WORK = "submit_work"
    DELETE_SUBMISSION = "delete_submission"
    # both parties
    MARK_DONE = "mark_done"
    RAISE_DISPUTE = "raise_dispute"
    # owner (reviewing party)
    APPROVE_SUBMISSION = "approve_submission"
    REJECT_SUBMISSION = "reject_submission"
    REQUEST_REVISION = "request_revision"


class ReviewDecision(StrEnum):
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"

    @property
    def action(self) -> TaskAction:
        return _DECISION_ACTIONS[self]

    @property
    def requires_feedback(self) -> bool:
        return self is not ReviewDecision.APPROVED


_DECISION_ACTIONS = {
    ReviewDecision.APPROVED: TaskAction.APPROVE_SUBMISSION,
    ReviewDecision.REJECTED: TaskAction.REJECT_SUBMISSION,
    ReviewDecision.REVISION_REQUESTED: TaskAction.REQUEST_REVISION,
}

_ACCEPTED_PHASES = frozenset(
    {
        TaskerPhase.ASSIGNED_ACCEPTED,
        TaskerPhase.SUBMITTED_FOR_REVIEW,
        TaskerPhase.REVISION_REQUESTED,
    }
)


@dataclass(slots=True, frozen=True)
class AllowedActions:
    """What to offer one actor for one task snapshot."""

    role: ActorRole
    phase: TaskerPhase
    actions: frozenset[TaskAction]
    payment_release_ready: bool
    reviewable_submission_ids: tuple[str, ...] = field(default_factory=tuple)
    deletable_submission_ids: tuple[str, ...] = field(default_factory=tuple)

    def allows(self, action: TaskAction) -> bool:
        return action in self.actions


def is_payment_release_ready(task: Task) -> bool:
    """Mutual completion: the condition the backend uses to release escrow."""
    return task.marked_done_by_tasker and task.marked_done_by_employer


def derive_phase(snapshot: TaskSnapshot) -> TaskerPhase:
    """
    Phase of the assigned/applying tasker, derived from the snapshot alone.

    The snapshot is the one fetched for the acting tasker, so `application`
    is that tasker's own application.
    """
    task = snapshot.task

    if task.assigned_to is not None and task.assignment_accepted:
        if is_payment_release_ready(task):
            return TaskerPhase.MUTUALLY_COMPLETED
        latest = snapshot.latest_submission()
        if latest is not None and latest.status == SubmissionStatus.PENDING:
            return TaskerPhase.SUBMITTED_FOR_REVIEW
        if latest is not None and latest.status == SubmissionStatus.REVISION_REQUESTED:
            return TaskerPhase.REVISION_REQUESTED
        return TaskerPhase.ASSIGNED_ACCEPTED

    if task.assigned_to is not None:
        return TaskerPhase.ASSIGNED_PENDING_ACCEPTANCE

    application = snapshot.application
    if application is not None:
        if application.status == BidStatus.REJECTED:
            return TaskerPhase.LOCKED_OUT
        return TaskerPhase.APPLIED

    if task.status == TaskStatus.OPEN:
        return TaskerPhase.OPEN
    return TaskerPhase.LOCKED_OUT


def _tasker_phase(snapshot: TaskSnapshot, actor_id: str) -> TaskerPhase:
    task = snapshot.task
    if task.assigned_to is not None and task.assigned_to != actor_id:
        # somebody else got it: whatever we applied with is moot
        return TaskerPhase.LOCKED_OUT
    return derive_phase(snapshot)


def _owner_actions(snapshot: TaskSnapshot) -> AllowedActions:
    task = snapshot.task
    actions: set[TaskAction] = set()
    accepted = task.assigned_to is not None and task.assignment_accepted
    completed = task.status == TaskStatus.COMPLETED or is_payment_release_ready(task)

    reviewable = tuple(s.id for s in snapshot.submissions if s.status == SubmissionStatus.PENDING)
    if reviewable and not completed:
        actions.update(_DECISION_ACTIONS.values())

    if accepted and not completed:
        if not task.marked_done_by_employer:
            actions.add(TaskAction.MARK_DONE)
        actions.add(TaskAction.RAISE_DISPUTE)

    return AllowedActions(
        role=ActorRole.OWNER,
        phase=derive_phase(snapshot),
        actions=frozenset(actions),
        payment_release_ready=is_payment_release_ready(task),
        reviewable_submission_ids=reviewable if not completed else (),
    )


def _tasker_actions(snapshot: TaskSnapshot, actor_id: str) -> AllowedActions:
    task = snapshot.task
    phase = _tasker_phase(snapshot, actor_id)
    actions: set[TaskAction] = set()
    deletable: tuple[str, ...] = ()

    if phase == TaskerPhase.OPEN:
        actions.add(TaskAction.BID if task.bidding_type == BiddingType.OPEN_BID else TaskAction.APPLY)

    elif phase == TaskerPhase.ASSIGNED_PENDING_ACCEPTANCE:
        actions.update({TaskAction.ACCEPT_ASSIGNMENT, TaskAction.DECLINE_ASSIGNMENT})

    elif phase in _ACCEPTED_PHASES and task.status != TaskStatus.COMPLETED:
        actions.add(TaskAction.SUBMIT_WORK)
        actions.add(TaskAction.RAISE_DISPUTE)
        if not task.marked_done_by_tasker:
            actions.add(TaskAction.MARK_DONE)
        deletable = tuple(
            s.id
            for s in snapshot.submissions
            if s.status == SubmissionStatus.PENDING and s.submitted_by in (None, actor_id)
        )
        if deletable:
            actions.add(TaskAction.DELETE_SUBMISSION)

    return AllowedActions(
        role=ActorRole.TASKER,
        phase=phase,
        actions=frozenset(actions),
        payment_release_ready=is_payment_release_ready(task),
        deletable_submission_ids=deletable,
    )


def allowed_actions(snapshot: TaskSnapshot, actor_id: str) -> AllowedActions:
    """
    Actions to offer `actor_id` for this snapshot.

    The task owner only ever gets reviewing-party actions; everybody else is
    evaluated as a tasker.
    """
    if snapshot.task.posted_by is not None and snapshot.task.posted_by == actor_id:
        return _owner_actions(snapshot)
    return _tasker_actions(snapshot, actor_id)


def validate_review(decision: ReviewDecision | str, feedback: str) -> ReviewDecision:
    """Rejections and revision requests need feedback text before the review endpoint is called."""
    try:
        d = ReviewDecision(str(decision).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unknown review decision: {decision}", field="status") from e

    if d.requires_feedback and not (feedback or "").strip():
        raise ValidationError("Please provide feedback for this decision", field="feedback")
    return d


def validate_bid(amount: str, timeline: str) -> None:
    if not str(amount or "").strip() or not str(timeline or "").strip():
        raise ValidationError("Please provide both amount and timeline for your bid", field="bid")
