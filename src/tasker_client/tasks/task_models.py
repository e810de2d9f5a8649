# src/tasker_client/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """Task status as reported by the backend."""

    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CLOSED = "closed"

    @classmethod
    def from_api(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.OPEN
        # the backend is not consistent about case or separators ("In-progress", "in_progress")
        value = str(raw).strip().lower().replace("_", "-")
        try:
            return cls(value)
        except ValueError:
            return cls.OPEN


class BiddingType(StrEnum):
    FIXED = "fixed"
    OPEN_BID = "open-bid"

    @classmethod
    def from_api(cls, raw: str | None) -> BiddingType:
        if raw and str(raw).strip().lower() == cls.OPEN_BID.value:
            return cls.OPEN_BID
        return cls.FIXED


class BidStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @classmethod
    def from_api(cls, raw: str | None) -> BidStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.PENDING


class SubmissionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"

    @classmethod
    def from_api(cls, raw: str | None) -> SubmissionStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.PENDING


def _id_of(raw: Any) -> str | None:
    """Ids arrive as plain strings or as populated objects ({"_id": ...})."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        inner = raw.get("_id", raw.get("id"))
        return str(inner) if inner is not None else None
    return str(raw)


def parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(float(raw), tz=UTC)
    try:
        ts = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=UTC)


@dataclass(slots=True, frozen=True)
class Task:
    """
    Authoritative task snapshot.

    Never mutated by the client: every lifecycle action is followed by a re-fetch.
    `assignment_accepted` is only meaningful while `assigned_to` is set: anything but an
    explicit true (false, null, missing) means the tasker has not answered yet.
    A declined assignment clears `assigned_to` on the backend.
    """

    id: str
    status: TaskStatus
    bidding_type: BiddingType
    title: str = ""
    posted_by: str | None = None
    assigned_to: str | None = None
    assignment_accepted: bool = False
    marked_done_by_tasker: bool = False
    marked_done_by_employer: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Task:
        assigned_to = _id_of(data.get("assignedTo"))
        assignment_accepted = assigned_to is not None and data.get("assignmentAccepted") is True
        return cls(
            id=str(data.get("_id", data.get("id", ""))),
            status=TaskStatus.from_api(data.get("status")),
            bidding_type=BiddingType.from_api(data.get("biddingType")),
            title=str(data.get("title") or ""),
            posted_by=_id_of(data.get("postedBy", data.get("employer"))),
            assigned_to=assigned_to,
            assignment_accepted=assignment_accepted,
            marked_done_by_tasker=data.get("markedDoneByTasker") is True,
            marked_done_by_employer=data.get("markedDoneByEmployer") is True,
        )


@dataclass(slots=True, frozen=True)
class Bid:
    amount: str
    timeline: str
    message: str = ""
    status: BidStatus = BidStatus.PENDING

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Bid:
        return cls(
            amount=str(data.get("amount") or ""),
            timeline=str(data.get("timeline") or ""),
            message=str(data.get("message") or ""),
            status=BidStatus.from_api(data.get("status")),
        )


@dataclass(slots=True, frozen=True)
class Application:
    """The actor's own application to a task; `bid` is set for open-bid tasks."""

    status: BidStatus
    bid: Bid | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Application:
        bid_raw = data.get("bid")
        return cls(
            status=BidStatus.from_api(data.get("status")),
            bid=Bid.from_api(bid_raw) if isinstance(bid_raw, dict) else None,
        )


@dataclass(slots=True, frozen=True)
class Submission:
    id: str
    task_id: str
    message: str
    file_keys: tuple[str, ...]
    status: SubmissionStatus
    feedback: str = ""
    created_at: datetime | None = None
    submitted_by: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Submission:
        keys: list[str] = []
        for f in data.get("files") or data.get("fileKeys") or []:
            if isinstance(f, dict) and f.get("fileKey"):
                keys.append(str(f["fileKey"]))
            elif isinstance(f, str) and f:
                keys.append(f)
        return cls(
            id=str(data.get("_id", data.get("id", ""))),
            task_id=str(_id_of(data.get("taskId", data.get("task"))) or ""),
            message=str(data.get("message") or ""),
            file_keys=tuple(keys),
            status=SubmissionStatus.from_api(data.get("status")),
            feedback=str(data.get("feedback") or ""),
            created_at=parse_timestamp(data.get("createdAt")),
            submitted_by=_id_of(data.get("submittedBy", data.get("tasker"))),
        )


@dataclass(slots=True, frozen=True)
class TaskSnapshot:
    """Everything the lifecycle engine needs, as returned by GET /tasks/{id}."""

    task: Task
    application: Application | None = None
    submissions: tuple[Submission, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TaskSnapshot:
        task_raw = data.get("task") if isinstance(data.get("task"), dict) else data
        app_raw = data.get("application", data.get("myApplication"))
        subs_raw = data.get("submissions") or []
        return cls(
            task=Task.from_api(task_raw),
            application=Application.from_api(app_raw) if isinstance(app_raw, dict) else None,
            submissions=tuple(Submission.from_api(s) for s in subs_raw if isinstance(s, dict)),
        )

    def latest_submission(self) -> Submission | None:
        if not self.submissions:
            return None
        epoch = datetime.min.replace(tzinfo=UTC)
        # stable for missing timestamps: later entries in the list win ties
        indexed = list(enumerate(self.submissions))
        indexed.sort(key=lambda p: (p[1].created_at or epoch, p[0]))
        return indexed[-1][1]
