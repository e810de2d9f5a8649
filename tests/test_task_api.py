# tests/test_task_api.py

from __future__ import annotations

import pytest

from tasker_client.errors import LifecycleConflict, ValidationError
from tasker_client.tasks.lifecycle import TaskAction, TaskerPhase
from tasker_client.tasks.task_api import TaskLifecycleService
from tasker_client.tasks.task_models import BiddingType, SubmissionStatus, TaskSnapshot, TaskStatus
from tasker_client.tasks.work_submission import SubmissionDraft, WorkSubmitter
from tasker_client.uploads.coordinator import UploadCoordinator
from tasker_client.uploads.grant_client import UploadGrantClient

from .fakes import FakeBackend, make_file, make_submission, make_task

ME = "tasker-1"


def _pending_acceptance() -> TaskSnapshot:
    return TaskSnapshot(task=make_task(status=TaskStatus.ASSIGNED, assigned_to=ME))


def _accepted(**overrides) -> TaskSnapshot:
    return TaskSnapshot(
        task=make_task(status=TaskStatus.IN_PROGRESS, assigned_to=ME, assignment_accepted=True),
        **overrides,
    )


@pytest.mark.asyncio
async def test_accept_refetches_and_rederives() -> None:
    backend = FakeBackend(snapshots={"t1": _pending_acceptance()}, after_call={"accept_assignment": _accepted()})
    service = TaskLifecycleService(backend, ME)

    view = await service.refresh("t1")
    assert view.allowed.phase == TaskerPhase.ASSIGNED_PENDING_ACCEPTANCE

    new_view = await service.accept_assignment(view)

    assert new_view.allowed.phase == TaskerPhase.ASSIGNED_ACCEPTED
    assert [c[0] for c in backend.calls] == ["get_task_snapshot", "accept_assignment", "get_task_snapshot"]


@pytest.mark.asyncio
async def test_conflict_refetches_and_attaches_fresh_view() -> None:
    backend = FakeBackend(snapshots={"t1": TaskSnapshot(task=make_task())}, conflicts={"apply_to_task"})
    service = TaskLifecycleService(backend, ME)
    view = await service.refresh("t1")

    # meanwhile the task was given to somebody else
    backend.snapshots["t1"] = TaskSnapshot(
        task=make_task(status=TaskStatus.ASSIGNED, assigned_to="tasker-2")
    )
    with pytest.raises(LifecycleConflict) as exc:
        await service.apply(view)

    assert exc.value.status_code == 409
    assert exc.value.view is not None
    assert exc.value.view.allowed.phase == TaskerPhase.LOCKED_OUT
    assert not exc.value.view.allowed.allows(TaskAction.APPLY)
    # not retried
    assert sum(1 for c in backend.calls if c[0] == "apply_to_task") == 1


@pytest.mark.asyncio
async def test_action_not_offered_is_refused_locally() -> None:
    backend = FakeBackend(snapshots={"t1": _pending_acceptance()})
    service = TaskLifecycleService(backend, ME)
    view = await service.refresh("t1")

    with pytest.raises(ValidationError):
        await service.mark_done(view)
    assert not backend.called("mark_done")


@pytest.mark.asyncio
async def test_reject_without_feedback_never_reaches_backend() -> None:
    snap = _accepted(submissions=(make_submission("s1"),))
    backend = FakeBackend(snapshots={"t1": snap})
    service = TaskLifecycleService(backend, "owner")
    view = await service.refresh("t1")

    with pytest.raises(ValidationError) as exc:
        await service.review_submission(view, "s1", "rejected", "   ")

    assert exc.value.field == "feedback"
    assert not backend.called("review_submission")


@pytest.mark.asyncio
async def test_request_revision_sends_trimmed_feedback() -> None:
    snap = _accepted(submissions=(make_submission("s1"),))
    revised = _accepted(submissions=(make_submission("s1", SubmissionStatus.REVISION_REQUESTED),))
    backend = FakeBackend(snapshots={"t1": snap}, after_call={"review_submission": revised})
    service = TaskLifecycleService(backend, "owner")
    view = await service.refresh("t1")

    new_view = await service.review_submission(view, "s1", "revision_requested", "  Please fix the colors ")

    assert ("review_submission", ("s1", "revision_requested", "Please fix the colors")) in backend.calls
    assert new_view.allowed.reviewable_submission_ids == ()


@pytest.mark.asyncio
async def test_review_of_unknown_submission_refused() -> None:
    backend = FakeBackend(snapshots={"t1": _accepted(submissions=(make_submission("s1"),))})
    service = TaskLifecycleService(backend, "owner")
    view = await service.refresh("t1")

    with pytest.raises(ValidationError):
        await service.review_submission(view, "s9", "approved")


@pytest.mark.asyncio
async def test_bid_validates_before_sending() -> None:
    backend = FakeBackend(snapshots={"t1": TaskSnapshot(task=make_task(bidding_type=BiddingType.OPEN_BID))})
    service = TaskLifecycleService(backend, ME)
    view = await service.refresh("t1")

    with pytest.raises(ValidationError):
        await service.bid(view, amount="", timeline="2 days")
    assert not backend.called("bid_on_task")

    await service.bid(view, amount=" 120 ", timeline="2 days", message="I can do it")
    assert ("bid_on_task", ("t1", "120", "2 days", "I can do it")) in backend.calls


@pytest.mark.asyncio
async def test_delete_submission_only_for_deletable_ids() -> None:
    snap = _accepted(submissions=(make_submission("s1", submitted_by=ME),))
    backend = FakeBackend(snapshots={"t1": snap}, after_call={"delete_submission": _accepted()})
    service = TaskLifecycleService(backend, ME)
    view = await service.refresh("t1")

    with pytest.raises(ValidationError):
        await service.delete_submission(view, "nope")

    new_view = await service.delete_submission(view, "s1")
    assert new_view.allowed.deletable_submission_ids == ()


@pytest.mark.asyncio
async def test_submit_work_uploads_then_refetches(uploader) -> None:
    backend = FakeBackend(snapshots={"t1": _accepted()})
    submitter = WorkSubmitter(backend, UploadCoordinator(UploadGrantClient(backend), uploader))
    service = TaskLifecycleService(backend, ME, submitter=submitter)
    view = await service.refresh("t1")
    draft = SubmissionDraft()
    draft.add_files([make_file("final.png")])

    result, new_view = await service.submit_work(view, "Final version attached", draft)

    assert result.submission.file_keys == ("key-1-final.png",)
    assert backend.calls[-1][0] == "get_task_snapshot"
    assert new_view.task_id == "t1"


def test_actor_id_is_required() -> None:
    with pytest.raises(ValueError):
        TaskLifecycleService(FakeBackend(), "")


@pytest.mark.asyncio
async def test_list_submissions_filters_to_actor() -> None:
    backend = FakeBackend(snapshots={"t1": _accepted()})
    backend.created.extend(
        [
            make_submission("mine", submitted_by=ME),
            make_submission("theirs", submitted_by="tasker-2"),
        ]
    )

    mine = await TaskLifecycleService(backend, ME).list_submissions("t1")
    everything = await TaskLifecycleService(backend, "owner").list_submissions("t1")

    assert [s.id for s in mine] == ["mine"]
    assert [s.id for s in everything] == ["mine", "theirs"]
