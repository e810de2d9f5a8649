# src/tasker_client/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import cast

from ..core.state import AppState
from ..errors import AllUploadsFailed, LifecycleConflict, TaskerClientError
from ..tasks.task_api import TaskView
from ..uploads.file_validator import format_size
from ..uploads.upload_models import PendingFile

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /task, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Client errors (validation, conflicts, failed uploads) become the reply text.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except LifecycleConflict as e:
            reply = f"Backend refused: {e}"
            if e.view is not None:
                state.remember(e.view)
                reply += "\n" + describe_view(e.view)
            return reply
        except TaskerClientError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def describe_view(view: TaskView) -> str:
    task = view.snapshot.task
    allowed = view.allowed
    actions = ", ".join(sorted(a.value for a in allowed.actions)) or "none"
    lines = [
        f"Task {task.id}: {task.title or '(untitled)'}",
        f"  Status: {task.status.value} ({task.bidding_type.value})",
        f"  You are: {allowed.role.value}, phase: {allowed.phase.value}",
        f"  Done: tasker={'yes' if task.marked_done_by_tasker else 'no'}, "
        f"owner={'yes' if task.marked_done_by_employer else 'no'}",
        f"  Actions: {actions}",
    ]
    if allowed.payment_release_ready:
        lines.append("  Task mutually completed; payment release is handled by the backend.")
    if allowed.reviewable_submission_ids:
        lines.append(f"  Awaiting review: {', '.join(allowed.reviewable_submission_ids)}")
    return "\n".join(lines)


def _view(state: AppState, task_id: str) -> TaskView:
    """Always act on a fresh snapshot; cached views are only for display."""
    return state.remember(state.run(state.lifecycle.refresh(task_id)))


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    return (
        "Status:\n"
        f"  Backend: {s.backend_url}\n"
        f"  Actor: {s.actor_id}\n"
        f"  Draft: {len(state.draft.files)} file(s), {format_size(state.draft.total_bytes())}\n"
        f"  Cached previews: {len(state.previews)}"
    )


def cmd_task(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /task <task_id>"
    return describe_view(_view(state, args[0]))


def cmd_apply(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /apply <task_id>"
    view = state.remember(state.run(state.lifecycle.apply(_view(state, args[0]))))
    return "Interest sent!\n" + describe_view(view)


def cmd_bid(state: AppState, args: list[str]) -> str:
    if len(args) < 3:
        return "Usage: /bid <task_id> <amount> <timeline> [message]"
    task_id, amount, timeline = args[0], args[1], args[2]
    message = " ".join(args[3:])
    view = _view(state, task_id)
    view = state.remember(
        state.run(state.lifecycle.bid(view, amount=amount, timeline=timeline, message=message))
    )
    return "Bid sent!\n" + describe_view(view)


def cmd_accept(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /accept <task_id>"
    view = state.remember(state.run(state.lifecycle.accept_assignment(_view(state, args[0]))))
    return "Task accepted.\n" + describe_view(view)


def cmd_decline(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /decline <task_id>"
    view = state.remember(state.run(state.lifecycle.decline_assignment(_view(state, args[0]))))
    return "You have declined this task assignment.\n" + describe_view(view)


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task_id>"
    view = state.remember(state.run(state.lifecycle.mark_done(_view(state, args[0]))))
    return "Task marked as done.\n" + describe_view(view)


def cmd_attach(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /attach <path> [<path> ...]"
    picked: list[PendingFile] = []
    missing: list[str] = []
    for raw in args:
        p = Path(raw).expanduser()
        if not p.is_file():
            missing.append(raw)
            continue
        picked.append(PendingFile.from_path(p))

    result = state.draft.add_files(picked)
    lines = [f"Added {len(result.accepted)} file(s)."]
    for name, reason in result.rejected.items():
        lines.append(f"  {name}: {reason}")
    for raw in missing:
        lines.append(f"  {raw}: not a file")
    return "\n".join(lines)


def cmd_files(state: AppState, args: list[str]) -> str:
    if not state.draft.files:
        return "No files attached. Use /attach <path>."
    lines = ["Attached files:"]
    for i, f in enumerate(state.draft.files, start=1):
        lines.append(f"  {i}. {f.name} ({format_size(f.size_bytes)}, {f.mime_type})")
    return "\n".join(lines)


def cmd_detach(state: AppState, args: list[str]) -> str:
    if not args or not args[0].isdigit():
        return "Usage: /detach <n>"
    index = int(args[0]) - 1
    if not 0 <= index < len(state.draft.files):
        return f"No attached file #{args[0]}."
    removed = state.draft.remove_file(index)
    return f"Removed {removed.name}."


def cmd_submit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return "Usage: /submit <task_id> <message>"
    task_id, message = args[0], " ".join(args[1:])
    view = _view(state, task_id)

    if emit:
        with contextlib.suppress(Exception):
            emit(f"Uploading {len(state.draft.files)} file(s)...")

    try:
        result, view = state.run(state.lifecycle.submit_work(view, message, state.draft))
    except AllUploadsFailed as e:
        return f"All file uploads failed ({', '.join(e.failed_names)}). Nothing was submitted."
    state.remember(view)

    if result.partial:
        return (
            f"Submitted with {len(result.submission.file_keys)} files "
            f"({len(result.failed_names)} failed: {', '.join(result.failed_names)})"
        )
    return "Your work has been submitted for review."


def cmd_submissions(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /submissions <task_id>"
    subs = state.run(state.lifecycle.list_submissions(args[0]))
    if not subs:
        return "No submissions yet."
    lines = ["Submissions:"]
    for s in subs:
        when = s.created_at.strftime("%Y-%m-%d %H:%M") if s.created_at else "-"
        lines.append(f"  {s.id} [{s.status.value}] {when} files={len(s.file_keys)}")
        if s.feedback:
            lines.append(f"    feedback: {s.feedback}")
    return "\n".join(lines)


def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /delete <task_id> <submission_id>"
    view = _view(state, args[0])
    view = state.remember(state.run(state.lifecycle.delete_submission(view, args[1])))
    return "Submission deleted.\n" + describe_view(view)


def cmd_review(state: AppState, args: list[str]) -> str:
    if len(args) < 3:
        return "Usage: /review <task_id> <submission_id> <approved|rejected|revision_requested> [feedback]"
    task_id, submission_id, decision = args[0], args[1], args[2]
    feedback = " ".join(args[3:])
    view = _view(state, task_id)
    view = state.remember(state.run(state.lifecycle.review_submission(view, submission_id, decision, feedback)))
    return "Review submitted.\n" + describe_view(view)


def cmd_preview(state: AppState, args: list[str]) -> str:
    if len(args) < 3:
        return "Usage: /preview <submission_id> <file_key> <status>"
    return state.run(state.previews.get(args[0], file_key=args[1], status=args[2]))


def cmd_dispute(state: AppState, args: list[str]) -> str:
    """
    /dispute <task_id> <reason...>
    Uses the first attached draft file as evidence, if any; a failed evidence
    upload does not block the dispute.
    """
    if len(args) < 2:
        return "Usage: /dispute <task_id> <reason>"
    task_id, reason = args[0], " ".join(args[1:])
    evidence = state.draft.files[0] if state.draft.files else None
    result = state.run(
        state.disputes.raise_dispute(task_id, reason=reason, evidence=evidence, submit_without_evidence=True)
    )
    if result.evidence_dropped:
        return "Report submitted without the evidence file (upload failed)."
    return "Your report has been submitted."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend, actor and draft status.")
registry.register("task", cmd_task, help_text="Show a task and the actions you can take: /task <id>.")
registry.register("apply", cmd_apply, help_text="Apply to a fixed-price task: /apply <id>.")
registry.register("bid", cmd_bid, help_text="Bid on an open-bid task: /bid <id> <amount> <timeline> [message].")
registry.register("accept", cmd_accept, help_text="Accept an assignment: /accept <id>.")
registry.register("decline", cmd_decline, help_text="Decline an assignment: /decline <id>.")
registry.register("done", cmd_done, help_text="Mark a task as done: /done <id>.")
registry.register("attach", cmd_attach, help_text="Attach files to the draft: /attach <path>...")
registry.register("files", cmd_files, help_text="List attached files.")
registry.register("detach", cmd_detach, help_text="Remove an attached file: /detach <n>.")
registry.register("submit", cmd_submit, help_text="Upload the draft and submit work: /submit <id> <message>.")
registry.register("submissions", cmd_submissions, help_text="List your submissions: /submissions <id>.")
registry.register("delete", cmd_delete, help_text="Delete a pending submission: /delete <id> <submission>.")
registry.register(
    "review",
    cmd_review,
    help_text="Review a submission: /review <id> <submission> <decision> [feedback].",
)
registry.register("preview", cmd_preview, help_text="Preview URL: /preview <submission> <fileKey> <status>.")
registry.register("dispute", cmd_dispute, help_text="Report a problem: /dispute <id> <reason>.")
