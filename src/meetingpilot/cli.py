"""Summary: Command-line interface for MeetingPilot.

Importance: Drives the session reconciler and the task board without a browser UI.
Alternatives: Build a web UI or desktop client first.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from meetingpilot.app import Workspace, build_workspace
from meetingpilot.config import AppConfig
from meetingpilot.errors import MeetingPilotError, ValidationError
from meetingpilot.models import Insight, PRIORITIES, TASK_STATUSES
from meetingpilot.timesaved import (
    calculate_time_saved,
    extract_meeting_duration,
    format_time_display,
)

COLUMN_TITLES = {"todo": "To Do", "in_progress": "In Progress", "done": "Done"}


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="MeetingPilot CLI")
    parser.add_argument("--user", type=str, default=None, help="User id (defaults to config email)")
    parser.add_argument("--name", type=str, default=None, help="Display name for email signatures")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the persistence API server")

    analyze = subparsers.add_parser("analyze", help="Analyze a meeting transcript")
    analyze.add_argument("path", type=str, help="Transcript file, or - for stdin")

    subparsers.add_parser("session", help="Show the current session")

    edit_email = subparsers.add_parser("edit-email", help="Replace the follow-up email draft")
    edit_email.add_argument("text", type=str, nargs="?", default=None)
    edit_email.add_argument("--file", type=str, default=None)

    subparsers.add_parser("reset", help="Discard the current session")
    subparsers.add_parser("speak", help="Generate a voice summary of the current session")
    subparsers.add_parser("history", help="List previously analyzed meetings")

    subparsers.add_parser("tasks", help="Show the task board")

    add_task = subparsers.add_parser("add-task", help="Add a task to the board")
    add_task.add_argument("title", type=str)
    add_task.add_argument("--description", type=str, default="")
    add_task.add_argument("--priority", choices=PRIORITIES, default="medium")
    add_task.add_argument("--assignee", type=str, default=None)
    add_task.add_argument("--due", type=str, default=None)

    promote = subparsers.add_parser("promote", help="Promote action items to tasks")
    promote.add_argument("item_ids", type=int, nargs="*", help="Action item ids (default: all)")

    move = subparsers.add_parser("move", help="Move a task to a column or onto another task")
    move.add_argument("task_id", type=str)
    move.add_argument("target", type=str, help=f"One of {', '.join(TASK_STATUSES)} or a task id")

    edit_task = subparsers.add_parser("edit-task", help="Edit a task")
    edit_task.add_argument("task_id", type=str)
    edit_task.add_argument("--title", type=str, default=None)
    edit_task.add_argument("--description", type=str, default=None)
    edit_task.add_argument("--priority", choices=PRIORITIES, default=None)
    edit_task.add_argument("--assignee", type=str, default=None)
    edit_task.add_argument("--due", type=str, default=None)

    delete_task = subparsers.add_parser("delete-task", help="Delete a task")
    delete_task.add_argument("task_id", type=str)

    subparsers.add_parser("metrics", help="Show usage metrics")
    subparsers.add_parser("clear-data", help="Delete all stored data for the user")
    return parser


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives the user experience without a UI.
    Alternatives: Invoke services via raw HTTP calls.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()

    if args.command == "serve":
        import uvicorn

        from meetingpilot.api import create_app

        uvicorn.run(create_app(config), host=config.api_host, port=config.api_port)
        return

    try:
        asyncio.run(_run_command(args, config))
    except MeetingPilotError as exc:
        print(exc.user_message, file=sys.stderr)
        raise SystemExit(1) from exc


async def _run_command(args: argparse.Namespace, config: AppConfig) -> None:
    workspace = build_workspace(config, user_id=args.user, user_name=args.name)
    try:
        await _dispatch(args, workspace)
    finally:
        await workspace.aclose()


async def _dispatch(args: argparse.Namespace, workspace: Workspace) -> None:
    """Summary: Run one command against the user's workspace."""

    reconciler = workspace.reconciler
    board = workspace.board

    if args.command == "analyze":
        text = sys.stdin.read() if args.path == "-" else Path(args.path).read_text(encoding="utf-8")
        reconciler.hydrate()
        insight = await reconciler.submit(text)
        if insight is None:
            print("The session was reset before the analysis finished.")
            return
        _print_insight(insight)
        estimate = calculate_time_saved(text, extract_meeting_duration(text))
        print(
            f"\nEstimated meeting {estimate.meeting_minutes} min, reading "
            f"{estimate.reading_minutes} min, saved {format_time_display(estimate.hours_saved)}."
        )
        return

    if args.command == "session":
        session = reconciler.hydrate()
        print(f"State: {reconciler.state.value}")
        if session.insight is not None:
            _print_insight(session.insight, email_body=session.email_draft)
            if session.audio_url:
                print(f"\nVoice summary: {session.audio_url}")
        return

    if args.command == "edit-email":
        if args.file:
            text = Path(args.file).read_text(encoding="utf-8")
        elif args.text is not None:
            text = args.text
        else:
            raise ValidationError("Provide the new draft text or --file")
        reconciler.hydrate()
        reconciler.edit_email_draft(text)
        print("Saved email draft.")
        return

    if args.command == "reset":
        reconciler.hydrate()
        reconciler.reset()
        print("Session cleared.")
        return

    if args.command == "speak":
        reconciler.hydrate()
        audio_url = await reconciler.generate_voice_summary()
        print(f"Voice summary: {audio_url}")
        return

    if args.command == "history":
        for record in await workspace.gateway.list_insights_for_user(workspace.user_id):
            print(f"{record.created_at} {record.meeting_title} ({len(record.action_items)} action items)")
        return

    if args.command == "tasks":
        await board.load()
        _print_board(board.columns())
        return

    if args.command == "add-task":
        task = await board.add_task(
            args.title,
            description=args.description,
            priority=args.priority,
            assigned_to=args.assignee,
            due_date=args.due,
        )
        print(f"Created task {task.id} ({task.title}).")
        return

    if args.command == "promote":
        session = reconciler.hydrate()
        if session.insight is None:
            raise ValidationError("Analyze a transcript first")
        items = [
            item
            for item in session.insight.action_items
            if not args.item_ids or item.local_id in args.item_ids
        ]
        if not items:
            raise ValidationError("No matching action items")
        created = await board.add_tasks_bulk(items)
        print(f"Added {len(created)} tasks to the board.")
        return

    if args.command == "move":
        await board.load()
        moved = await board.move(args.task_id, args.target)
        print("Moved task." if moved else "Task is already in that column.")
        return

    if args.command == "edit-task":
        fields = {
            key: value
            for key, value in {
                "title": args.title,
                "description": args.description,
                "priority": args.priority,
                "assigned_to": args.assignee,
                "due_date": args.due,
            }.items()
            if value is not None
        }
        task = await board.edit_task(args.task_id, **fields)
        print(f"Updated task {task.id} ({task.title}).")
        return

    if args.command == "delete-task":
        deleted = await board.delete_task(args.task_id)
        print("Deleted task." if deleted else "Task was already deleted.")
        return

    if args.command == "metrics":
        metrics = await workspace.metrics.read(workspace.user_id)
        print(f"transcripts_analyzed: {metrics.transcripts_analyzed}")
        print(f"insights_generated: {metrics.insights_generated}")
        print(f"tasks_created: {metrics.tasks_created}")
        print(f"hours_saved: {format_time_display(metrics.hours_saved)}")
        return

    if args.command == "clear-data":
        counts = await workspace.gateway.clear_user_data(workspace.user_id)
        reconciler.reset()
        for table, count in counts.items():
            print(f"{table}: {count} deleted")
        return


def _print_insight(insight: Insight, email_body: str | None = None) -> None:
    print(insight.title)
    print(insight.summary)
    if insight.decisions:
        print("\nDecisions:")
        for decision in insight.decisions:
            print(f"- {decision.text} ({decision.made_by}, {decision.timestamp})")
    if insight.action_items:
        print("\nAction items:")
        for item in insight.action_items:
            print(f"{item.local_id}. [{item.priority}] {item.task} - {item.owner}, due {item.due_date}")
    print(f"\nSubject: {insight.follow_up_email.subject}")
    print(email_body if email_body is not None else insight.follow_up_email.body)


def _print_board(columns: dict) -> None:
    for status, tasks in columns.items():
        print(f"{COLUMN_TITLES.get(status, status)} ({len(tasks)})")
        for task in tasks:
            due = f" due {task.due_date}" if task.due_date else ""
            print(f"  {task.id} [{task.priority}] {task.title}{due}")


if __name__ == "__main__":
    run_cli()
