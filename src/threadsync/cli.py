"""Command-line presenter for a lead's email threads.

Drives a ``ThreadSyncOrchestrator`` the way a UI would: it issues one user
intent, then renders the resulting ``SyncState`` snapshot.  Exits with
status 1 when the snapshot carries an error.

Usage::

    threadsync threads lead_42
    threadsync show lead_42 thread_7 --format json
    threadsync send lead_42 --to jane@example.com --subject "Hello" --body "Hi Jane"
    threadsync reply lead_42 thread_7 --body "Thanks!"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from threadsync.app import build_orchestrator, configure_logging
from threadsync.config import get_settings
from threadsync.sync.orchestrator import ThreadSyncOrchestrator
from threadsync.sync.state import SyncState
from threadsync.threads.models import ComposeEmailRequest, ReplyRequest


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for thread commands.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="View and send email threads for a lead")
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--retry",
        type=int,
        default=0,
        help="Replay a failed retryable load up to N more times (default: 0)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    threads = commands.add_parser("threads", help="List threads for a lead")
    threads.add_argument("lead_id")

    show = commands.add_parser("show", help="Show one thread with its messages")
    show.add_argument("lead_id")
    show.add_argument("thread_id")

    send = commands.add_parser("send", help="Start a new thread with an email")
    send.add_argument("lead_id")
    send.add_argument("--to", required=True, dest="recipient_email")
    send.add_argument("--subject", required=True)
    send.add_argument("--body", required=True)

    reply = commands.add_parser("reply", help="Reply within an existing thread")
    reply.add_argument("lead_id")
    reply.add_argument("thread_id")
    reply.add_argument("--body", required=True)

    return parser


def _truncate(value: Any, width: int) -> str:
    s = str(value or "")
    if len(s) > width:
        return s[: width - 3] + "..."
    return s


def format_table(state: SyncState) -> str:
    """Render a snapshot as human-readable text.

    Shows the selected thread's messages when detail is loaded, otherwise
    the thread list.  An active error is appended, with a retry hint when
    ``--retry`` could replay the failed load.

    Args:
        state: The snapshot to render.

    Returns:
        The rendered text.
    """
    lines: list[str] = []

    detail = state.selected_thread_details
    if detail is not None:
        lines.append(f"Subject: {detail.subject}")
        lines.append("-" * 60)
        for message in detail.messages:
            direction = "->" if message.is_outgoing else "<-"
            sender = f"{message.sender} <{message.sender_email}>"
            lines.append(f"{direction} {sender}  {message.timestamp}")
            lines.extend(f"   {line}" for line in message.body.splitlines() or [""])
            lines.append("")
    elif state.selected_thread_id is None:
        if state.threads:
            headers = ["Last Message", "From", "Subject", "Msgs", "Preview"]
            widths = [20, 24, 30, 4, 40]
            header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
            lines.append(header_line)
            lines.append("-" * len(header_line))
            for thread in state.threads:
                cells = [
                    _truncate(thread.last_message_date, widths[0]),
                    _truncate(thread.sender, widths[1]),
                    _truncate(thread.subject, widths[2]),
                    _truncate(thread.message_count, widths[3]),
                    _truncate(thread.message_preview, widths[4]),
                ]
                lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))
        elif state.threads_error is None:
            lines.append("No threads found.")

    error = state.active_error
    if error is not None:
        lines.append(f"Error ({error.kind}): {error.message}")
        if state.can_retry:
            lines.append("This error is retryable; run again with --retry 1.")

    return "\n".join(lines)


def format_json(state: SyncState) -> str:
    """Render a snapshot as pretty-printed JSON."""
    return json.dumps(state.model_dump(mode="json", by_alias=True), indent=2)


async def _retry_loads(orchestrator: ThreadSyncOrchestrator, retries: int) -> None:
    for _ in range(retries):
        if not orchestrator.state.can_retry:
            return
        await orchestrator.retry_last_action()


async def run_command(orchestrator: ThreadSyncOrchestrator, args: argparse.Namespace) -> SyncState:
    """Issue the user intent named by *args* and return the final snapshot."""
    async with orchestrator.api:
        if args.command == "threads":
            await orchestrator.mount()
            await _retry_loads(orchestrator, args.retry)
        elif args.command == "show":
            await orchestrator.select_thread(args.thread_id)
            await _retry_loads(orchestrator, args.retry)
        elif args.command == "send":
            orchestrator.open_compose()
            await orchestrator.send_email(
                ComposeEmailRequest(
                    recipient_email=args.recipient_email,
                    subject=args.subject,
                    body=args.body,
                )
            )
        elif args.command == "reply":
            await orchestrator.select_thread(args.thread_id)
            await _retry_loads(orchestrator, args.retry)
            if orchestrator.state.selected_thread_details is not None:
                orchestrator.open_reply()
                await orchestrator.send_reply(ReplyRequest(body=args.body))
    state = orchestrator.state
    orchestrator.unmount()
    return state


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run one command, and print the resulting snapshot."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.production)

    orchestrator = build_orchestrator(args.lead_id, settings)
    state = asyncio.run(run_command(orchestrator, args))

    output = format_json(state) if args.output_format == "json" else format_table(state)
    print(output)
    return 1 if state.active_error is not None else 0


if __name__ == "__main__":
    sys.exit(main())
