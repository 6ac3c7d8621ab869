"""Command-line interface for Gmail push.

This module provides the main entry point for the CLI application. It replays a
saved push notification against Gmail and prints the resulting messages as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from gmailpush import __version__
from gmailpush.agent import GmailPushAgent
from gmailpush.config import get_settings
from gmailpush.exceptions import GmailPushError
from gmailpush.models import VALID_HISTORY_TYPES, ParsedMessage

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gmailpush", description="Gmail push notification processor")
    parser.add_argument(
        "--history-file",
        type=Path,
        default=None,
        help="Path to the history id store (default: settings history_file_path)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    messages_parser = subparsers.add_parser(
        "messages",
        help="Fetch the messages changed since the previous notification",
    )
    _add_notification_arguments(messages_parser)
    messages_parser.add_argument(
        "--history-type",
        dest="history_types",
        action="append",
        choices=[t.value for t in VALID_HISTORY_TYPES],
        default=None,
        help="Kind of change to keep (repeatable, default: all)",
    )
    messages_parser.add_argument(
        "--added-label", dest="added_label_ids", action="append", default=None,
        help="Keep labelAdded entries adding this label (repeatable)",
    )
    messages_parser.add_argument(
        "--removed-label", dest="removed_label_ids", action="append", default=None,
        help="Keep labelRemoved entries removing this label (repeatable)",
    )
    messages_parser.add_argument(
        "--with-label", dest="with_label_ids", action="append", default=None,
        help="Keep messages carrying this label (repeatable)",
    )
    messages_parser.add_argument(
        "--without-label", dest="without_label_ids", action="append", default=None,
        help="Drop messages carrying this label (repeatable)",
    )
    messages_parser.add_argument(
        "--with-attachments",
        action="store_true",
        help="Download attachment data as well",
    )

    new_parser = subparsers.add_parser("new-message", help="Fetch the newly received inbox message")
    _add_notification_arguments(new_parser)

    labels_parser = subparsers.add_parser("labels", help="List labels of the notified mailbox")
    _add_notification_arguments(labels_parser)

    address_parser = subparsers.add_parser(
        "email-address", help="Print the mailbox address of a notification"
    )
    address_parser.add_argument("notification", type=Path, help="Push notification JSON ('-' for stdin)")

    return parser


def _add_notification_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("notification", type=Path, help="Push notification JSON ('-' for stdin)")
    parser.add_argument("--token", type=Path, required=True, help="OAuth2 token JSON file")


def _read_json(path: Path) -> Any:
    if str(path) == "-":
        return json.load(sys.stdin)
    return json.loads(path.read_text(encoding="utf-8"))


def _to_jsonable(message: ParsedMessage) -> dict[str, Any]:
    data = message.to_dict()
    for attachment in data.get("attachments", []):
        if isinstance(attachment.get("data"), bytes):
            attachment["data"] = base64.b64encode(attachment["data"]).decode("ascii")
    return data


def _build_agent(args: argparse.Namespace) -> GmailPushAgent:
    settings = get_settings()
    if args.history_file is not None:
        settings = settings.model_copy(update={"history_file_path": args.history_file})
    return GmailPushAgent(settings)


async def _cmd_messages(args: argparse.Namespace) -> int:
    agent = _build_agent(args)
    options: dict[str, Any] = {
        "notification": _read_json(args.notification),
        "token": _read_json(args.token),
    }
    for name in (
        "history_types",
        "added_label_ids",
        "removed_label_ids",
        "with_label_ids",
        "without_label_ids",
    ):
        value = getattr(args, name)
        if value is not None:
            options[name] = value

    if args.with_attachments:
        messages = await agent.get_messages(**options)
    else:
        messages = await agent.get_messages_without_attachment(**options)

    print(json.dumps([_to_jsonable(m) for m in messages], indent=2))
    return 0


async def _cmd_new_message(args: argparse.Namespace) -> int:
    agent = _build_agent(args)
    message = await agent.get_new_message(_read_json(args.notification), _read_json(args.token))
    print(json.dumps(_to_jsonable(message) if message else None, indent=2))
    return 0


async def _cmd_labels(args: argparse.Namespace) -> int:
    agent = _build_agent(args)
    labels = await agent.get_labels(_read_json(args.notification), _read_json(args.token))
    print(json.dumps(labels, indent=2))
    return 0


def _cmd_email_address(args: argparse.Namespace) -> int:
    from gmailpush.notification import get_email_address

    print(get_email_address(_read_json(args.notification)))
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Gmail push CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging; logs go to stderr so stdout stays valid JSON.
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )

    logger.debug("gmailpush_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        if parsed.command == "messages":
            return asyncio.run(_cmd_messages(parsed))
        if parsed.command == "new-message":
            return asyncio.run(_cmd_new_message(parsed))
        if parsed.command == "labels":
            return asyncio.run(_cmd_labels(parsed))
        if parsed.command == "email-address":
            return _cmd_email_address(parsed)
    except GmailPushError as exc:
        logger.error("command_failed", command=parsed.command, error=str(exc))
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
