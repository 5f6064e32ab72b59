"""
Command line entry point: ``fetch`` raw pages and ``transform`` them to JSONL.

    jira-corpus fetch SPARK
    jira-corpus transform SPARK

Exit codes: 0 success, 1 fatal error, 2 usage error, 130 interrupted.
"""

import argparse
import asyncio
import logging
import re
import signal
import sys
from typing import List, Optional

from core.config import settings
from core.exceptions import ETLException
from core.logging import setup_logging
from ingestion.runner import fetch_project
from ingestion.transformers.pipeline import transform_project

logger = logging.getLogger(__name__)

PROJECT_KEY_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def project_key(value: str) -> str:
    if not PROJECT_KEY_RE.match(value):
        raise argparse.ArgumentTypeError(f"invalid project key: {value!r}")
    return value


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError("must be positive")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jira-corpus",
        description="Fetch Jira issues page by page and build a normalized JSONL corpus"
    )
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Fetch all search pages for a project (resumable)")
    fetch.add_argument("project", type=project_key, help="Project key, e.g. SPARK")
    fetch.add_argument(
        "--page-size",
        type=positive_int,
        default=settings.JIRA_PAGE_SIZE,
        help="Results per search page"
    )

    transform = commands.add_parser("transform", help="Transform raw pages into normalized JSONL")
    transform.add_argument("project", type=project_key, help="Project key, e.g. SPARK")

    return parser


async def _fetch(project: str, page_size: int) -> dict:
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except (NotImplementedError, RuntimeError, ValueError):
            pass
    return await fetch_project(project, page_size=page_size, cancel_event=cancel_event)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        if args.command == "fetch":
            result = asyncio.run(_fetch(args.project, args.page_size))
            if result["status"] == "cancelled":
                return EXIT_INTERRUPTED
        else:
            result = transform_project(args.project)
    except ETLException as e:
        logger.error(f"Fatal error: {e}", extra={"error_context": e.to_dict()})
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED

    logger.info(f"{args.command} finished: {result}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
