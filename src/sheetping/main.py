from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from . import config
from .daemon import Daemon
from .errors import FatalError
from .store import TabularStore

console = Console()
log = logging.getLogger("sheetping")

REQUIRED = (
    ("sheet", "sheet ID"),
    ("credentials", "credentials"),
    ("hostname", "hostname"),
    ("secret", "secret"),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=config.NAME,
        description="Ping targets listed in a spreadsheet and record the results there.",
    )
    parser.add_argument("--sheet", default="", help="spreadsheet ID")
    parser.add_argument("--credentials", default="", help="path to key file")
    parser.add_argument("--hostname", default="", help="hostname")
    parser.add_argument("--secret", default="", help="secret")
    parser.add_argument("--debug", action="store_true", help="enable debug")
    parser.add_argument("--version", action="store_true", help="show version")
    return parser


def print_version() -> None:
    console.print(config.NAME.capitalize())
    console.print(f"Author: {config.AUTHOR}")
    console.print(f"Version: {config.VERSION}")
    console.print(f"Commit: {config.COMMIT}")
    console.print(f"Date: {config.BUILD_DATE}")


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt=config.LOG_TIME_FORMAT,
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )
    # Library chatter from the HTTP client stays at warning level
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


def open_store(sheet: str, credentials: str) -> TabularStore:
    from .gsheets import GoogleSheetsStore

    return GoogleSheetsStore.from_key_file(credentials, sheet)


async def main_async(daemon: Daemon):
    """Run the daemon until SIGINT or SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler():
        log.info("Shutting down after the current cycle")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:  # Windows
            signal.signal(sig, lambda s, f: _signal_handler())

    await daemon.run(stop_event)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print_version()
        return 0

    setup_logging(args.debug)

    for attr, label in REQUIRED:
        if not getattr(args, attr):
            console.print(f"{label} must be supplied!")
            return 1

    try:
        store = open_store(args.sheet, args.credentials)
    except FatalError as err:
        log.error("Error creating sheets service: %s", err)
        return 1

    daemon = Daemon(store, args.hostname, args.secret)
    try:
        asyncio.run(main_async(daemon))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
