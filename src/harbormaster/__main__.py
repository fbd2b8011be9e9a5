"""Entry point: python -m harbormaster"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from typing import Any

from harbormaster.infrastructure.config import EVENT_STATUS_UPDATE
from harbormaster.infrastructure.logger import install_asyncio_handler, install_exception_hooks, logger


async def detect() -> int:
    from harbormaster.app import HarborMaster

    install_asyncio_handler()
    result = await HarborMaster().detect_runtimes()
    print(json.dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2))
    return 0 if result.runtimes else 1


async def watch() -> int:
    from harbormaster.app import HarborMaster

    install_asyncio_handler()
    harbor = HarborMaster()

    def on_status(_event: str, payload: Any) -> None:
        logger.info("Runtime status", runtime_id=payload["runtimeId"], status=payload["status"])

    harbor.events.subscribe(EVENT_STATUS_UPDATE, on_status)

    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logger.info("Received shutdown signal")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await harbor.start_status_polling()
        logger.info("Watching runtimes", count=len(harbor.poller.runtimes), interval_s=harbor.poller.interval)
        await shutdown_event.wait()
    finally:
        await harbor.stop_status_polling()
    return 0


def show_prefs() -> int:
    from harbormaster.preferences.repository import PreferencesRepository

    repo = PreferencesRepository()
    prefs = repo.load()
    print(json.dumps(prefs.model_dump(mode="json", by_alias=True), indent=2))
    print(f"# {repo.path}", file=sys.stderr)
    return 0


def run() -> None:
    install_exception_hooks()

    parser = argparse.ArgumentParser(prog="harbormaster", description="Container runtime detection and monitoring")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("detect", help="Detect installed runtimes and print them as JSON")
    sub.add_parser("watch", help="Detect runtimes, then poll their status until interrupted")
    sub.add_parser("prefs", help="Print stored runtime preferences")
    args = parser.parse_args()

    if args.command == "prefs":
        sys.exit(show_prefs())

    try:
        code = asyncio.run(detect() if args.command == "detect" else watch())
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    run()
