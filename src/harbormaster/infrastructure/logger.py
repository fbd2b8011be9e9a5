"""Structured logging for harbormaster, rendered by structlog on stderr."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import threading
from typing import Any

import structlog


def _log_level() -> int:
    name = os.environ.get("HARBORMASTER_LOG_LEVEL") or os.environ.get("LOG_LEVEL", "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging() -> structlog.stdlib.BoundLogger:
    """Configure structlog once per process.

    stdout stays free for command output (detect/prefs print JSON there), so
    every log line goes to stderr.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=_log_level(), stream=sys.stderr, format="%(message)s")

    return structlog.get_logger("harbormaster")


logger: structlog.stdlib.BoundLogger = setup_logging()


def _asyncio_exception_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    exc = context.get("exception")
    logger.error(
        "Unhandled error in event loop",
        message=context.get("message"),
        exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
    )


def install_asyncio_handler(loop: asyncio.AbstractEventLoop | None = None) -> None:
    """Log exceptions from background tasks nobody awaited."""
    (loop or asyncio.get_running_loop()).set_exception_handler(_asyncio_exception_handler)


def install_exception_hooks() -> None:
    """Route uncaught exceptions, including those in threads, through structlog."""

    def handle_exception(exc_type, exc_value, exc_traceback):  # type: ignore[no-untyped-def]
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    def handle_thread_exception(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        thread = args.thread.name if args.thread else None
        logger.critical(
            "Uncaught exception in thread",
            thread=thread,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    sys.excepthook = handle_exception
    threading.excepthook = handle_thread_exception
