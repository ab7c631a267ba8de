"""Logging configuration for the agent updater.

All output goes through a single :class:`FanOutSink` that forwards every
write to the console and, when enabled, to the update log file. structlog
renders events for our own code; stdlib logging shares the same sink so
third-party messages land in the same places.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import structlog

from agent_updater.config import get_settings

if TYPE_CHECKING:
    from agent_updater.config import Settings


class FanOutSink:
    """Text sink that forwards every write to each registered sink."""

    def __init__(self, sinks: list[TextIO] | None = None) -> None:
        self._sinks: list[TextIO] = list(sinks or [])
        self._owned: list[TextIO] = []

    @property
    def sinks(self) -> list[TextIO]:
        return list(self._sinks)

    def add_sink(self, sink: TextIO, owned: bool = False) -> None:
        """Register a sink. Owned sinks are closed by :meth:`close`."""
        self._sinks.append(sink)
        if owned:
            self._owned.append(sink)

    def write(self, text: str) -> int:
        for sink in self._sinks:
            sink.write(text)
        return len(text)

    def flush(self) -> None:
        for sink in self._sinks:
            sink.flush()

    def close(self) -> None:
        for sink in self._owned:
            sink.close()
            self._sinks.remove(sink)
        self._owned.clear()


def _open_log_file(settings: Settings) -> TextIO | None:
    """Open the update log for appending, or None when that is not possible."""
    try:
        Path(settings.log_directory).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f"Cannot create log directory {settings.log_directory}: {exc}", file=sys.stderr)
        settings.log_to_file = False
        return None

    try:
        return open(settings.log_file_path, "a", encoding="utf-8")  # noqa: SIM115
    except OSError as exc:
        print(f"Cannot open log file {settings.log_file_path}: {exc}", file=sys.stderr)
        settings.log_to_file = False
        return None


def setup_logging(settings: Settings | None = None) -> FanOutSink:
    """Configure structured logging and return the shared output sink."""
    if settings is None:
        settings = get_settings()

    log_level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    sink = FanOutSink([sys.stdout])
    if settings.log_to_file:
        log_file = _open_log_file(settings)
        if log_file is not None:
            sink.add_sink(log_file, owned=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
                if settings.is_development
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sink),
        cache_logger_on_first_use=True,
    )

    # Also configure standard library logging for third-party packages
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sink,
        level=log_level,
        force=True,
    )

    # Reduce noise from httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return sink


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
