"""Child-process execution.

Commands run without a shell. Their combined stdout/stderr is streamed line
by line into the log, and only the exit status is reported back.
"""

from __future__ import annotations

import asyncio
import codecs
import re
from collections.abc import Awaitable, Callable, Sequence

import structlog

from agent_updater.logging import get_logger

log = get_logger("agent_updater.commands")

CommandRunner = Callable[[Sequence[str]], Awaitable[bool]]

_OUTPUT_CHUNK_SIZE = 64 * 1024
_MAX_LOGGED_LINE = 2000

# Progress bars redraw with a bare carriage return.
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


async def run_command(
    argv: Sequence[str],
    *,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> bool:
    """Run *argv* and return True when it exits with status 0."""
    logger = logger or log
    cmd = " ".join(argv)
    logger.info("command_started", cmd=cmd)

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        logger.warning("command_error", cmd=cmd, error=str(exc))
        return False

    assert proc.stdout is not None
    output_ok = False
    try:
        await _log_output(proc.stdout, argv[0], logger)
        output_ok = True
    except (OSError, ValueError) as exc:
        logger.warning("command_output_error", cmd=cmd, error=str(exc))
    finally:
        # The child is always reaped; if its output could not be read it is killed first.
        if not output_ok and proc.returncode is None:
            proc.kill()
        returncode = await proc.wait()

    if not output_ok:
        return False
    if returncode != 0:
        logger.warning("command_failed", cmd=cmd, returncode=returncode)
        return False

    logger.info("command_succeeded", cmd=cmd)
    return True


async def _log_output(
    stream: asyncio.StreamReader,
    name: str,
    logger: structlog.stdlib.BoundLogger,
) -> None:
    """Log *stream* line by line, reading fixed-size chunks until EOF."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    while True:
        chunk = await stream.read(_OUTPUT_CHUNK_SIZE)
        if not chunk:
            break
        pending += decoder.decode(chunk)
        *lines, pending = _LINE_BREAK_RE.split(pending)
        if len(pending) > _OUTPUT_CHUNK_SIZE:
            lines.append(pending)
            pending = ""
        for line in lines:
            _log_line(logger, name, line)

    pending += decoder.decode(b"", final=True)
    _log_line(logger, name, pending)


def _log_line(logger: structlog.stdlib.BoundLogger, name: str, line: str) -> None:
    line = line.rstrip()
    if line:
        logger.info("command_output", cmd=name, line=line[:_MAX_LOGGED_LINE])
