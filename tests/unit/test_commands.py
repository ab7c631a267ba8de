"""Tests for agent_updater.commands: child-process execution."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

from structlog.testing import capture_logs

from agent_updater.commands import run_command


class TestRunCommand:
    """Tests for run_command()."""

    async def test_zero_exit_is_success(self) -> None:
        assert await run_command(["true"]) is True

    async def test_non_zero_exit_is_failure(self) -> None:
        with capture_logs() as logs:
            ok = await run_command(["sh", "-c", "exit 3"])

        assert ok is False
        failed = [entry for entry in logs if entry["event"] == "command_failed"]
        assert failed[0]["returncode"] == 3

    async def test_missing_executable_is_failure(self) -> None:
        with capture_logs() as logs:
            ok = await run_command(["/nonexistent/bin/package-manager", "install"])

        assert ok is False
        assert any(entry["event"] == "command_error" for entry in logs)

    async def test_output_lines_are_logged(self) -> None:
        with capture_logs() as logs:
            ok = await run_command(["sh", "-c", "echo installing; echo warning >&2"])

        assert ok is True
        lines = [entry["line"] for entry in logs if entry["event"] == "command_output"]
        assert lines == ["installing", "warning"]

    async def test_long_line_without_newline(self) -> None:
        script = "head -c 200000 /dev/zero | tr '\\0' x; printf 'done\\n'"

        with capture_logs() as logs:
            ok = await run_command(["sh", "-c", script])

        assert ok is True
        lines = [entry["line"] for entry in logs if entry["event"] == "command_output"]
        assert "".join(lines).endswith("done")
        assert all(len(line) <= 2000 for line in lines)

    async def test_carriage_return_progress_is_split(self) -> None:
        with capture_logs() as logs:
            ok = await run_command(["sh", "-c", "printf '10%%\\r50%%\\r100%%\\n'"])

        assert ok is True
        lines = [entry["line"] for entry in logs if entry["event"] == "command_output"]
        assert lines == ["10%", "50%", "100%"]

    async def test_unreadable_output_kills_and_reaps_child(self) -> None:
        real_exec = asyncio.create_subprocess_exec
        procs: list[asyncio.subprocess.Process] = []

        async def spawn(*args, **kwargs):
            proc = await real_exec(*args, **kwargs)
            procs.append(proc)
            return proc

        with (
            patch("agent_updater.commands.asyncio.create_subprocess_exec", side_effect=spawn),
            patch(
                "agent_updater.commands._log_output",
                new_callable=AsyncMock,
                side_effect=ValueError("chunk exceed the limit"),
            ),
            capture_logs() as logs,
        ):
            ok = await asyncio.wait_for(run_command(["sleep", "30"]), timeout=10)

        assert ok is False
        assert procs[0].returncode is not None
        assert any(entry["event"] == "command_output_error" for entry in logs)
