"""Tests for agent_updater.sanity: post-install probe and recovery."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from agent_updater.adapters import DEB_ADAPTER, RPM_ADAPTER, ZYPPER_ADAPTER
from agent_updater.models import SanityOutcome
from agent_updater.sanity import SanityChecker

CTL = "/opt/agent/bin/agent-ctl"


def _checker(runner: AsyncMock, **kwargs) -> SanityChecker:
    return SanityChecker(service_control_path=CTL, delay_seconds=180, runner=runner, **kwargs)


class TestSanityChecker:
    """Tests for SanityChecker.check()."""

    async def test_running_agent(self) -> None:
        runner = AsyncMock(return_value=True)

        with patch("agent_updater.sanity.asyncio.sleep", new_callable=AsyncMock) as sleep:
            outcome = await _checker(runner).check(RPM_ADAPTER)

        assert outcome is SanityOutcome.RUNNING
        sleep.assert_awaited_once_with(180)
        runner.assert_awaited_once_with([CTL, "status"])

    async def test_stopped_agent_is_started_without_update(self) -> None:
        runner = AsyncMock(side_effect=[False, True])

        with patch("agent_updater.sanity.asyncio.sleep", new_callable=AsyncMock):
            outcome = await _checker(runner).check(DEB_ADAPTER)

        assert outcome is SanityOutcome.STARTED
        assert [call.args[0] for call in runner.await_args_list] == [
            [CTL, "status"],
            [CTL, "start-no-update"],
        ]

    async def test_start_failure_is_reported_not_raised(self) -> None:
        runner = AsyncMock(return_value=False)

        with patch("agent_updater.sanity.asyncio.sleep", new_callable=AsyncMock):
            outcome = await _checker(runner).check(RPM_ADAPTER)

        assert outcome is SanityOutcome.START_FAILED

    async def test_runner_exception_is_contained(self) -> None:
        runner = AsyncMock(side_effect=RuntimeError("boom"))

        with patch("agent_updater.sanity.asyncio.sleep", new_callable=AsyncMock):
            outcome = await _checker(runner).check(RPM_ADAPTER)

        assert outcome is SanityOutcome.ERROR

    async def test_zypper_is_skipped_without_waiting(self) -> None:
        runner = AsyncMock(return_value=True)

        with patch("agent_updater.sanity.asyncio.sleep", new_callable=AsyncMock) as sleep:
            outcome = await _checker(runner).check(ZYPPER_ADAPTER)

        assert outcome is SanityOutcome.SKIPPED
        sleep.assert_not_awaited()
        runner.assert_not_awaited()

    async def test_disabled(self) -> None:
        runner = AsyncMock(return_value=True)

        outcome = await _checker(runner, enabled=False).check(RPM_ADAPTER)

        assert outcome is SanityOutcome.DISABLED
        runner.assert_not_awaited()
