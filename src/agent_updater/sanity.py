"""Post-install sanity check.

After an install the service manager may still be restarting the agent, so
the check waits before probing. A stopped agent is started with
``start-no-update`` so that starting it does not trigger another update.
Nothing here is fatal; problems are logged and reported in the outcome.
"""

from __future__ import annotations

import asyncio

from agent_updater import constants
from agent_updater.adapters import PackageManagerAdapter
from agent_updater.commands import CommandRunner, run_command
from agent_updater.logging import get_logger
from agent_updater.models import SanityOutcome

log = get_logger("agent_updater.sanity")


class SanityChecker:
    """Probe the agent after an install and start it if it is down."""

    def __init__(
        self,
        service_control_path: str = constants.SERVICE_CONTROL_PATH,
        delay_seconds: float = constants.SANITY_CHECK_DELAY_SECONDS,
        runner: CommandRunner = run_command,
        enabled: bool = True,
    ) -> None:
        self._service_control_path = service_control_path
        self._delay = delay_seconds
        self._runner = runner
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def check(self, adapter: PackageManagerAdapter) -> SanityOutcome:
        """Run the check for *adapter*. Never raises."""
        if not self._enabled:
            log.info("sanity_check_disabled")
            return SanityOutcome.DISABLED
        if not adapter.sanity_check:
            log.info("sanity_check_skipped", package_type=adapter.package_type.value)
            return SanityOutcome.SKIPPED

        try:
            return await self._probe_and_recover()
        except Exception as exc:
            log.warning("sanity_check_error", error=str(exc) or type(exc).__name__)
            return SanityOutcome.ERROR

    async def _probe_and_recover(self) -> SanityOutcome:
        log.info("sanity_check_waiting", delay_seconds=self._delay)
        await asyncio.sleep(self._delay)

        if await self._runner([self._service_control_path, "status"]):
            log.info("sanity_check_agent_running")
            return SanityOutcome.RUNNING

        log.info("sanity_check_agent_not_running", action="start-no-update")
        if await self._runner([self._service_control_path, "start-no-update"]):
            log.info("sanity_check_agent_started")
            return SanityOutcome.STARTED

        log.warning("sanity_check_start_failed", path=self._service_control_path)
        return SanityOutcome.START_FAILED
