"""Update orchestrator: one self-update run from detection to sanity check.

Lifecycle:
1. Resolve the package type (only when ``auto`` was requested)
2. Resolve the region
3. Fetch the version manifest from the region's bucket
4. Fetch the artifact the manifest points to
5. Install it with the package manager, then delete the local file
6. Wait and run the post-install sanity check (rpm and deb only)

Any :class:`UpdaterError` moves the run to ``failed`` with the error's exit
code. There is no retry; the scheduler that invoked us runs us again later.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path

import httpx
import structlog

from agent_updater.adapters import PackageManagerAdapter, get_adapter
from agent_updater.commands import CommandRunner, run_command
from agent_updater.config import Settings, get_settings
from agent_updater.detector import detect_package_type
from agent_updater.errors import InstallFailure, UpdaterError, UsageError
from agent_updater.logging import get_logger
from agent_updater.models import PackageType, SanityOutcome, UpdateResult, UpdateState
from agent_updater.region import RegionResolver
from agent_updater.sanity import SanityChecker
from agent_updater.storage import (
    ArtifactFetcher,
    ManifestClient,
    build_http_client,
    storage_location,
)

log = get_logger("agent_updater.orchestrator")

Detector = Callable[[], Awaitable[PackageType]]


class UpdateOrchestrator:
    """Runs a single update. Construct one per invocation."""

    def __init__(
        self,
        package_type: PackageType,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        runner: CommandRunner = run_command,
        detector: Detector | None = None,
        region_resolver: RegionResolver | None = None,
        sanity_checker: SanityChecker | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._package_type = package_type
        self._client = client
        self._runner = runner
        self._detector = detector or (lambda: detect_package_type(runner=runner))
        self._region_resolver = region_resolver or RegionResolver(
            override=self._settings.aws_region,
            metadata_url=self._settings.metadata_url,
            token_url=self._settings.metadata_token_url,
            timeout=self._settings.metadata_timeout_seconds,
            default_region=self._settings.default_region,
        )
        self._sanity_checker = sanity_checker or SanityChecker(
            service_control_path=self._settings.service_control_path,
            delay_seconds=self._settings.sanity_check_delay_seconds,
            runner=runner,
            enabled=self._settings.sanity_check_enabled,
        )
        self._log = logger or log
        self._state = (
            UpdateState.RESOLVING_REGION if package_type.is_concrete else UpdateState.RESOLVING_TYPE
        )

    @property
    def state(self) -> UpdateState:
        return self._state

    @property
    def package_type(self) -> PackageType:
        return self._package_type

    # ------------------------------------------------------------------
    # Primary flow
    # ------------------------------------------------------------------

    async def run(self) -> UpdateResult:
        """Run the update and return its result. Only unexpected errors propagate."""
        start = time.monotonic()
        result = UpdateResult(status=self._state, package_type=self._package_type)

        client = self._client or build_http_client(
            connect_timeout=self._settings.http_connect_timeout_seconds,
            read_timeout=self._settings.http_read_timeout_seconds,
        )
        try:
            await self._do_run(result, client)
        except UpdaterError as exc:
            failed_in = self._state
            self._enter(UpdateState.FAILED, result)
            result.error = str(exc)
            result.exit_code = exc.exit_code
            self._log.error(
                "update_failed",
                state=failed_in.value,
                error_type=type(exc).__name__,
                error=str(exc),
                exit_code=exc.exit_code,
            )
        finally:
            if self._client is None:
                await client.aclose()
            result.duration_seconds = round(time.monotonic() - start, 2)
            result.completed_at = datetime.now().isoformat()

        return result

    async def _do_run(self, result: UpdateResult, client: httpx.AsyncClient) -> None:
        settings = self._settings

        package_type = await self._resolve_type(result)
        adapter = get_adapter(package_type)

        self._enter(UpdateState.RESOLVING_REGION, result)
        region = await self._region_resolver.resolve()
        result.region = region
        result.steps_completed.append("resolve_region")

        self._enter(UpdateState.FETCHING_MANIFEST, result)
        manifest_location = storage_location(region, settings.bucket_template, settings.manifest_key)
        result.manifest_url = manifest_location.url
        manifest = await ManifestClient(client).fetch(
            region, settings.bucket_template, settings.manifest_key
        )
        result.steps_completed.append("fetch_manifest")

        self._enter(UpdateState.FETCHING_ARTIFACT, result)
        artifact_location = storage_location(
            region, settings.bucket_template, manifest.artifact_key(package_type)
        )
        artifact_path = Path(settings.download_dir) / artifact_location.basename
        result.artifact_url = artifact_location.url
        result.artifact_path = str(artifact_path)
        await ArtifactFetcher(client).fetch(artifact_location, artifact_path)
        result.steps_completed.append("fetch_artifact")

        self._enter(UpdateState.INSTALLING, result)
        await self._install(adapter, artifact_path)
        result.steps_completed.append("install")

        if adapter.sanity_check:
            self._enter(UpdateState.SANITY_CHECKING, result)
            result.sanity_check = await self._sanity_checker.check(adapter)
            result.steps_completed.append("sanity_check")
        else:
            result.sanity_check = SanityOutcome.SKIPPED

        self._enter(UpdateState.DONE, result)
        result.exit_code = 0
        self._log.info(
            "update_completed",
            package_type=package_type.value,
            region=region,
            artifact=artifact_location.url,
            sanity_check=result.sanity_check.value,
        )

    async def _resolve_type(self, result: UpdateResult) -> PackageType:
        if self._package_type.is_concrete:
            return self._package_type
        if self._package_type is not PackageType.AUTO:
            raise UsageError(f"Package type {self._package_type.value!r} cannot be installed")

        self._enter(UpdateState.RESOLVING_TYPE, result)
        self._package_type = await self._detector()
        result.package_type = self._package_type
        result.steps_completed.append("resolve_type")
        return self._package_type

    async def _install(self, adapter: PackageManagerAdapter, artifact_path: Path) -> None:
        """Install *artifact_path*; the file is removed whatever the outcome."""
        command = adapter.command_for(artifact_path)
        try:
            ok = await self._runner(command)
            if not ok:
                self._log.error(
                    "install_failed",
                    artifact=str(artifact_path),
                    cmd=" ".join(command),
                )
        finally:
            self._remove_artifact(artifact_path)

        if not ok:
            raise InstallFailure(f"Failed to install {artifact_path}", str(artifact_path))
        self._log.info("install_succeeded", artifact=str(artifact_path))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enter(self, state: UpdateState, result: UpdateResult) -> None:
        self._state = state
        result.status = state
        self._log.debug("update_state", state=state.value)

    def _remove_artifact(self, artifact_path: Path) -> None:
        try:
            artifact_path.unlink(missing_ok=True)
        except OSError as exc:
            self._log.warning("artifact_cleanup_failed", path=str(artifact_path), error=str(exc))
        else:
            self._log.debug("artifact_removed", path=str(artifact_path))
