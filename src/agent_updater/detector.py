"""Package-manager detection for ``auto`` mode.

Refuses to guess when both rpm- and Debian-family tools are installed.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass

from agent_updater.commands import CommandRunner, run_command
from agent_updater.constants import GDEBI_PROVISION_COMMAND
from agent_updater.errors import AmbiguousEnvironmentError, DetectionFailure
from agent_updater.logging import get_logger
from agent_updater.models import PackageType

log = get_logger("agent_updater.detector")


@dataclass(frozen=True)
class HostProbe:
    """Which package-manager executables are present on the host."""

    rpm: bool = False
    apt: bool = False
    gdebi: bool = False
    zypper: bool = False


def probe_host() -> HostProbe:
    """Look up the supported package managers on ``PATH``."""
    probe = HostProbe(
        rpm=shutil.which("yum") is not None,
        apt=shutil.which("apt-get") is not None,
        gdebi=shutil.which("gdebi") is not None,
        zypper=shutil.which("zypper") is not None,
    )
    log.debug("host_probed", rpm=probe.rpm, apt=probe.apt, gdebi=probe.gdebi, zypper=probe.zypper)
    return probe


def select_package_type(probe: HostProbe) -> tuple[PackageType, bool]:
    """Pick the package type for *probe*.

    Returns ``(package_type, needs_provisioning)``. ``needs_provisioning`` is
    True when only apt-get is present and gdebi has to be installed first.

    Raises:
        AmbiguousEnvironmentError: rpm and Debian tooling are both present.
        DetectionFailure: nothing supported is installed.
    """
    if probe.rpm and (probe.apt or probe.gdebi):
        raise AmbiguousEnvironmentError(
            "Found both yum and apt-get/gdebi on this host; "
            "pass an explicit package type instead of auto"
        )
    if probe.rpm:
        return PackageType.RPM, False
    if probe.zypper:
        return PackageType.ZYPPER, False
    if probe.gdebi:
        return PackageType.DEB, False
    if probe.apt:
        return PackageType.DEB, True
    raise DetectionFailure("No supported package manager detected")


async def detect_package_type(
    probe: HostProbe | None = None,
    runner: CommandRunner = run_command,
) -> PackageType:
    """Detect the host's package type, provisioning gdebi when required."""
    if probe is None:
        probe = probe_host()

    package_type, needs_provisioning = select_package_type(probe)
    if needs_provisioning:
        log.info("provisioning_gdebi", cmd=" ".join(GDEBI_PROVISION_COMMAND))
        if not await runner(list(GDEBI_PROVISION_COMMAND)):
            raise DetectionFailure("apt-get could not install gdebi-core")

    log.info("package_type_detected", package_type=package_type.value)
    return package_type
