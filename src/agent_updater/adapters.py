"""Package-manager adapters.

Each adapter knows the install command for one package-manager family and
whether a post-install sanity check applies to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from agent_updater.errors import UsageError
from agent_updater.models import PackageType


@dataclass(frozen=True)
class PackageManagerAdapter:
    """Install strategy for one package-manager family."""

    package_type: PackageType
    install_command: tuple[str, ...]
    sanity_check: bool = True

    @property
    def manifest_key(self) -> str:
        return self.package_type.manifest_key

    def command_for(self, artifact_path: str | Path) -> list[str]:
        """Return the install command with *artifact_path* as its last token."""
        return [*self.install_command, str(artifact_path)]


RPM_ADAPTER = PackageManagerAdapter(
    package_type=PackageType.RPM,
    install_command=("yum", "-y", "localinstall"),
)

# Arguments are passed without a shell, so the Dpkg options carry no quotes.
DEB_ADAPTER = PackageManagerAdapter(
    package_type=PackageType.DEB,
    install_command=(
        "gdebi",
        "-n",
        "-o",
        "Dpkg::Options::=--force-confdef",
        "-o",
        "Dpkg::Options::=--force-conffold",
    ),
)

ZYPPER_ADAPTER = PackageManagerAdapter(
    package_type=PackageType.ZYPPER,
    install_command=("zypper", "install", "-n"),
    sanity_check=False,
)

ADAPTERS: dict[PackageType, PackageManagerAdapter] = {
    adapter.package_type: adapter for adapter in (RPM_ADAPTER, DEB_ADAPTER, ZYPPER_ADAPTER)
}


def get_adapter(package_type: PackageType) -> PackageManagerAdapter:
    """Return the adapter for a concrete package type."""
    try:
        return ADAPTERS[package_type]
    except KeyError:
        raise UsageError(
            f"No install backend for package type {package_type.value!r}"
        ) from None
