"""Tests for agent_updater.detector: package-manager detection."""

from __future__ import annotations

import itertools
from unittest.mock import AsyncMock, patch

import pytest

from agent_updater.detector import (
    HostProbe,
    detect_package_type,
    probe_host,
    select_package_type,
)
from agent_updater.errors import AmbiguousEnvironmentError, DetectionFailure
from agent_updater.models import PackageType

ALL_PROBES = [
    HostProbe(rpm=rpm, apt=apt, gdebi=gdebi, zypper=zypper)
    for rpm, apt, gdebi, zypper in itertools.product([False, True], repeat=4)
]


class TestSelectPackageType:
    """Tests for select_package_type()."""

    @pytest.mark.parametrize("probe", ALL_PROBES)
    def test_single_concrete_type_or_failure(self, probe: HostProbe) -> None:
        try:
            package_type, needs_provisioning = select_package_type(probe)
        except (AmbiguousEnvironmentError, DetectionFailure):
            return
        assert package_type in (PackageType.RPM, PackageType.DEB, PackageType.ZYPPER)
        assert isinstance(needs_provisioning, bool)

    @pytest.mark.parametrize("gdebi", [False, True])
    @pytest.mark.parametrize("zypper", [False, True])
    def test_rpm_and_apt_is_ambiguous(self, gdebi: bool, zypper: bool) -> None:
        with pytest.raises(AmbiguousEnvironmentError):
            select_package_type(HostProbe(rpm=True, apt=True, gdebi=gdebi, zypper=zypper))

    def test_rpm_and_gdebi_is_ambiguous(self) -> None:
        with pytest.raises(AmbiguousEnvironmentError):
            select_package_type(HostProbe(rpm=True, gdebi=True))

    def test_nothing_detected(self) -> None:
        with pytest.raises(DetectionFailure, match="No supported package manager"):
            select_package_type(HostProbe())

    @pytest.mark.parametrize(
        ("probe", "expected"),
        [
            (HostProbe(rpm=True), (PackageType.RPM, False)),
            (HostProbe(rpm=True, zypper=True), (PackageType.RPM, False)),
            (HostProbe(zypper=True), (PackageType.ZYPPER, False)),
            (HostProbe(zypper=True, apt=True), (PackageType.ZYPPER, False)),
            (HostProbe(gdebi=True), (PackageType.DEB, False)),
            (HostProbe(apt=True, gdebi=True), (PackageType.DEB, False)),
            (HostProbe(apt=True), (PackageType.DEB, True)),
        ],
    )
    def test_preference_order(self, probe: HostProbe, expected: tuple[PackageType, bool]) -> None:
        assert select_package_type(probe) == expected


class TestDetectPackageType:
    """Tests for detect_package_type()."""

    async def test_no_provisioning_needed(self) -> None:
        runner = AsyncMock(return_value=True)

        result = await detect_package_type(HostProbe(rpm=True), runner=runner)

        assert result is PackageType.RPM
        runner.assert_not_awaited()

    async def test_apt_only_provisions_gdebi(self) -> None:
        runner = AsyncMock(return_value=True)

        result = await detect_package_type(HostProbe(apt=True), runner=runner)

        assert result is PackageType.DEB
        runner.assert_awaited_once_with(["apt-get", "-y", "install", "gdebi-core"])

    async def test_failed_provisioning_raises(self) -> None:
        runner = AsyncMock(return_value=False)

        with pytest.raises(DetectionFailure, match="gdebi-core"):
            await detect_package_type(HostProbe(apt=True), runner=runner)

    async def test_probes_host_when_no_probe_given(self) -> None:
        with patch("agent_updater.detector.probe_host", return_value=HostProbe(zypper=True)):
            result = await detect_package_type(runner=AsyncMock())

        assert result is PackageType.ZYPPER


class TestProbeHost:
    """Tests for probe_host()."""

    def test_reads_path(self) -> None:
        present = {"apt-get": "/usr/bin/apt-get", "gdebi": "/usr/bin/gdebi"}

        with patch("agent_updater.detector.shutil.which", side_effect=present.get):
            probe = probe_host()

        assert probe == HostProbe(rpm=False, apt=True, gdebi=True, zypper=False)
