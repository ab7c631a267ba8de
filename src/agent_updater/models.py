"""Data models shared across the update workflow."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from agent_updater.constants import DEFAULT_REGION
from agent_updater.errors import RetrievalError


class PackageType(Enum):
    """Package-manager ecosystem requested on the command line."""

    RPM = "rpm"
    DEB = "deb"
    ZYPPER = "zypper"
    AUTO = "auto"
    HELP = "help"

    @property
    def is_concrete(self) -> bool:
        return self in (PackageType.RPM, PackageType.DEB, PackageType.ZYPPER)

    @property
    def manifest_key(self) -> str:
        """Manifest entry holding this type's artifact. zypper installs rpms."""
        if self is PackageType.ZYPPER:
            return PackageType.RPM.value
        return self.value


class UpdateState(Enum):
    """States of a single update run."""

    RESOLVING_TYPE = "resolving_type"
    RESOLVING_REGION = "resolving_region"
    FETCHING_MANIFEST = "fetching_manifest"
    FETCHING_ARTIFACT = "fetching_artifact"
    INSTALLING = "installing"
    SANITY_CHECKING = "sanity_checking"
    DONE = "done"
    FAILED = "failed"


class SanityOutcome(Enum):
    """Result of the post-install sanity check."""

    RUNNING = "running"
    STARTED = "started"
    START_FAILED = "start_failed"
    SKIPPED = "skipped"
    DISABLED = "disabled"
    ERROR = "error"


@dataclass(frozen=True)
class StorageLocation:
    """A retrievable object in the regional storage service."""

    region: str
    bucket: str
    key: str

    @property
    def host(self) -> str:
        # The default region keeps the legacy un-suffixed endpoint.
        if self.region == DEFAULT_REGION:
            return "s3.amazonaws.com"
        return f"s3-{self.region}.amazonaws.com"

    @property
    def url(self) -> str:
        return f"https://{self.host}/{self.bucket}/{self.key.lstrip('/')}"

    @property
    def basename(self) -> str:
        return self.key.rstrip("/").rsplit("/", 1)[-1]


class VersionManifest(Mapping[str, Any]):
    """Mapping of package-type name to artifact key.

    Entries other than the package types (a release ``version``, for
    instance) are kept as they appear in the document.
    """

    def __init__(self, entries: Mapping[str, Any], url: str = "") -> None:
        self._entries = dict(entries)
        self._url = url

    @classmethod
    def parse(cls, body: str | bytes, url: str = "") -> VersionManifest:
        """Parse a manifest document, which must be a JSON object."""
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise RetrievalError(f"Manifest is not valid JSON: {exc}", url, "malformed") from exc

        if not isinstance(data, dict):
            raise RetrievalError("Manifest is not a JSON object", url, "malformed")
        return cls(data, url=url)

    def artifact_key(self, package_type: PackageType) -> str:
        """Return the artifact key for *package_type*."""
        name = package_type.manifest_key
        if name not in self._entries:
            raise RetrievalError(f"Manifest has no {name!r} artifact", self._url, "not_found")

        key = self._entries[name]
        if not isinstance(key, str) or not key:
            raise RetrievalError(
                f"Manifest entry {name!r} is not an artifact key: {key!r}",
                self._url,
                "malformed",
            )
        return key

    def __getitem__(self, name: str) -> Any:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"VersionManifest({self._entries!r})"


@dataclass
class UpdateResult:
    """Outcome of one update run."""

    status: UpdateState
    package_type: PackageType
    region: str | None = None
    manifest_url: str | None = None
    artifact_url: str | None = None
    artifact_path: str | None = None
    error: str | None = None
    exit_code: int = 0
    sanity_check: SanityOutcome | None = None
    steps_completed: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: str | None = None
    duration_seconds: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is UpdateState.DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "package_type": self.package_type.value,
            "region": self.region,
            "manifest_url": self.manifest_url,
            "artifact_url": self.artifact_url,
            "artifact_path": self.artifact_path,
            "error": self.error,
            "exit_code": self.exit_code,
            "sanity_check": self.sanity_check.value if self.sanity_check else None,
            "steps_completed": self.steps_completed,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_seconds": self.duration_seconds,
        }
