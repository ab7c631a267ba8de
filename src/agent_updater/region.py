"""Region resolution.

The region picks the storage endpoint. It comes from an explicit override
when one is configured, otherwise from the instance metadata service's
availability zone. Every failure degrades to the default region.
"""

from __future__ import annotations

import re

import httpx

from agent_updater import constants
from agent_updater.logging import get_logger

log = get_logger("agent_updater.region")

# e.g. us-east-1a: two letters, a word, a number, then the zone letter
_AVAILABILITY_ZONE_RE = re.compile(r"^[a-z]{2}-[a-z]+-\d+[a-z]$")


def region_from_availability_zone(zone: str) -> str | None:
    """Strip the zone letter from *zone*, or return None if it is malformed."""
    zone = zone.strip()
    if not _AVAILABILITY_ZONE_RE.match(zone):
        return None
    return zone[:-1]


class RegionResolver:
    """Resolve the host region once per run."""

    def __init__(
        self,
        override: str | None = None,
        metadata_url: str = constants.METADATA_URL,
        token_url: str = constants.METADATA_TOKEN_URL,
        timeout: float = constants.METADATA_TIMEOUT_SECONDS,
        default_region: str = constants.DEFAULT_REGION,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._override = override
        self._metadata_url = metadata_url.rstrip("/")
        self._token_url = token_url
        self._timeout = timeout
        self._default_region = default_region
        self._client = client

    @property
    def zone_url(self) -> str:
        return f"{self._metadata_url}/placement/availability-zone"

    async def resolve(self) -> str:
        """Return the region. Never raises."""
        if self._override:
            log.info("region_override", region=self._override)
            return self._override

        try:
            zone = await self._fetch_availability_zone()
        except Exception as exc:
            log.warning(
                "region_resolution_degraded",
                reason=str(exc) or type(exc).__name__,
                url=self.zone_url,
                fallback=self._default_region,
            )
            return self._default_region

        region = region_from_availability_zone(zone)
        if region is None:
            log.warning(
                "region_resolution_degraded",
                reason="malformed availability zone",
                zone=zone[:64],
                fallback=self._default_region,
            )
            return self._default_region

        log.info("region_resolved", region=region, zone=zone.strip())
        return region

    async def _fetch_availability_zone(self) -> str:
        if self._client is not None:
            return await self._query(self._client)

        async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
            return await self._query(client)

    async def _query(self, client: httpx.AsyncClient) -> str:
        headers: dict[str, str] = {}
        token = await self._session_token(client)
        if token:
            headers["X-aws-ec2-metadata-token"] = token

        resp = await client.get(self.zone_url, headers=headers, timeout=self._timeout)
        resp.raise_for_status()
        return resp.text

    async def _session_token(self, client: httpx.AsyncClient) -> str | None:
        """Request an IMDSv2 token; hosts without IMDSv2 are queried without one."""
        try:
            resp = await client.put(
                self._token_url,
                headers={
                    "X-aws-ec2-metadata-token-ttl-seconds": str(
                        constants.METADATA_TOKEN_TTL_SECONDS
                    )
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            log.debug("metadata_token_unavailable", error=str(exc))
            return None

        if resp.status_code != 200:
            log.debug("metadata_token_unavailable", status=resp.status_code)
            return None
        return resp.text.strip() or None
