"""Remote storage access: manifest and artifact retrieval.

Both retrievals are TLS-verified HTTPS GETs that follow redirects and carry
a bounded read timeout. Failures become :class:`RetrievalError`; there is
no retry within a run.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import BinaryIO

import httpx

from agent_updater import constants
from agent_updater.errors import RetrievalError
from agent_updater.logging import get_logger
from agent_updater.models import StorageLocation, VersionManifest

log = get_logger("agent_updater.storage")


def storage_location(
    region: str,
    bucket_template: str = constants.BUCKET_TEMPLATE,
    key: str = constants.MANIFEST_KEY,
) -> StorageLocation:
    """Build the storage location of *key* in the region's bucket."""
    return StorageLocation(region=region, bucket=bucket_template.format(region=region), key=key)


def build_http_client(
    connect_timeout: float = constants.HTTP_CONNECT_TIMEOUT_SECONDS,
    read_timeout: float = constants.HTTP_READ_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the client used for storage requests."""
    return httpx.AsyncClient(
        verify=True,
        follow_redirects=True,
        timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
        transport=transport,
    )


@asynccontextmanager
async def _open(client: httpx.AsyncClient, url: str) -> AsyncIterator[httpx.Response]:
    """Stream a GET of *url*, translating failures into RetrievalError."""
    try:
        async with client.stream("GET", url) as resp:
            if resp.status_code == 404:
                raise RetrievalError(f"Object not found: {url}", url, "not_found")
            if resp.is_error:
                raise RetrievalError(
                    f"Unexpected HTTP status {resp.status_code} for {url}", url, "http_status"
                )
            yield resp
    except httpx.HTTPError as exc:
        raise RetrievalError(f"Could not retrieve {url}: {exc}", url, "connection") from exc


class ManifestClient:
    """Fetch and parse the version manifest."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(
        self,
        region: str,
        bucket_template: str = constants.BUCKET_TEMPLATE,
        manifest_key: str = constants.MANIFEST_KEY,
    ) -> VersionManifest:
        location = storage_location(region, bucket_template, manifest_key)
        log.info("manifest_fetching", url=location.url)

        try:
            async with _open(self._client, location.url) as resp:
                body = await resp.aread()
        except RetrievalError as exc:
            log.error("manifest_fetch_failed", url=exc.url, kind=exc.kind, error=str(exc))
            raise

        manifest = VersionManifest.parse(body, url=location.url)
        log.info("manifest_fetched", url=location.url, entries=dict(manifest))
        return manifest


class ArtifactFetcher:
    """Stream a package artifact to local disk."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = constants.DOWNLOAD_CHUNK_SIZE,
    ) -> None:
        self._client = client
        self._chunk_size = chunk_size

    async def fetch(self, location: StorageLocation, dest_path: str | Path) -> Path:
        """Download *location* into *dest_path*, overwriting any existing file."""
        dest = Path(dest_path)
        log.info("artifact_fetching", url=location.url, dest=str(dest))

        written = 0
        opened = False
        try:
            async with _open(self._client, location.url) as resp:
                fh = _open_destination(dest, location.url)
                opened = True
                with fh:
                    try:
                        async for chunk in resp.aiter_bytes(self._chunk_size):
                            fh.write(chunk)
                            written += len(chunk)
                    except OSError as exc:
                        raise RetrievalError(
                            f"Cannot write {dest}: {exc}", location.url, "local_io"
                        ) from exc
        except RetrievalError as exc:
            log.error("artifact_fetch_failed", url=exc.url, kind=exc.kind, error=str(exc))
            if opened:
                _discard_partial(dest)
            raise

        log.info("artifact_fetched", url=location.url, dest=str(dest), bytes=written)
        return dest


def _open_destination(dest: Path, url: str) -> BinaryIO:
    """Open *dest* for writing, creating its directory if needed."""
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        return dest.open("wb")
    except OSError as exc:
        raise RetrievalError(f"Cannot write {dest}: {exc}", url, "local_io") from exc


def _discard_partial(dest: Path) -> None:
    """Remove a file left behind by an interrupted download."""
    try:
        dest.unlink(missing_ok=True)
    except OSError as exc:
        log.warning("artifact_partial_cleanup_failed", path=str(dest), error=str(exc))
