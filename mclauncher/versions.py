import asyncio
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import aiohttp

from .exceptions import NetworkFailure
from .reporting import LogSink, report
from .version_cache import VersionCache, VersionSummary

log = logging.getLogger(__name__)

VERSION_MANIFEST_URL = 'https://piston-meta.mojang.com/mc/game/version_manifest_v2.json'


@dataclass
class VersionListResponse:
    versions: Optional[List[VersionSummary]]
    etag: Optional[str]
    status: int

    @property
    def not_modified(self) -> bool:
        return self.status == 304


async def fetch_version_list(session: aiohttp.ClientSession, if_none_match: Optional[str] = None,
                             url: str = VERSION_MANIFEST_URL) -> VersionListResponse:
    """Fetches the version list, conditionally when an ETag is given."""
    headers = {"If-None-Match": if_none_match} if if_none_match else None
    try:
        async with session.get(url, headers=headers) as response:
            if response.status == 304:
                return VersionListResponse(None, if_none_match, 304)
            if response.status >= 400:
                raise NetworkFailure(f"HTTP {response.status} for {url}", url=url, status=response.status)
            body = await response.read()
            etag = response.headers.get('ETag')
            status = response.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkFailure(f"Could not fetch version list: {e}", url=url) from e

    try:
        document = json.loads(body)
        versions = [VersionSummary.from_dict(entry) for entry in document.get('versions', [])]
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise NetworkFailure(f"Malformed version list from {url}: {e}", url=url) from e
    return VersionListResponse(versions, etag, status)


async def get_available_versions(
    session: aiohttp.ClientSession,
    cache: VersionCache,
    force_refresh: bool = False,
    sink: Optional[LogSink] = None,
    url: str = VERSION_MANIFEST_URL,
) -> List[VersionSummary]:
    """
    Returns the version list, going to the network only when the cache says so.

    Fresh cache: no request. Stale cache: conditional request with the stored
    ETag, where a 304 keeps the cached list and restarts its TTL. No cache (or
    `force_refresh`): full request. If the network fails while stale data is
    on disk, the stale list is returned instead.
    """
    if not force_refresh:
        cached = cache.get_cached_versions()
        if cached is not None:
            report(sink, f"Using cached version list ({len(cached)} versions)", logger=log)
            return cached

    etag = None
    if not force_refresh and cache.needs_validation():
        etag = cache.get_stored_etag()
        report(sink, "Version cache expired, revalidating...", logger=log)

    try:
        response = await fetch_version_list(session, etag, url=url)
    except NetworkFailure as e:
        stale = cache.load_stale_versions()
        if stale is None:
            raise
        report(sink, f"Could not refresh version list ({e}); using cached copy", logging.WARNING, logger=log)
        return stale

    if response.not_modified:
        stale = cache.load_stale_versions()
        if stale is not None:
            cache.save_to_cache(stale, response.etag)
            report(sink, "Version list not modified", logger=log)
            return stale
        # Cache vanished between the check and the response
        response = await fetch_version_list(session, None, url=url)

    versions = response.versions or []
    cache.save_to_cache(versions, response.etag)
    report(sink, f"Fetched {len(versions)} versions", logger=log)
    return versions


def find_version(versions: List[VersionSummary], version_id: str) -> Optional[VersionSummary]:
    return next((v for v in versions if v.id == version_id), None)
