import asyncio
import hashlib
import json
import logging
import pathlib
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os
import aiohttp

from . import USER_AGENT
from .exceptions import ChecksumMismatch, NetworkFailure

log = logging.getLogger(__name__)

CHUNK_SIZE = 8192
DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=60)


def create_session() -> aiohttp.ClientSession:
    """A session carrying the launcher's User-Agent; the caller closes it."""
    return aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}, timeout=DEFAULT_TIMEOUT)


async def get_file_sha1(file_path: pathlib.Path) -> str:
    """Calculates the SHA1 hash of a file asynchronously."""
    sha1_hash = hashlib.sha1()
    async with aiofiles.open(file_path, 'rb') as f:
        while True:
            chunk = await f.read(CHUNK_SIZE)
            if not chunk:
                break
            sha1_hash.update(chunk)
    return sha1_hash.hexdigest()


async def file_exists(file_path: pathlib.Path) -> bool:
    return await aiofiles.os.path.isfile(file_path)


def _check_status(response, url: str) -> None:
    if response.status >= 400:
        raise NetworkFailure(f"HTTP {response.status} for {url}", url=url, status=response.status)


async def fetch_json(session: aiohttp.ClientSession, url: str,
                     headers: Optional[Dict[str, str]] = None) -> Any:
    """GETs a JSON document. Any transport error or error status raises NetworkFailure."""
    try:
        async with session.get(url, headers=headers) as response:
            _check_status(response, url)
            body = await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkFailure(f"Request to {url} failed: {e}", url=url) from e
    try:
        return json.loads(body)
    except ValueError as e:
        raise NetworkFailure(f"Invalid JSON from {url}: {e}", url=url) from e


async def _remove_quietly(path: pathlib.Path) -> None:
    try:
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
    except OSError as e:
        log.warning(f"Could not remove incomplete file {path}: {e}")


def _remove_partial_sync(path: pathlib.Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log.warning(f"Could not remove incomplete file {path}: {e}")


async def download_file(
    session: aiohttp.ClientSession,
    url: str,
    dest_path: pathlib.Path,
    expected_sha1: Optional[str] = None,
    verify: bool = True,
) -> bool:
    """
    Downloads `url` to `dest_path` unless the file is already there.

    An existing file is trusted as complete, unless `expected_sha1` is given
    and `verify` is on, in which case a mismatching file is downloaded again.
    On any failure the partially written destination is removed and
    NetworkFailure (or ChecksumMismatch) is raised. A cancelled download also
    removes what it wrote before the cancellation propagates.

    Returns:
        True if a request was made, False if the existing file was kept.
    """
    expected_sha1 = expected_sha1.lower() if (expected_sha1 and verify) else None

    if await file_exists(dest_path):
        if not expected_sha1:
            return False
        current_sha1 = await get_file_sha1(dest_path)
        if current_sha1 == expected_sha1:
            return False
        log.warning(f"SHA1 mismatch for existing file {dest_path.name}. "
                    f"Expected {expected_sha1}, got {current_sha1}. Redownloading.")

    await aiofiles.os.makedirs(dest_path.parent, exist_ok=True)
    try:
        async with session.get(url) as response:
            _check_status(response, url)
            async with aiofiles.open(dest_path, 'wb') as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    await f.write(chunk)

        if expected_sha1:
            downloaded_sha1 = await get_file_sha1(dest_path)
            if downloaded_sha1 != expected_sha1:
                raise ChecksumMismatch(
                    f"SHA1 mismatch for {dest_path.name}. Expected {expected_sha1}, got {downloaded_sha1}",
                    url=url)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        await _remove_quietly(dest_path)
        raise NetworkFailure(f"Error downloading {url}: {e}", url=url) from e
    except NetworkFailure:
        await _remove_quietly(dest_path)
        raise
    except asyncio.CancelledError:
        # No awaiting here, the task may be cancelled again
        _remove_partial_sync(dest_path)
        raise

    log.debug(f"Downloaded {url} -> {dest_path}")
    return True
