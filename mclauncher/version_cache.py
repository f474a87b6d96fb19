"""
Two-file cache of the remote version list.

Freshness (a 6 hour TTL on the metadata timestamp) is tracked separately from
identity (the server's ETag): inside the TTL the list is used without any
request, after it the caller revalidates with a conditional request.
"""
import json
import logging
import pathlib
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from .exceptions import CacheCorrupt

log = logging.getLogger(__name__)

CACHE_FILE = 'version_cache.json'
METADATA_FILE = 'version_cache_metadata.json'
CACHE_TTL = timedelta(hours=6)


@dataclass(frozen=True)
class VersionSummary:
    id: str
    type: str
    url: str
    release_time: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionSummary":
        return cls(
            id=str(data['id']),
            type=str(data['type']),
            url=str(data['url']),
            release_time=str(data['releaseTime']),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "type": self.type, "url": self.url, "releaseTime": self.release_time}

    @property
    def is_release(self) -> bool:
        return self.type == 'release'


@dataclass(frozen=True)
class CacheRecord:
    versions: List[VersionSummary]
    timestamp: int  # epoch millis
    etag: Optional[str]


def _now_millis() -> int:
    return int(time.time() * 1000)


class VersionCache:
    def __init__(self, cache_dir: Union[str, pathlib.Path],
                 ttl: timedelta = CACHE_TTL,
                 clock: Callable[[], int] = _now_millis):
        self.cache_dir = pathlib.Path(cache_dir)
        self.cache_path = self.cache_dir / CACHE_FILE
        self.metadata_path = self.cache_dir / METADATA_FILE
        self.ttl = ttl
        self.clock = clock

    # --- parsing ---

    def _read_metadata(self) -> Dict[str, Any]:
        try:
            metadata = json.loads(self.metadata_path.read_text(encoding='utf-8'))
            if not isinstance(metadata, dict):
                raise CacheCorrupt(f"{self.metadata_path} is not a JSON object")
            int(metadata['timestamp'])
            return metadata
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheCorrupt(f"Unreadable cache metadata {self.metadata_path}: {e}") from e

    def _read_versions(self) -> List[VersionSummary]:
        try:
            data = json.loads(self.cache_path.read_text(encoding='utf-8'))
            if not isinstance(data, list):
                raise CacheCorrupt(f"{self.cache_path} is not a JSON array")
            return [VersionSummary.from_dict(entry) for entry in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheCorrupt(f"Unreadable version cache {self.cache_path}: {e}") from e

    def _load_record(self) -> Optional[CacheRecord]:
        if not self.cache_path.is_file() or not self.metadata_path.is_file():
            return None
        try:
            metadata = self._read_metadata()
            versions = self._read_versions()
        except CacheCorrupt as e:
            log.warning(f"Ignoring version cache: {e}")
            return None
        etag = metadata.get('etag')
        return CacheRecord(versions=versions, timestamp=int(metadata['timestamp']),
                           etag=etag if isinstance(etag, str) else None)

    def _expired(self, timestamp: int) -> bool:
        return self.clock() - timestamp > self.ttl.total_seconds() * 1000

    # --- public contract ---

    def get_cached_versions(self) -> Optional[List[VersionSummary]]:
        """The cached list if both files parse and the TTL has not elapsed, else None."""
        record = self._load_record()
        if record is None or self._expired(record.timestamp):
            return None
        return record.versions

    def load_stale_versions(self) -> Optional[List[VersionSummary]]:
        """The cached list regardless of age; None if missing or corrupt."""
        record = self._load_record()
        return record.versions if record else None

    def get_stored_etag(self) -> Optional[str]:
        record = self._load_record()
        return record.etag if record else None

    def needs_validation(self) -> bool:
        """True only when metadata exists, parses, and is older than the TTL."""
        if not self.metadata_path.is_file():
            return False
        try:
            metadata = self._read_metadata()
        except CacheCorrupt:
            return False
        return self._expired(int(metadata['timestamp']))

    def save_to_cache(self, versions: List[VersionSummary], etag: Optional[str]) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(
                json.dumps([v.to_dict() for v in versions], indent=2), encoding='utf-8')
            self.metadata_path.write_text(
                json.dumps({"timestamp": self.clock(), "etag": etag}, indent=2), encoding='utf-8')
            log.info(f"Cache saved with {len(versions)} versions")
        except OSError as e:
            log.error(f"Error saving version cache: {e}")

    def clear_cache(self) -> None:
        for path in (self.cache_path, self.metadata_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                log.error(f"Error clearing cache file {path}: {e}")
        log.info("Version cache cleared")
