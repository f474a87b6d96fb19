from typing import Optional


class LauncherError(Exception):
    """Base class for every error the launcher reports to its caller."""


class ConfigError(LauncherError):
    pass


class NetworkFailure(LauncherError):
    """An HTTP request failed or returned an error status."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ChecksumMismatch(NetworkFailure):
    pass


class MissingManifest(LauncherError):
    """An expected version manifest is not on disk."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class VersionNotInstalled(LauncherError):
    pass


class InvalidCoordinate(LauncherError, ValueError):
    pass


class CacheCorrupt(LauncherError):
    # Never leaves the cache layer; a corrupt cache is reported as a miss.
    pass


class PlatformUnresolvable(LauncherError):
    pass


class JavaNotFound(LauncherError):
    pass
