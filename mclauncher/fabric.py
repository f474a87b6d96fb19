import json
import logging
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import aiofiles
import aiofiles.os
import aiohttp

from .exceptions import LauncherError, MissingManifest, NetworkFailure
from .maven import MavenCoordinate
from .network import download_file, fetch_json
from .paths import GameLayout
from .platform_info import Platform, detect_platform
from .reporting import LogSink, report

log = logging.getLogger(__name__)

FABRIC_META_URL = 'https://meta.fabricmc.net'
FALLBACK_REPOSITORIES = (
    'https://maven.fabricmc.net/',
    'https://repo1.maven.org/maven2/',
    'https://libraries.minecraft.net/',
)


@dataclass(frozen=True)
class LoaderVersion:
    version: str
    stable: bool


def fabric_version_id(game_version: str, loader_version: str) -> str:
    return f"fabric-loader-{loader_version}-{game_version}"


class FabricInstaller:
    """Installs Fabric loader profiles on top of an already downloaded game version."""

    def __init__(self, session: aiohttp.ClientSession, platform: Optional[Platform] = None,
                 sink: Optional[LogSink] = None, meta_url: str = FABRIC_META_URL,
                 verify_checksums: bool = True):
        self.session = session
        self.platform = platform or detect_platform()
        self.sink = sink
        self.meta_url = meta_url.rstrip('/')
        self.verify_checksums = verify_checksums

    def _report(self, message: str, level: int = logging.INFO) -> None:
        report(self.sink, message, level, logger=log)

    async def fetch_loader_versions(self) -> List[LoaderVersion]:
        data = await fetch_json(self.session, f"{self.meta_url}/v2/versions/loader")
        return [LoaderVersion(str(node.get('version')), bool(node.get('stable', True))) for node in data]

    async def latest_stable_loader(self) -> LoaderVersion:
        versions = await self.fetch_loader_versions()
        if not versions:
            raise LauncherError("No Fabric loader versions available")
        return next((v for v in versions if v.stable), versions[0])

    async def fetch_profile(self, game_version: str, loader_version: str) -> Dict[str, Any]:
        url = f"{self.meta_url}/v2/versions/loader/{game_version}/{loader_version}/profile/json"
        return await fetch_json(self.session, url)

    def is_installed(self, base_dir: Union[str, pathlib.Path], game_version: str, loader_version: str) -> bool:
        return GameLayout.at(base_dir).manifest_path(fabric_version_id(game_version, loader_version)).is_file()

    async def install(self, game_version: str, base_dir: Union[str, pathlib.Path],
                      loader_version: Optional[str] = None) -> str:
        """
        Saves the loader profile for `game_version` and downloads its libraries.

        The base game version must already be downloaded. Returns the
        loader version id, e.g. ``fabric-loader-0.15.11-1.21``.
        """
        layout = GameLayout.at(base_dir)
        if not layout.manifest_path(game_version).is_file():
            raise MissingManifest(
                f"Minecraft {game_version} must be downloaded before installing Fabric",
                path=layout.manifest_path(game_version))

        if loader_version is None:
            loader_version = (await self.latest_stable_loader()).version

        version_id = fabric_version_id(game_version, loader_version)
        self._report(f"Downloading Fabric {loader_version} for Minecraft {game_version}...")
        profile = await self.fetch_profile(game_version, loader_version)

        profile_path = layout.manifest_path(version_id)
        await aiofiles.os.makedirs(profile_path.parent, exist_ok=True)
        async with aiofiles.open(profile_path, 'w', encoding='utf-8') as f:
            await f.write(json.dumps(profile, indent=2))
        self._report(f"Saved Fabric profile: {profile_path}")

        await self.check_and_download_libraries(profile, layout.base_dir)
        self._report(f"Fabric {version_id} download complete!")
        return version_id

    async def download_library(self, lib: Dict[str, Any], layout: GameLayout) -> bool:
        """
        Fetches one loader library, trying its own repository and then the
        fallback repositories. Returns False if it was already on disk.
        """
        coords = MavenCoordinate.parse(lib['name'])
        dest = coords.resolve_in(layout.libraries_dir)
        if dest.is_file():
            return False

        repositories = [lib['url']] if lib.get('url') else []
        repositories += [repo for repo in FALLBACK_REPOSITORIES if repo not in repositories]

        last_error: Optional[NetworkFailure] = None
        for repo in repositories:
            try:
                await download_file(self.session, coords.url_in(repo), dest, lib.get('sha1'),
                                    verify=self.verify_checksums)
                log.debug(f"Downloaded {coords.file_name} from {repo}")
                return True
            except NetworkFailure as e:
                log.debug(f"{coords} not available from {repo}: {e}")
                last_error = e
        raise NetworkFailure(f"Could not download library {coords} from any repository: {last_error}",
                             url=last_error.url if last_error else None)

    async def check_and_download_libraries(self, loader_manifest: Dict[str, Any],
                                           base_dir: Union[str, pathlib.Path]) -> int:
        """Downloads whichever loader libraries are missing. Returns how many were fetched."""
        layout = GameLayout.at(base_dir)
        libraries = [lib for lib in loader_manifest.get('libraries', [])
                     if lib.get('name') and self.platform.is_library_allowed(lib)]

        missing = [lib for lib in libraries
                   if not MavenCoordinate.parse(lib['name']).resolve_in(layout.libraries_dir).is_file()]
        if not missing:
            log.debug("All loader libraries present")
            return 0

        self._report(f"Downloading {len(missing)} missing Fabric libraries...")
        downloaded = 0
        for lib in missing:
            if await self.download_library(lib, layout):
                downloaded += 1
                if downloaded % 5 == 0 or downloaded == len(missing):
                    self._report(f"Downloaded {downloaded}/{len(missing)} libraries...")
        return downloaded
