import asyncio
import json
import logging
import pathlib
from typing import Any, Dict, List, Optional, Union

import aiofiles
import aiofiles.os
import aiohttp
from tqdm.asyncio import tqdm

from .network import download_file, fetch_json
from .paths import GameLayout
from .platform_info import Platform, detect_platform
from .reporting import LogSink, report
from .version_cache import VersionSummary

log = logging.getLogger(__name__)

RESOURCES_URL = 'https://resources.download.minecraft.net'
ASSET_PROGRESS_EVERY = 100


def asset_url(asset_hash: str) -> str:
    return f"{RESOURCES_URL}/{asset_hash[:2]}/{asset_hash}"


class ArtifactFetcher:
    """
    Materializes everything a version manifest needs under a base directory.

    Every file is skip-if-exists: repeated runs only fetch what is missing.
    A file left truncated by a killed run is only caught when the manifest
    supplies a sha1 for it (assets always do, being content-addressed).
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        platform: Optional[Platform] = None,
        sink: Optional[LogSink] = None,
        verify_checksums: bool = True,
        max_concurrent_downloads: int = 8,
        show_progress: bool = True,
    ):
        self.session = session
        self.platform = platform or detect_platform()
        self.sink = sink
        self.verify_checksums = verify_checksums
        self.max_concurrent_downloads = max(1, max_concurrent_downloads)
        self.show_progress = show_progress

    def _report(self, message: str, level: int = logging.INFO) -> None:
        report(self.sink, message, level, logger=log)

    async def download_file(self, url: str, dest: pathlib.Path, sha1: Optional[str] = None) -> bool:
        downloaded = await download_file(self.session, url, dest, sha1, verify=self.verify_checksums)
        if downloaded:
            log.debug(f"Downloaded: {dest}")
        return downloaded

    async def fetch_manifest(self, url: str) -> Dict[str, Any]:
        self._report(f"Fetching manifest: {url}")
        return await fetch_json(self.session, url)

    async def save_manifest(self, manifest: Dict[str, Any], layout: GameLayout, version_id: str) -> pathlib.Path:
        manifest_path = layout.manifest_path(version_id)
        await aiofiles.os.makedirs(manifest_path.parent, exist_ok=True)
        async with aiofiles.open(manifest_path, 'w', encoding='utf-8') as f:
            await f.write(json.dumps(manifest, indent=2))
        self._report(f"Saved manifest: {manifest_path}")
        return manifest_path

    async def download_client(self, manifest: Dict[str, Any], layout: GameLayout, version_id: str) -> Optional[pathlib.Path]:
        client_info = manifest.get('downloads', {}).get('client')
        if not client_info or 'url' not in client_info:
            self._report(f"Manifest for {version_id} has no client download", logging.WARNING)
            return None
        jar_path = layout.client_jar_path(version_id)
        self._report('Checking client JAR...')
        await self.download_file(client_info['url'], jar_path, client_info.get('sha1'))
        return jar_path

    async def download_libraries(self, manifest: Dict[str, Any], layout: GameLayout) -> List[str]:
        """
        Downloads every allowed library and returns the classpath entries.

        All classifier variants are fetched so a platform switch needs no
        re-download, but only the current platform's native joins the classpath.
        """
        libraries = [lib for lib in manifest.get('libraries', []) if self.platform.is_library_allowed(lib)]
        self._report(f"Processing {len(libraries)} libraries...")
        classpath_entries: List[str] = []

        pbar = tqdm(total=len(libraries), desc="Libraries", unit="lib", leave=False, disable=not self.show_progress)
        try:
            for lib in libraries:
                downloads = lib.get('downloads', {})
                artifact = downloads.get('artifact')
                if artifact and artifact.get('path') and artifact.get('url'):
                    lib_path = layout.library_path(artifact['path'])
                    await self.download_file(artifact['url'], lib_path, artifact.get('sha1'))
                    classpath_entries.append(str(lib_path))

                classifiers = downloads.get('classifiers') or {}
                for info in classifiers.values():
                    if info.get('path') and info.get('url'):
                        await self.download_file(info['url'], layout.library_path(info['path']), info.get('sha1'))

                native_key = self.platform.classifier_for(lib)
                if native_key and classifiers[native_key].get('path'):
                    classpath_entries.append(str(layout.library_path(classifiers[native_key]['path'])))
                pbar.update(1)
        finally:
            pbar.close()

        self._report('Library download check complete.')
        return classpath_entries

    async def write_libraries_file(self, layout: GameLayout, version_id: str, entries: List[str]) -> pathlib.Path:
        path = layout.libraries_file(version_id)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, 'w', encoding='utf-8') as f:
            await f.write(self.platform.classpath_separator.join(entries))
        self._report(f"Created {path.name} with {len(entries)} entries")
        return path

    async def download_assets(self, manifest: Dict[str, Any], layout: GameLayout) -> int:
        """Fetches the asset index and every object not yet on disk. Returns the object count."""
        asset_index_info = manifest.get('assetIndex')
        if not asset_index_info or 'id' not in asset_index_info or 'url' not in asset_index_info:
            self._report("Manifest has no asset index; skipping assets", logging.WARNING)
            return 0

        asset_id = asset_index_info['id']
        index_path = layout.asset_index_path(asset_id)
        await self.download_file(asset_index_info['url'], index_path, asset_index_info.get('sha1'))

        async with aiofiles.open(index_path, 'r', encoding='utf-8') as f:
            objects = json.loads(await f.read()).get('objects', {})

        total = len(objects)
        self._report(f"Checking {total} assets listed in index {asset_id}...")
        semaphore = asyncio.Semaphore(self.max_concurrent_downloads)
        done = 0
        pbar = tqdm(total=total, desc="Assets", unit="file", leave=False, disable=not self.show_progress)

        async def fetch_object(name: str, details: Dict[str, Any]) -> None:
            nonlocal done
            asset_hash = details.get('hash')
            if not asset_hash:
                self._report(f"Asset '{name}' is missing a hash, skipping", logging.WARNING)
            else:
                target = layout.asset_object_path(asset_hash)
                if not await aiofiles.os.path.isfile(target):
                    async with semaphore:
                        await self.download_file(asset_url(asset_hash), target, asset_hash)
            done += 1
            pbar.update(1)
            if done % ASSET_PROGRESS_EVERY == 0:
                self._report(f"Downloaded {done}/{total} assets...")

        tasks = [asyncio.ensure_future(fetch_object(name, details)) for name, details in objects.items()]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            # Siblings still writing must not leave truncated objects behind
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            pbar.close()

        self._report(f"All {total} assets present.")
        return total

    async def download_all(self, manifest: Dict[str, Any], base_dir: Union[str, pathlib.Path],
                           version_id: str) -> List[str]:
        """
        Downloads the client jar, libraries and assets of `manifest`.

        Also persists the manifest and the `libraries_<id>.txt` hand-off file
        that later launches read instead of re-resolving the manifest.

        Returns:
            The library classpath entries, in manifest order.
        """
        layout = GameLayout.at(base_dir)
        await self.save_manifest(manifest, layout, version_id)
        await self.download_client(manifest, layout, version_id)
        classpath_entries = await self.download_libraries(manifest, layout)
        await self.write_libraries_file(layout, version_id, classpath_entries)
        await self.download_assets(manifest, layout)
        self._report(f"All required files downloaded into: {layout.base_dir}")
        return classpath_entries

    async def download_version(self, version: VersionSummary, base_dir: Union[str, pathlib.Path]) -> List[str]:
        manifest = await self.fetch_manifest(version.url)
        return await self.download_all(manifest, base_dir, version.id)
