"""
Turns an installed version id into a ready-to-run command.

A version manifest either stands alone (vanilla) or inherits from exactly one
base version (a loader profile such as Fabric). The kind is decided once, in
`resolve_version`, and `GameLauncher` has one planning path per kind.
"""
import json
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import aiofiles
import aiohttp

from . import __version__
from .classpath import ClasspathBuilder
from .command import (FILE_ENCODING, GC_ARGS, MAX_MEMORY, MIN_MEMORY, OFFLINE_ACCESS_TOKEN,
                      OFFLINE_UUID, USER_TYPE, CommandBuilder, CommandDescription)
from .downloader import ArtifactFetcher
from .exceptions import LauncherError, MissingManifest, VersionNotInstalled
from .fabric import FabricInstaller
from .natives import extract_for_version
from .paths import GameLayout
from .platform_info import Platform, detect_platform
from .process import GameProcess, start_process
from .replacer import expand_placeholders
from .reporting import LogSink, report
from .version_cache import VersionSummary

log = logging.getLogger(__name__)

LAUNCHER_NAME = 'mclauncher'


@dataclass(frozen=True)
class Standalone:
    pass


@dataclass(frozen=True)
class Inherits:
    base_id: str


VersionKind = Union[Standalone, Inherits]


@dataclass
class ResolvedVersion:
    id: str
    manifest: Dict[str, Any]
    kind: VersionKind


@dataclass
class LaunchPlan:
    """What a launch needs before it becomes a command line."""
    version_id: str
    main_class: str
    asset_index_id: str
    classpath: List[str]
    natives_source: ResolvedVersion
    extra_jvm_args: List[Any] = field(default_factory=list)
    extra_game_args: List[Any] = field(default_factory=list)


async def load_manifest(path: pathlib.Path) -> Dict[str, Any]:
    """Loads a version manifest from disk; absence raises MissingManifest."""
    try:
        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            content = await f.read()
    except FileNotFoundError:
        raise MissingManifest(f"Manifest not found: {path}", path=path) from None
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise LauncherError(f"Failed to parse manifest {path}: {e}") from e


def version_kind(manifest: Dict[str, Any]) -> VersionKind:
    base_id = manifest.get('inheritsFrom')
    return Inherits(str(base_id)) if base_id else Standalone()


async def resolve_version(base_dir: Union[str, pathlib.Path], version_id: str) -> ResolvedVersion:
    layout = GameLayout.at(base_dir)
    manifest = await load_manifest(layout.manifest_path(version_id))
    return ResolvedVersion(version_id, manifest, version_kind(manifest))


class GameLauncher:
    """
    Drives fetcher, extractor, classpath and command builders for one base directory.

    Each `prepare`/`launch` call owns its own manifests and builders; only the
    files under `base_dir` are shared between calls.
    """

    def __init__(
        self,
        base_dir: Union[str, pathlib.Path],
        session: aiohttp.ClientSession,
        java_binary: Union[str, pathlib.Path] = 'java',
        platform: Optional[Platform] = None,
        sink: Optional[LogSink] = None,
        max_memory: str = MAX_MEMORY,
        min_memory: str = MIN_MEMORY,
        fetcher: Optional[ArtifactFetcher] = None,
        fabric: Optional[FabricInstaller] = None,
    ):
        self.layout = GameLayout.at(base_dir)
        self.session = session
        self.java_binary = str(java_binary)
        self.platform = platform or detect_platform()
        self.sink = sink
        self.max_memory = max_memory
        self.min_memory = min_memory
        self.fetcher = fetcher or ArtifactFetcher(session, self.platform, sink)
        self.fabric = fabric or FabricInstaller(session, self.platform, sink,
                                                verify_checksums=self.fetcher.verify_checksums)

    def _report(self, message: str, level: int = logging.INFO) -> None:
        report(self.sink, message, level, logger=log)

    # --- download-only entry point ---

    async def download(self, version: VersionSummary) -> List[str]:
        """Fetches a version's manifest and every file it needs; returns its library classpath."""
        self._report(f"Downloading Minecraft {version.id}...")
        return await self.fetcher.download_version(version, self.layout.base_dir)

    # --- planning ---

    def _require_installed(self, version_id: str) -> None:
        if not self.layout.libraries_file(version_id).is_file():
            raise VersionNotInstalled(
                f"Libraries file not found for version {version_id}! Please download this version first.")
        if not self.layout.client_jar_path(version_id).is_file():
            raise VersionNotInstalled(
                f"Minecraft JAR not found for version {version_id}! Please download this version first.")

    def _plan_standalone(self, resolved: ResolvedVersion) -> LaunchPlan:
        version_id = resolved.id
        self._require_installed(version_id)
        classpath = (ClasspathBuilder(self.platform, self.sink)
                     .add_from_libraries_file(self.layout.libraries_file(version_id), self.layout.base_dir)
                     .add_main_jar(self.layout.client_jar_path(version_id))
                     .build())
        return LaunchPlan(
            version_id=version_id,
            main_class=resolved.manifest.get('mainClass', ''),
            asset_index_id=resolved.manifest.get('assetIndex', {}).get('id', ''),
            classpath=classpath,
            natives_source=resolved,
        )

    async def _plan_inherits(self, resolved: ResolvedVersion, base_id: str) -> LaunchPlan:
        base_manifest_path = self.layout.manifest_path(base_id)
        if not base_manifest_path.is_file():
            raise MissingManifest(
                f"Base version manifest not found: {base_manifest_path}. Download {base_id} first.",
                path=base_manifest_path)
        base = ResolvedVersion(base_id, await load_manifest(base_manifest_path), Standalone())
        self._require_installed(base_id)

        await self.fabric.check_and_download_libraries(resolved.manifest, self.layout.base_dir)

        self._report("Adding Fabric libraries to classpath...")
        classpath = (ClasspathBuilder(self.platform, self.sink)
                     .add_from_libraries_file(self.layout.libraries_file(base_id), self.layout.base_dir)
                     .add_fabric_libraries(resolved.manifest, self.layout.base_dir)
                     .add_main_jar(self.layout.client_jar_path(base_id))
                     .build())
        arguments = resolved.manifest.get('arguments') or {}
        return LaunchPlan(
            version_id=resolved.id,
            main_class=resolved.manifest.get('mainClass', ''),
            asset_index_id=base.manifest.get('assetIndex', {}).get('id', ''),
            classpath=classpath,
            natives_source=base,
            extra_jvm_args=list(arguments.get('jvm') or []),
            extra_game_args=list(arguments.get('game') or []),
        )

    async def plan(self, version_id: str) -> LaunchPlan:
        resolved = await resolve_version(self.layout.base_dir, version_id)
        if isinstance(resolved.kind, Inherits):
            self._report(f"{version_id} inherits from {resolved.kind.base_id}")
            plan = await self._plan_inherits(resolved, resolved.kind.base_id)
        else:
            self._report(f"{version_id} is a standalone version")
            plan = self._plan_standalone(resolved)

        if not plan.main_class:
            raise LauncherError(f"Manifest for {version_id} is missing 'mainClass'")
        log.debug(f"Main class: {plan.main_class}; asset index: {plan.asset_index_id}")
        for i, entry in enumerate(plan.classpath):
            log.debug(f"classpath[{i}]: {entry}")
        return plan

    # --- command assembly ---

    def _declared_args(self, entries: List[Any], placeholders: Dict[str, str]) -> List[str]:
        args: List[str] = []
        for entry in entries:
            if isinstance(entry, str):
                args.append(entry)
            elif isinstance(entry, dict) and self.platform.rules_allow(entry.get('rules')):
                value = entry.get('value')
                if isinstance(value, list):
                    args.extend(str(v) for v in value)
                elif isinstance(value, str):
                    args.append(value)
                else:
                    log.warning(f"Unsupported argument value: {value!r}")
            elif not isinstance(entry, dict):
                log.warning(f"Unsupported argument format: {entry!r}")
        return expand_placeholders(args, placeholders)

    def build_command(self, plan: LaunchPlan, natives_dir: pathlib.Path, username: str) -> CommandDescription:
        game_dir = str(self.layout.base_dir)
        assets_dir = str(self.layout.assets_dir)
        separator = self.platform.classpath_separator
        placeholders = {
            'natives_directory': str(natives_dir),
            'library_directory': str(self.layout.libraries_dir),
            'classpath_separator': separator,
            'classpath': separator.join(plan.classpath),
            'launcher_name': LAUNCHER_NAME,
            'launcher_version': __version__,
            'auth_player_name': username,
            'version_name': plan.version_id,
            'game_directory': game_dir,
            'assets_root': assets_dir,
            'assets_index_name': plan.asset_index_id,
            'auth_uuid': OFFLINE_UUID,
            'auth_access_token': OFFLINE_ACCESS_TOKEN,
            'user_type': USER_TYPE,
        }

        builder = CommandBuilder(plan.main_class, self.java_binary, natives_dir, separator, cwd=game_dir)
        builder.add_jvm_args(self.platform.startup_jvm_args)
        builder.add_jvm_args([self.max_memory, self.min_memory, *GC_ARGS, FILE_ENCODING])
        builder.add_jvm_args(self._declared_args(plan.extra_jvm_args, placeholders))
        builder.add_classpath_entries(plan.classpath)
        builder.add_game_args([
            '--username', username,
            '--version', plan.version_id,
            '--gameDir', game_dir,
            '--assetsDir', assets_dir,
            '--assetIndex', plan.asset_index_id,
            '--uuid', OFFLINE_UUID,
            '--accessToken', OFFLINE_ACCESS_TOKEN,
            '--userType', USER_TYPE,
        ])
        builder.add_game_args(self._declared_args(plan.extra_game_args, placeholders))
        return builder.build()

    async def prepare(self, version_id: str, username: str) -> CommandDescription:
        """Resolves, extracts natives and returns the command, without starting anything."""
        plan = await self.plan(version_id)
        self.layout.base_dir.mkdir(parents=True, exist_ok=True)
        # Loader profiles carry no natives; the base version's are used
        natives_dir = await extract_for_version(
            plan.natives_source.manifest, self.layout.base_dir, plan.natives_source.id,
            self.platform, self.sink)
        return self.build_command(plan, natives_dir, username)

    async def launch(self, version_id: str, username: str, output: Optional[LogSink] = None) -> GameProcess:
        """
        Starts the game and returns without waiting for it; success means the
        process was started. Await `GameProcess.wait()` to supervise it.
        """
        command = await self.prepare(version_id, username)
        self._report(f"Starting Minecraft {version_id}...")
        process = await start_process(command, output)
        self._report(f"Minecraft {version_id} started successfully")
        return process
