import asyncio
import logging
import sys
from typing import Any, Awaitable, Optional

import click

from . import __version__
from .config import LauncherConfig, load_config
from .downloader import ArtifactFetcher
from .exceptions import LauncherError, MissingManifest
from .fabric import FabricInstaller
from .java import resolve_java
from .launcher import GameLauncher, Inherits, resolve_version
from .network import create_session
from .platform_info import detect_platform
from .version_cache import VersionCache
from .versions import find_version, get_available_versions

log = logging.getLogger(__name__)


def _run(coro: Awaitable[Any]) -> Any:
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        log.info("Cancelled by user.")
        sys.exit(130)
    except LauncherError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception:
        log.exception("--- An unexpected error occurred ---")
        sys.exit(1)


def _fetcher(session, config: LauncherConfig, platform) -> ArtifactFetcher:
    return ArtifactFetcher(
        session,
        platform,
        verify_checksums=config.verify_checksums,
        max_concurrent_downloads=config.max_concurrent_downloads,
        show_progress=config.show_progress,
    )


async def _java_major_version(config: LauncherConfig, version_id: str) -> int:
    """The Java major version the manifest (or its base) asks for, else the configured one."""
    try:
        resolved = await resolve_version(config.base_dir, version_id)
        java_version = resolved.manifest.get('javaVersion')
        if not java_version and isinstance(resolved.kind, Inherits):
            base = await resolve_version(config.base_dir, resolved.kind.base_id)
            java_version = base.manifest.get('javaVersion')
    except MissingManifest:
        java_version = None
    if java_version and 'majorVersion' in java_version:
        return int(java_version['majorVersion'])
    log.warning(f"Manifest does not specify a Java version; using Java {config.java_version}")
    return config.java_version


@click.group()
@click.version_option(version=__version__, prog_name="mclauncher")
@click.option("-c", "--config", "config_path", default=None, help="Path to launcher_config.json.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """Download and launch Minecraft versions."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')
    try:
        ctx.obj = load_config(config_path)
    except LauncherError as e:
        raise click.ClickException(str(e))


@cli.command("versions")
@click.option("--all", "show_all", is_flag=True, help="Include snapshots and old versions.")
@click.option("--refresh", is_flag=True, help="Ignore the cache.")
@click.pass_obj
def versions_cmd(config: LauncherConfig, show_all: bool, refresh: bool) -> None:
    """List available versions."""
    async def run():
        async with create_session() as session:
            return await get_available_versions(session, VersionCache(config.cache_path), force_refresh=refresh)

    for version in _run(run()):
        if show_all or version.is_release:
            click.echo(f"{version.id}\t{version.type}\t{version.release_time}")


@cli.command("download")
@click.argument("version_id")
@click.pass_obj
def download_cmd(config: LauncherConfig, version_id: str) -> None:
    """Download a version and everything it needs."""
    async def run():
        platform = detect_platform()
        async with create_session() as session:
            versions = await get_available_versions(session, VersionCache(config.cache_path))
            version = find_version(versions, version_id)
            if version is None:
                raise LauncherError(f"Unknown version: {version_id}")
            launcher = GameLauncher(config.base_dir, session, platform=platform,
                                    fetcher=_fetcher(session, config, platform))
            return await launcher.download(version)

    entries = _run(run())
    click.echo(f"Downloaded {version_id} ({len(entries)} libraries)")


@cli.command("fabric")
@click.argument("game_version")
@click.option("--loader", "loader_version", default=None, help="Loader version (default: latest stable).")
@click.pass_obj
def fabric_cmd(config: LauncherConfig, game_version: str, loader_version: Optional[str]) -> None:
    """Install a Fabric loader profile for an already downloaded version."""
    async def run():
        async with create_session() as session:
            installer = FabricInstaller(session, verify_checksums=config.verify_checksums)
            return await installer.install(game_version, config.base_dir, loader_version)

    click.echo(f"Installed {_run(run())}")


@cli.command("launch")
@click.argument("version_id")
@click.option("-u", "--username", default=None, help="Player name (default from config).")
@click.option("--wait", is_flag=True, help="Stream game output and wait for it to exit.")
@click.option("--dry-run", is_flag=True, help="Print the command instead of running it.")
@click.pass_obj
def launch_cmd(config: LauncherConfig, version_id: str, username: Optional[str], wait: bool, dry_run: bool) -> None:
    """Launch an installed version."""
    username = username or config.username

    async def run():
        platform = detect_platform()
        async with create_session() as session:
            java = await resolve_java(
                session, config.java_path, await _java_major_version(config, version_id),
                config.base_dir / 'runtime', config.auto_download_java, platform)
            launcher = GameLauncher(
                config.base_dir, session, java_binary=java, platform=platform,
                max_memory=config.max_memory, min_memory=config.min_memory,
                fetcher=_fetcher(session, config, platform))
            if dry_run:
                click.echo((await launcher.prepare(version_id, username)).to_json())
                return None
            process = await launcher.launch(version_id, username, output=click.echo if wait else None)
            if wait:
                return await process.wait()
            return None

    code = _run(run())
    if code:
        log.info(f"Minecraft exited with code {code}")
        sys.exit(code)


@cli.command("clear-cache")
@click.pass_obj
def clear_cache_cmd(config: LauncherConfig) -> None:
    """Delete the cached version list."""
    VersionCache(config.cache_path).clear_cache()
    click.echo("Version cache cleared")


def main() -> None:
    cli()
