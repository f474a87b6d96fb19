import asyncio
import io
import logging
import os
import pathlib
import shutil
import tarfile
import zipfile
from typing import Optional, Union

import aiohttp

from .exceptions import JavaNotFound, NetworkFailure
from .platform_info import Platform, detect_platform
from .reporting import LogSink, report

log = logging.getLogger(__name__)

ADOPTIUM_API_BASE = 'https://api.adoptium.net/v3'
DEFAULT_JAVA_VERSION = 17
DEFAULT_IMAGE_TYPE = 'jre'

_ADOPTIUM_OS = {'windows': 'windows', 'osx': 'mac', 'linux': 'linux'}
_ADOPTIUM_ARCH = {'x86_64': 'x64', 'x86': 'x86', 'arm64': 'aarch64', 'arm32': 'arm'}


def java_binary_name(platform: Platform) -> str:
    return 'java.exe' if platform.is_windows else 'java'


def _executable(path: pathlib.Path) -> Optional[pathlib.Path]:
    if path.is_file() and os.access(path, os.X_OK):
        return path.resolve()
    return None


def find_java_executable(install_dir: Union[str, pathlib.Path], platform: Optional[Platform] = None) -> Optional[pathlib.Path]:
    """
    Finds the java binary inside an extracted runtime.

    Archives unpack into a single top-level folder (``jdk-17.0.9+9-jre``), so
    both `install_dir` itself and its first subdirectory are checked. macOS
    bundles keep the binary under ``Contents/Home``.
    """
    platform = platform or detect_platform()
    install_dir = pathlib.Path(install_dir)
    if not install_dir.is_dir():
        return None

    binary = java_binary_name(platform)
    candidates = [install_dir]
    candidates += sorted(p for p in install_dir.iterdir() if p.is_dir())
    for root in candidates:
        for relative in (('bin', binary), ('Contents', 'Home', 'bin', binary)):
            found = _executable(root.joinpath(*relative))
            if found:
                return found
    return None


def find_system_java(platform: Optional[Platform] = None) -> Optional[pathlib.Path]:
    """$JAVA_HOME/bin/java, then `java` on PATH."""
    platform = platform or detect_platform()
    java_home = os.environ.get('JAVA_HOME')
    if java_home:
        found = _executable(pathlib.Path(java_home) / 'bin' / java_binary_name(platform))
        if found:
            return found
        log.warning(f"JAVA_HOME is set to {java_home} but contains no java executable")
    on_path = shutil.which('java')
    return pathlib.Path(on_path) if on_path else None


def _extract_archive(data: bytes, archive_type: str, dest: pathlib.Path) -> None:
    with io.BytesIO(data) as buffer:
        if archive_type == 'zip':
            with zipfile.ZipFile(buffer) as zip_ref:
                zip_ref.extractall(dest)
        else:
            with tarfile.open(fileobj=buffer, mode='r:gz') as tar_ref:
                tar_ref.extractall(dest, filter='data')


async def download_java(
    session: aiohttp.ClientSession,
    version: int,
    destination_dir: Union[str, pathlib.Path],
    platform: Optional[Platform] = None,
    image_type: str = DEFAULT_IMAGE_TYPE,
    sink: Optional[LogSink] = None,
) -> pathlib.Path:
    """
    Downloads a Temurin runtime from Adoptium unless one is already unpacked
    in `destination_dir`. Returns the java executable path.
    """
    platform = platform or detect_platform()
    destination_dir = pathlib.Path(destination_dir)

    existing = find_java_executable(destination_dir, platform)
    if existing:
        log.info(f"Java already present at {existing}, skipping download")
        return existing

    api_os = _ADOPTIUM_OS.get(platform.os_name or '')
    api_arch = _ADOPTIUM_ARCH.get(platform.arch or '')
    if not api_os or not api_arch:
        raise JavaNotFound(f"No Java {version} build available for os={platform.os_name} arch={platform.arch}")

    api_url = (f"{ADOPTIUM_API_BASE}/binary/latest/{version}/ga/{api_os}/{api_arch}"
               f"/{image_type}/hotspot/normal/eclipse")
    report(sink, f"Downloading Java {version} ({image_type}) for {api_os}-{api_arch}...", logger=log)
    try:
        async with session.get(api_url, allow_redirects=True) as response:
            if response.status >= 400:
                raise NetworkFailure(f"HTTP {response.status} for {api_url}", url=api_url, status=response.status)
            final_url = str(response.url)
            data = await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkFailure(f"Java download failed: {e}", url=api_url) from e

    if final_url.endswith('.zip'):
        archive_type = 'zip'
    elif final_url.endswith('.tar.gz'):
        archive_type = 'tar.gz'
    else:
        archive_type = 'zip' if platform.is_windows else 'tar.gz'

    destination_dir.mkdir(parents=True, exist_ok=True)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, _extract_archive, data, archive_type, destination_dir)
    report(sink, 'Java extraction complete.', logger=log)

    java_path = find_java_executable(destination_dir, platform)
    if java_path is None:
        raise JavaNotFound(f"Extracted Java {version} into {destination_dir} but found no executable")
    return java_path


async def resolve_java(
    session: Optional[aiohttp.ClientSession],
    configured_path: Optional[str],
    major_version: int,
    runtime_dir: Union[str, pathlib.Path],
    auto_download: bool = True,
    platform: Optional[Platform] = None,
    sink: Optional[LogSink] = None,
) -> pathlib.Path:
    """
    Picks the java binary for a launch: the configured path, an already
    downloaded runtime, the system Java, or a fresh Adoptium download.
    """
    platform = platform or detect_platform()
    if configured_path:
        path = pathlib.Path(configured_path).expanduser()
        if not path.is_file():
            raise JavaNotFound(f"Configured java_path does not exist: {path}")
        return path

    runtime = pathlib.Path(runtime_dir) / f"java-{major_version}"
    downloaded = find_java_executable(runtime, platform)
    if downloaded:
        return downloaded

    system_java = find_system_java(platform)
    if system_java:
        return system_java

    if not auto_download or session is None:
        raise JavaNotFound("No Java executable found; set java_path or enable auto_download_java")
    return await download_java(session, major_version, runtime, platform, sink=sink)
