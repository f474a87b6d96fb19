import asyncio
import logging
import pathlib
import shutil
import zipfile
from typing import Any, Dict, Optional, Union

from .paths import GameLayout
from .platform_info import Platform, detect_platform
from .reporting import LogSink, report

log = logging.getLogger(__name__)


def _extract_zip_sync(jar_path: pathlib.Path, extract_to_dir: pathlib.Path) -> int:
    """Unpacks every file entry except META-INF/. Returns the number of files written."""
    count = 0
    with zipfile.ZipFile(jar_path, 'r') as zip_ref:
        for member in zip_ref.infolist():
            if member.is_dir() or member.filename.upper().startswith('META-INF/'):
                continue
            # ZipFile.extract strips absolute paths and '..' components
            zip_ref.extract(member, extract_to_dir)
            count += 1
    return count


def _reset_dir_sync(path: pathlib.Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


async def extract_for_version(
    manifest: Dict[str, Any],
    base_dir: Union[str, pathlib.Path],
    version_id: str,
    platform: Optional[Platform] = None,
    sink: Optional[LogSink] = None,
) -> pathlib.Path:
    """
    Unpacks this platform's native archives into `libraries/natives/<version_id>`.

    The directory is wiped first on every call. When the platform has no
    native classifier a warning is emitted and the empty directory returned.
    """
    platform = platform or detect_platform()
    layout = GameLayout.at(base_dir)
    natives_dir = layout.natives_dir(version_id)
    loop = asyncio.get_running_loop()

    await loop.run_in_executor(None, _reset_dir_sync, natives_dir)

    if platform.native_classifier is None:
        report(sink, "Warning: could not determine native classifier for current platform; "
                     "skipping native extraction", logging.WARNING, logger=log)
        return natives_dir

    report(sink, f"Extracting native libraries for: {platform.native_classifier}", logger=log)
    for lib in manifest.get('libraries', []):
        if not platform.is_library_allowed(lib):
            continue
        native_key = platform.classifier_for(lib)
        if native_key is None:
            continue
        path = lib['downloads']['classifiers'][native_key].get('path')
        if not path:
            continue
        jar_path = layout.library_path(path)
        if not jar_path.is_file():
            report(sink, f"Warning: native library not found: {jar_path}", logging.WARNING, logger=log)
            continue
        count = await loop.run_in_executor(None, _extract_zip_sync, jar_path, natives_dir)
        log.debug(f"Extracted {count} files from {jar_path.name}")

    report(sink, f"Native libraries extracted to: {natives_dir}", logger=log)
    return natives_dir
