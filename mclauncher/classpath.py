import logging
import os
import pathlib
from typing import Any, Dict, List, Optional, Union

from .exceptions import InvalidCoordinate
from .maven import MavenCoordinate
from .paths import GameLayout
from .platform_info import Platform, detect_platform
from .reporting import LogSink, report

log = logging.getLogger(__name__)

PathLike = Union[str, pathlib.Path]


class ClasspathBuilder:
    """
    Collects classpath entries in exactly the order they are added.

    Nothing is sorted or de-duplicated; classloading order decides which
    class wins, so callers add the libraries file first, loader libraries
    next and the main jar last.

        classpath = (ClasspathBuilder(platform)
                     .add_from_libraries_file(libraries_file, base_dir)
                     .add_fabric_libraries(loader_manifest, base_dir)
                     .add_main_jar(main_jar)
                     .build())
    """

    def __init__(self, platform: Optional[Platform] = None, sink: Optional[LogSink] = None,
                 separator: Optional[str] = None):
        self.platform = platform or detect_platform()
        self.separator = separator or self.platform.classpath_separator
        self.sink = sink
        self._entries: List[str] = []

    def add_from_libraries_file(self, libraries_file: PathLike, base_dir: PathLike) -> "ClasspathBuilder":
        libraries_file = pathlib.Path(libraries_file)
        if not libraries_file.is_file():
            return self
        try:
            content = libraries_file.read_text(encoding='utf-8').strip()
        except OSError as e:
            report(self.sink, f"Warning: could not read libraries file {libraries_file}: {e}",
                   logging.WARNING, logger=log)
            return self

        base = pathlib.Path(base_dir)
        for raw in content.split(self.separator):
            entry = raw.strip()
            if not entry:
                continue
            if not os.path.isabs(entry):
                entry = str((base / entry).resolve())
            self._entries.append(entry)
        return self

    def add_fabric_libraries(self, loader_manifest: Dict[str, Any], base_dir: PathLike) -> "ClasspathBuilder":
        """Adds the loader manifest's libraries that exist on disk, skipping disallowed ones."""
        layout = GameLayout.at(base_dir)
        libraries = loader_manifest.get('libraries', [])
        log.debug(f"Processing {len(libraries)} loader libraries...")

        for lib in libraries:
            if not self.platform.is_library_allowed(lib):
                continue
            lib_path = None
            if lib.get('name'):
                try:
                    lib_path = MavenCoordinate.parse(lib['name']).resolve_in(layout.libraries_dir)
                except InvalidCoordinate:
                    report(self.sink, f"Warning: skipping library with invalid name {lib['name']!r}",
                           logging.WARNING, logger=log)
            else:
                artifact = lib.get('downloads', {}).get('artifact') or {}
                if artifact.get('path'):
                    lib_path = layout.library_path(artifact['path'])
            if lib_path is None:
                continue

            if lib_path.is_file():
                self._entries.append(str(lib_path))
            else:
                report(self.sink, f"Warning: loader library not found: {lib_path}", logging.WARNING, logger=log)
        return self

    def add_main_jar(self, main_jar: PathLike) -> "ClasspathBuilder":
        main_jar = pathlib.Path(main_jar)
        if main_jar.is_file():
            self._entries.append(str(main_jar.resolve()))
        else:
            report(self.sink, f"Warning: main jar not found: {main_jar}", logging.WARNING, logger=log)
        return self

    def add_entry(self, entry: PathLike) -> "ClasspathBuilder":
        self._entries.append(str(entry))
        return self

    def build(self) -> List[str]:
        return list(self._entries)
