import os
import pathlib
from dataclasses import dataclass
from typing import Optional, Union

from .platform_info import Platform, detect_platform

PathLike = Union[str, pathlib.Path]


def default_minecraft_dir(platform: Optional[Platform] = None) -> pathlib.Path:
    """The directory the official launcher uses on this OS."""
    platform = platform or detect_platform()
    home = pathlib.Path.home()
    if platform.is_mac:
        return home / 'Library' / 'Application Support' / 'minecraft'
    if platform.is_windows:
        appdata = os.environ.get('APPDATA')
        return pathlib.Path(appdata) / '.minecraft' if appdata else home / 'AppData' / 'Roaming' / '.minecraft'
    return home / '.minecraft'


@dataclass(frozen=True)
class GameLayout:
    """On-disk layout of a game base directory."""
    base_dir: pathlib.Path

    @classmethod
    def at(cls, base_dir: PathLike) -> "GameLayout":
        return cls(pathlib.Path(base_dir).expanduser().resolve())

    @property
    def versions_dir(self) -> pathlib.Path:
        return self.base_dir / 'versions'

    @property
    def libraries_dir(self) -> pathlib.Path:
        return self.base_dir / 'libraries'

    @property
    def assets_dir(self) -> pathlib.Path:
        return self.base_dir / 'assets'

    @property
    def asset_indexes_dir(self) -> pathlib.Path:
        return self.assets_dir / 'indexes'

    @property
    def asset_objects_dir(self) -> pathlib.Path:
        return self.assets_dir / 'objects'

    @property
    def runtime_dir(self) -> pathlib.Path:
        return self.base_dir / 'runtime'

    def version_dir(self, version_id: str) -> pathlib.Path:
        return self.versions_dir / version_id

    def manifest_path(self, version_id: str) -> pathlib.Path:
        return self.version_dir(version_id) / f"{version_id}.json"

    def client_jar_path(self, version_id: str) -> pathlib.Path:
        return self.version_dir(version_id) / f"{version_id}.jar"

    def libraries_file(self, version_id: str) -> pathlib.Path:
        return self.base_dir / f"libraries_{version_id}.txt"

    def natives_dir(self, version_id: str) -> pathlib.Path:
        return self.libraries_dir / 'natives' / version_id

    def asset_index_path(self, asset_id: str) -> pathlib.Path:
        return self.asset_indexes_dir / f"{asset_id}.json"

    def asset_object_path(self, asset_hash: str) -> pathlib.Path:
        return self.asset_objects_dir / asset_hash[:2] / asset_hash

    def library_path(self, relative_path: str) -> pathlib.Path:
        return self.libraries_dir.joinpath(*relative_path.split('/'))
