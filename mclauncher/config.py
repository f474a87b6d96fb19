import json
import logging
import pathlib
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Union

from .command import MAX_MEMORY, MIN_MEMORY
from .exceptions import ConfigError
from .java import DEFAULT_JAVA_VERSION
from .paths import default_minecraft_dir
from .replacer import replace_text

log = logging.getLogger(__name__)

CONFIG_FILENAME = 'launcher_config.json'
THISDIR_PLACEHOLDER = ':thisdir:'


@dataclass
class LauncherConfig:
    basepath: Optional[str] = None
    username: str = 'Player'
    max_memory: str = MAX_MEMORY
    min_memory: str = MIN_MEMORY
    java_path: Optional[str] = None
    java_version: int = DEFAULT_JAVA_VERSION
    auto_download_java: bool = True
    verify_checksums: bool = True
    max_concurrent_downloads: int = 8
    cache_dir: Optional[str] = None
    show_progress: bool = True

    @property
    def base_dir(self) -> pathlib.Path:
        if self.basepath:
            return pathlib.Path(self.basepath).expanduser()
        return default_minecraft_dir()

    @property
    def cache_path(self) -> pathlib.Path:
        return pathlib.Path(self.cache_dir).expanduser() if self.cache_dir else self.base_dir

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], config_dir: pathlib.Path) -> "LauncherConfig":
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            if key not in known:
                log.warning(f"Ignoring unknown config key: {key}")
                continue
            values[key] = replace_text(value, {THISDIR_PLACEHOLDER: str(config_dir)})

        config = cls(**values)
        if not isinstance(config.username, str) or not config.username:
            raise ConfigError("username must be a non-empty string")
        for key in ('java_version', 'max_concurrent_downloads'):
            value = getattr(config, key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{key} must be a positive integer, got {value!r}")
        return config


def load_config(path: Optional[Union[str, pathlib.Path]] = None) -> LauncherConfig:
    """
    Reads `launcher_config.json` (from `path`, or the working directory).

    A missing file yields the defaults; a malformed one raises ConfigError.
    `:thisdir:` in any string value is replaced by the config file's directory.
    """
    config_path = pathlib.Path(path) if path else pathlib.Path.cwd() / CONFIG_FILENAME
    config_dir = config_path.resolve().parent

    if not config_path.is_file():
        if path:
            raise ConfigError(f"Config file not found: {config_path}")
        log.debug(f"No {CONFIG_FILENAME} found, using defaults")
        return LauncherConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Error parsing {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")
    return LauncherConfig.from_dict(raw, config_dir)
