import json
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

MAX_MEMORY = '-Xmx4G'
MIN_MEMORY = '-Xms1G'
GC_ARGS = ('-XX:+UnlockExperimentalVMOptions', '-XX:+UseG1GC')
FILE_ENCODING = '-Dfile.encoding=UTF-8'

# Offline identity
OFFLINE_UUID = '00000000-0000-0000-0000-000000000000'
OFFLINE_ACCESS_TOKEN = '0'
USER_TYPE = 'legacy'


@dataclass(frozen=True)
class CommandDescription:
    """A finished process invocation; `args[0]` is the java binary."""
    args: Tuple[str, ...]
    cwd: Optional[str] = None

    @property
    def executable(self) -> str:
        return self.args[0]

    def to_dict(self) -> Dict[str, Any]:
        return {"args": list(self.args), "cwd": self.cwd}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class CommandBuilder:
    """
    Assembles: java, JVM args, -Djava.library.path, -cp, main class, game args.

    The native path property is only emitted when a natives directory is
    given, and `-cp` only when there is at least one classpath entry.
    """

    def __init__(self, main_class: str, java_binary: str = 'java',
                 natives_dir: Optional[Union[str, pathlib.Path]] = None,
                 classpath_separator: str = ':',
                 cwd: Optional[Union[str, pathlib.Path]] = None):
        self.main_class = main_class
        self.java_binary = str(java_binary)
        self.natives_dir = natives_dir
        self.classpath_separator = classpath_separator
        self.cwd = str(cwd) if cwd is not None else None
        self._jvm_args: List[str] = []
        self._classpath: List[str] = []
        self._game_args: List[str] = []

    def add_jvm_arg(self, arg: str) -> "CommandBuilder":
        self._jvm_args.append(arg)
        return self

    def add_jvm_args(self, args: Iterable[str]) -> "CommandBuilder":
        self._jvm_args.extend(args)
        return self

    def add_classpath_entry(self, entry: Union[str, pathlib.Path]) -> "CommandBuilder":
        self._classpath.append(str(entry))
        return self

    def add_classpath_entries(self, entries: Iterable[Union[str, pathlib.Path]]) -> "CommandBuilder":
        self._classpath.extend(str(e) for e in entries)
        return self

    def add_game_arg(self, arg: str) -> "CommandBuilder":
        self._game_args.append(arg)
        return self

    def add_game_args(self, args: Iterable[str]) -> "CommandBuilder":
        self._game_args.extend(args)
        return self

    def build(self) -> CommandDescription:
        command = [self.java_binary, *self._jvm_args]
        if self.natives_dir is not None:
            command.append(f"-Djava.library.path={pathlib.Path(self.natives_dir).absolute()}")
        if self._classpath:
            command += ['-cp', self.classpath_separator.join(self._classpath)]
        command.append(self.main_class)
        command += self._game_args
        return CommandDescription(tuple(command), self.cwd)
