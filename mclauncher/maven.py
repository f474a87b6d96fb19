import pathlib
from dataclasses import dataclass
from typing import Optional, Union

from .exceptions import InvalidCoordinate


@dataclass(frozen=True)
class MavenCoordinate:
    """
    A `group:artifact:version[:classifier]` coordinate as used by loader
    manifests, e.g. ``net.fabricmc:fabric-loader:0.15.11``.
    """
    group: str
    artifact: str
    version: str
    classifier: Optional[str] = None

    @classmethod
    def parse(cls, coordinate: str) -> "MavenCoordinate":
        parts = coordinate.split(':')
        if len(parts) < 3 or not all(parts[:3]):
            raise InvalidCoordinate(f"Invalid Maven coordinate: {coordinate!r}")
        classifier = parts[3] if len(parts) > 3 and parts[3] else None
        return cls(parts[0], parts[1], parts[2], classifier)

    @property
    def group_path(self) -> str:
        return self.group.replace('.', '/')

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ''
        return f"{self.artifact}-{self.version}{suffix}.jar"

    @property
    def relative_path(self) -> str:
        """Path inside a Maven repository, always '/'-separated."""
        return f"{self.group_path}/{self.artifact}/{self.version}/{self.file_name}"

    def resolve_in(self, libraries_dir: Union[str, pathlib.Path]) -> pathlib.Path:
        return pathlib.Path(libraries_dir).joinpath(*self.relative_path.split('/'))

    def url_in(self, repository: str) -> str:
        if not repository.endswith('/'):
            repository += '/'
        return repository + self.relative_path

    def __str__(self) -> str:
        base = f"{self.group}:{self.artifact}:{self.version}"
        return f"{base}:{self.classifier}" if self.classifier else base
