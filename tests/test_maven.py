from pathlib import Path

import pytest

from mclauncher.exceptions import InvalidCoordinate
from mclauncher.maven import MavenCoordinate


def test_relative_path() -> None:
    coords = MavenCoordinate.parse("net.fabricmc:fabric-loader:0.15.11")
    assert coords.relative_path == "net/fabricmc/fabric-loader/0.15.11/fabric-loader-0.15.11.jar"
    assert coords.file_name == "fabric-loader-0.15.11.jar"


def test_classifier_suffix() -> None:
    coords = MavenCoordinate.parse("org.lwjgl:lwjgl:3.3.3:natives-linux")
    assert coords.file_name == "lwjgl-3.3.3-natives-linux.jar"
    assert str(coords) == "org.lwjgl:lwjgl:3.3.3:natives-linux"


@pytest.mark.parametrize("bad", ["net.fabricmc:fabric-loader", "just-a-name", "", "a::c"])
def test_invalid_coordinates(bad: str) -> None:
    with pytest.raises(InvalidCoordinate):
        MavenCoordinate.parse(bad)


def test_invalid_coordinate_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        MavenCoordinate.parse("a:b")


def test_resolve_in_and_url(tmp_path: Path) -> None:
    coords = MavenCoordinate.parse("org.ow2.asm:asm:9.6")
    assert coords.resolve_in(tmp_path) == tmp_path / "org" / "ow2" / "asm" / "asm" / "9.6" / "asm-9.6.jar"
    assert coords.url_in("https://maven.fabricmc.net") == "https://maven.fabricmc.net/org/ow2/asm/asm/9.6/asm-9.6.jar"
