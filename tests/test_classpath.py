from pathlib import Path

from mclauncher.classpath import ClasspathBuilder
from mclauncher.paths import GameLayout
from mclauncher.platform_info import Platform


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"jar")
    return path


def test_order_is_preserved(base_dir: Path, linux: Platform) -> None:
    libraries_file = base_dir / "libraries_1.21.txt"
    libraries_file.write_text("/abs/b.jar:/abs/a.jar:/abs/b.jar")
    loader_jar = _touch(GameLayout.at(base_dir).libraries_dir / "net/fabricmc/fabric-loader/0.15.11/fabric-loader-0.15.11.jar")
    main_jar = _touch(base_dir / "versions" / "1.21" / "1.21.jar")
    loader_manifest = {"libraries": [{"name": "net.fabricmc:fabric-loader:0.15.11"}]}

    classpath = (ClasspathBuilder(linux)
                 .add_from_libraries_file(libraries_file, base_dir)
                 .add_fabric_libraries(loader_manifest, base_dir)
                 .add_main_jar(main_jar)
                 .build())

    assert classpath == ["/abs/b.jar", "/abs/a.jar", "/abs/b.jar", str(loader_jar), str(main_jar)]


def test_relative_entries_resolve_against_base_dir(base_dir: Path, linux: Platform) -> None:
    libraries_file = base_dir / "libraries_1.21.txt"
    libraries_file.write_text("libraries/a.jar: :libraries/b.jar\n")

    classpath = ClasspathBuilder(linux).add_from_libraries_file(libraries_file, base_dir).build()

    assert classpath == [str(base_dir / "libraries" / "a.jar"), str(base_dir / "libraries" / "b.jar")]


def test_windows_separator(base_dir: Path, windows: Platform) -> None:
    libraries_file = base_dir / "libraries_1.21.txt"
    libraries_file.write_text("libraries/a.jar;libraries/b.jar")

    classpath = ClasspathBuilder(windows).add_from_libraries_file(libraries_file, base_dir).build()

    assert classpath == [str(base_dir / "libraries" / "a.jar"), str(base_dir / "libraries" / "b.jar")]


def test_missing_inputs_are_skipped(base_dir: Path, linux: Platform) -> None:
    lines: list = []
    loader_manifest = {"libraries": [
        {"name": "net.fabricmc:intermediary:1.21"},
        {"name": "broken"},
        {"name": "a:windows-only:1", "rules": [{"action": "allow", "os": {"name": "windows"}}]},
    ]}

    classpath = (ClasspathBuilder(linux, sink=lines.append)
                 .add_from_libraries_file(base_dir / "libraries_missing.txt", base_dir)
                 .add_fabric_libraries(loader_manifest, base_dir)
                 .add_main_jar(base_dir / "nope.jar")
                 .build())

    assert classpath == []
    assert len(lines) == 3
    assert "loader library not found" in lines[0]
    assert "invalid name 'broken'" in lines[1]
    assert "main jar not found" in lines[2]


def test_build_returns_a_copy(linux: Platform) -> None:
    builder = ClasspathBuilder(linux).add_entry("a.jar")
    builder.build().append("b.jar")
    assert builder.build() == ["a.jar"]
