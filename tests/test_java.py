import asyncio
import io
import tarfile
from pathlib import Path

import pytest
from conftest import FakeResponse, FakeSession

from mclauncher import java
from mclauncher.exceptions import JavaNotFound
from mclauncher.platform_info import Platform


def _fake_java(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


def _tarball(member: str) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        data = b"#!/bin/sh\n"
        info = tarfile.TarInfo(member)
        info.size = len(data)
        info.mode = 0o755
        tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def no_system_java(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("JAVA_HOME", raising=False)
    monkeypatch.setattr(java.shutil, "which", lambda name: None)


def test_find_in_nested_folder(tmp_path: Path, linux: Platform) -> None:
    binary = _fake_java(tmp_path / "jdk-17.0.9+9-jre" / "bin" / "java")
    assert java.find_java_executable(tmp_path, linux) == binary.resolve()


def test_find_in_mac_bundle(tmp_path: Path, mac_arm: Platform) -> None:
    binary = _fake_java(tmp_path / "jdk-17.0.9+9-jre" / "Contents" / "Home" / "bin" / "java")
    assert java.find_java_executable(tmp_path, mac_arm) == binary.resolve()


def test_non_executable_is_ignored(tmp_path: Path, linux: Platform) -> None:
    binary = _fake_java(tmp_path / "bin" / "java")
    binary.chmod(0o644)
    assert java.find_java_executable(tmp_path, linux) is None


def test_configured_path_wins(tmp_path: Path, linux: Platform) -> None:
    binary = _fake_java(tmp_path / "custom" / "java")
    found = asyncio.run(java.resolve_java(None, str(binary), 17, tmp_path / "runtime", platform=linux))
    assert found == binary


def test_configured_path_missing(tmp_path: Path, linux: Platform) -> None:
    with pytest.raises(JavaNotFound):
        asyncio.run(java.resolve_java(None, str(tmp_path / "nope"), 17, tmp_path, platform=linux))


def test_downloaded_runtime_preferred_over_system(tmp_path: Path, linux: Platform) -> None:
    binary = _fake_java(tmp_path / "runtime" / "java-21" / "jdk-21" / "bin" / "java")
    found = asyncio.run(java.resolve_java(None, None, 21, tmp_path / "runtime", platform=linux))
    assert found == binary.resolve()


def test_java_home(tmp_path: Path, linux: Platform, monkeypatch: pytest.MonkeyPatch) -> None:
    binary = _fake_java(tmp_path / "jdk" / "bin" / "java")
    monkeypatch.setenv("JAVA_HOME", str(tmp_path / "jdk"))
    assert java.find_system_java(linux) == binary.resolve()


def test_nothing_found_without_download(tmp_path: Path, linux: Platform, no_system_java: None) -> None:
    with pytest.raises(JavaNotFound):
        asyncio.run(java.resolve_java(FakeSession(), None, 17, tmp_path, auto_download=False, platform=linux))


def test_downloads_from_adoptium(tmp_path: Path, linux: Platform, no_system_java: None) -> None:
    api_url = f"{java.ADOPTIUM_API_BASE}/binary/latest/17/ga/linux/x64/jre/hotspot/normal/eclipse"
    session = FakeSession({api_url: FakeResponse(_tarball("jdk-17.0.9+9-jre/bin/java"))})

    found = asyncio.run(java.resolve_java(session, None, 17, tmp_path / "runtime", platform=linux))

    assert found == (tmp_path / "runtime" / "java-17" / "jdk-17.0.9+9-jre" / "bin" / "java").resolve()
    assert session.count(api_url) == 1


def test_download_unsupported_platform(tmp_path: Path) -> None:
    with pytest.raises(JavaNotFound):
        asyncio.run(java.download_java(FakeSession(), 17, tmp_path, Platform("linux", None)))
