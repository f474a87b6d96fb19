"""Shared fixtures: an in-memory stand-in for aiohttp.ClientSession."""

from __future__ import annotations

import hashlib
import io
import json
import zipfile
from pathlib import Path
from typing import Any

import pytest

from mclauncher.platform_info import Platform


class FakeContent:
    def __init__(self, body: bytes) -> None:
        self._body = body

    async def iter_chunked(self, size: int):
        for start in range(0, len(self._body), size):
            yield self._body[start:start + size]


class FakeResponse:
    def __init__(self, body: bytes = b"", status: int = 200, headers: dict | None = None, url: str = "") -> None:
        self.body = body
        self.status = status
        self.headers = headers or {}
        self.url = url
        self.reason = "OK" if status < 400 else "Error"
        self.content = FakeContent(body)

    async def read(self) -> bytes:
        return self.body


class _RequestContext:
    def __init__(self, response: FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> FakeResponse:
        return self._response

    async def __aexit__(self, *exc: Any) -> None:
        return None


def json_response(data: Any, status: int = 200, headers: dict | None = None) -> FakeResponse:
    return FakeResponse(json.dumps(data).encode(), status=status, headers=headers)


class FakeSession:
    """Routes GET requests by exact URL and records every request made.

    A route may be a FakeResponse, raw bytes, or a callable taking the request
    headers and returning a FakeResponse. Unrouted URLs answer 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[tuple[str, dict]] = []

    def get(self, url: str, headers: dict | None = None, **kwargs: Any) -> _RequestContext:
        self.requests.append((url, dict(headers or {})))
        route = self.routes.get(url)
        if route is None:
            response = FakeResponse(b"not found", status=404)
        elif isinstance(route, FakeResponse):
            response = route
        elif isinstance(route, bytes):
            response = FakeResponse(route)
        elif callable(route):
            response = route(dict(headers or {}))
        else:
            response = json_response(route)
        response.url = response.url or url
        return _RequestContext(response)

    def count(self, url: str) -> int:
        return sum(1 for requested, _ in self.requests if requested == url)


def sha1_of(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def make_jar(entries: dict[str, bytes]) -> bytes:
    """Builds an in-memory zip; names ending in '/' become directory entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def linux() -> Platform:
    return Platform(os_name="linux", arch="x86_64")


@pytest.fixture
def windows() -> Platform:
    return Platform(os_name="windows", arch="x86_64")


@pytest.fixture
def mac_arm() -> Platform:
    return Platform(os_name="osx", arch="arm64")


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    base = tmp_path / "minecraft"
    base.mkdir()
    return base.resolve()
