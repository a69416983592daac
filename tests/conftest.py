"""Pytest configuration helpers for the test suite."""

from __future__ import annotations

import io
import json
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from rich.console import Console

from mtctl.logging import StructuredLogger
from mtctl.providers import RemoteControlClient
from mtctl.state import Instance, InstanceRegistry


class ScriptedInput:
    """Line reader that replays canned operator input, then signals EOF."""

    def __init__(self, *lines: str) -> None:
        self._lines = list(lines)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._lines:
            raise EOFError
        return self._lines.pop(0)

    @property
    def remaining(self) -> int:
        """Return how many lines have not been consumed yet."""
        return len(self._lines)


Route = tuple[int, bytes] | Exception | Callable[[httpx.Request], httpx.Response]


class FakeGameServer:
    """In-process stand-in for the game server's administrative API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Route] = {}

    def respond(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        succeeded: bool = True,
        message: str = "ok",
        data: object = None,
    ) -> None:
        """Answer *method* *path* with an envelope."""
        body = {"data": data, "message": message, "succeeded": succeeded}
        self._routes[(method, path)] = (status, json.dumps(body).encode("utf-8"))

    def respond_raw(self, method: str, path: str, body: bytes, *, status: int = 200) -> None:
        """Answer *method* *path* with an arbitrary body."""
        self._routes[(method, path)] = (status, body)

    def fail(self, method: str, path: str, exc: Exception) -> None:
        """Raise *exc* from the transport for *method* *path*."""
        self._routes[(method, path)] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        """Dispatch a request captured by the mock transport."""
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            body = {"data": None, "message": "not found", "succeeded": False}
            return httpx.Response(404, json=body)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        status, content = route
        return httpx.Response(status, content=content)

    @property
    def transport(self) -> httpx.MockTransport:
        """Return a transport routing requests to :meth:`handler`."""
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        """Return the most recent request."""
        assert self.requests, "no request was sent"
        return self.requests[-1]


@pytest.fixture
def console() -> Console:
    """Return a console writing plain text into memory."""
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


def output_of(console: Console) -> str:
    """Return everything *console* printed so far."""
    stream = console.file
    assert isinstance(stream, io.StringIO)
    return stream.getvalue()


@pytest.fixture
def game_server() -> FakeGameServer:
    """Return a fake game server with no routes configured."""
    return FakeGameServer()


@pytest.fixture
def client(game_server: FakeGameServer) -> RemoteControlClient:
    """Return a client wired to the fake game server."""
    return RemoteControlClient(transport=game_server.transport)


@pytest.fixture
def logger(tmp_path: Path) -> StructuredLogger:
    """Return an operations logger writing under the temporary directory."""
    return StructuredLogger(tmp_path / "logs")


@pytest.fixture
def main_instance() -> Instance:
    """Return the instance used across session scenarios."""
    return Instance(address="10.0.0.5", port=8080, secret="s3cret")


@pytest.fixture
def registry(tmp_path: Path, main_instance: Instance) -> InstanceRegistry:
    """Return a registry holding the ``main`` instance."""
    registry = InstanceRegistry(path=tmp_path / "instances.yml")
    registry.add_or_replace("main", main_instance)
    return registry
