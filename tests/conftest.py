"""
Pytest fixtures: settings, controllers with a recording handler, test clients.
"""

import threading
import time

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from core.config import Settings
from core.controller import Controller

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        JWT_SECRET_KEY=TEST_SECRET,
        SHUTDOWN_GRACE_SECONDS=5.0,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def calls() -> list[str]:
    """Records which handlers ran, in order."""
    return []


@pytest.fixture
def make_controller(settings: Settings, calls: list[str]):
    """Build a controller with a /protected GET handler that records its calls."""

    def _make(**kwargs) -> Controller:
        controller = Controller(settings=settings, **kwargs)

        async def protected(request: Request) -> dict:
            calls.append("protected")
            return {"identity": getattr(request.state, "identity", None)}

        controller.add_handler("/protected", protected, ["GET"])
        return controller

    return _make


@pytest.fixture
def client_for():
    """Test client over a controller's composed app."""

    def _client(controller: Controller) -> TestClient:
        return TestClient(controller.build_app())

    return _client


class ServerThread:
    """Runs controller.run() in a background thread and records its outcome."""

    def __init__(self, controller: Controller, address: str = "127.0.0.1:0") -> None:
        self.controller = controller
        self.address = address
        self.error: BaseException | None = None
        self.thread = threading.Thread(target=self._target, daemon=True)

    def _target(self) -> None:
        try:
            self.controller.run(self.address)
        except BaseException as exc:
            self.error = exc

    def start(self, timeout: float = 5.0) -> str:
        self.thread.start()
        deadline = time.monotonic() + timeout
        while not self.controller.running:
            if self.error is not None or time.monotonic() > deadline:
                raise RuntimeError(f"server did not start: {self.error!r}")
            time.sleep(0.02)
        host, port = self.controller.bound_address
        return f"http://{host}:{port}"

    def join(self, timeout: float = 10.0) -> None:
        self.thread.join(timeout)


@pytest.fixture
def server_thread() -> type[ServerThread]:
    """The ServerThread class, for tests that manage stop() themselves."""
    return ServerThread


@pytest.fixture
def serve():
    """Start controllers on an ephemeral port; stop them after the test."""
    started: list[ServerThread] = []

    def _serve(controller: Controller) -> tuple[ServerThread, str]:
        server = ServerThread(controller)
        base_url = server.start()
        started.append(server)
        return server, base_url

    yield _serve
    for server in started:
        server.controller.stop()
        server.join()
