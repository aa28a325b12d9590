import asyncio
import socket
import threading
import time

import pytest
import uvicorn
from fastapi.testclient import TestClient

from forge_relay.models.config import AppConfig, RelayConfig
from forge_relay.server.app import create_app, get_app_config, get_gemini_client
from forge_relay.utils.config import API_KEY_ENV


class FakeGeminiClient:
    """Stands in for GeminiClient; records every pull from its fragment stream."""

    def __init__(
        self,
        fragments: list[str] | None = None,
        error: Exception | None = None,
        error_after: int = 0,
        delay: float = 0.0,
    ):
        self.fragments = fragments or []
        self.error = error
        self.error_after = error_after
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.pulled = 0
        self.closed = False

    async def stream_generate(self, system_instruction, prompt, token=None):
        self.calls.append((system_instruction, prompt))
        try:
            for i, fragment in enumerate(self.fragments):
                if self.error is not None and i == self.error_after:
                    raise self.error
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.pulled += 1
                yield fragment
            if self.error is not None and self.error_after >= len(self.fragments):
                raise self.error
        finally:
            self.closed = True


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv(API_KEY_ENV, "test-key-1234")
    return "test-key-1234"


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def make_client(app):
    """Build a TestClient whose upstream is the given FakeGeminiClient."""

    def _make(fake: FakeGeminiClient, config: AppConfig | None = None, **kwargs) -> TestClient:
        override_upstream(app, fake, config)
        return TestClient(app, **kwargs)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def fast_timeout_config() -> AppConfig:
    return AppConfig(relay=RelayConfig(idle_timeout_sec=0.05, disconnect_poll_interval_sec=0.01))


NOVA_REQUEST = {
    "brandName": "Nova",
    "coreConcept": "AI scheduler",
    "targetAudience": "freelancers",
    "brandVibe": "Techy",
    "notes": "",
}


def override_upstream(app, fake: FakeGeminiClient, config: AppConfig | None = None) -> None:
    app.dependency_overrides[get_gemini_client] = lambda: fake
    if config is not None:
        app.dependency_overrides[get_app_config] = lambda: config


def wait_for(predicate, timeout: float = 5.0) -> bool:
    """Poll `predicate` until it holds; work on the server thread finishes asynchronously."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class LiveServer:
    """Runs the app on uvicorn in a background thread, on a free local port."""

    def __init__(self, app):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.port = self.sock.getsockname()[1]
        self.server = uvicorn.Server(
            uvicorn.Config(app, host="127.0.0.1", port=self.port, lifespan="off", log_level="warning")
        )
        self.thread = threading.Thread(target=self.server.run, kwargs={"sockets": [self.sock]}, daemon=True)

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self) -> None:
        self.thread.start()
        if not wait_for(lambda: self.server.started):
            raise RuntimeError("uvicorn did not start")

    def stop(self) -> None:
        self.server.should_exit = True
        self.thread.join(timeout=5)
        self.sock.close()


@pytest.fixture
def live_server(app):
    """Start a real server whose upstream is the given FakeGeminiClient."""
    servers: list[LiveServer] = []

    def _start(fake: FakeGeminiClient, config: AppConfig | None = None) -> LiveServer:
        override_upstream(app, fake, config)
        server = LiveServer(app)
        server.start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()
    app.dependency_overrides.clear()
