"""
Shared fixtures for the relay hub tests.

``FakeWebSocket`` stands in for a Starlette websocket: it records every
message the hub sends and flips its states on close.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from main import create_app
from models import Connection, ConnectionRegistry, MessageRouter
from utilities import Settings


class FakeWebSocket:
    def __init__(self):
        self.client = None
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.close_code = None

    async def send_json(self, data):
        if self.application_state != WebSocketState.CONNECTED:
            raise RuntimeError("send after close")
        self.sent.append(data)

    async def close(self, code=1000):
        self.application_state = WebSocketState.DISCONNECTED
        self.close_code = code

    def drop(self):
        # peer went away without a close handshake
        self.client_state = WebSocketState.DISCONNECTED


class StalledWebSocket(FakeWebSocket):
    """A peer whose socket never drains: every write hangs."""

    async def send_json(self, data):
        await asyncio.Event().wait()


@pytest.fixture
def flush():
    """Let every connection's sender task write out its queue."""
    async def _flush():
        for _ in range(5):
            await asyncio.sleep(0)
    return _flush


@pytest.fixture
def make_conn():
    def _make():
        return Connection(FakeWebSocket())
    return _make


@pytest.fixture
def make_stalled_conn():
    def _make():
        return Connection(StalledWebSocket())
    return _make


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def router(registry):
    return MessageRouter(registry)


@pytest.fixture
def settings(tmp_path):
    return Settings(static_dir=str(tmp_path), max_viewers=3, ping_interval=30)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
