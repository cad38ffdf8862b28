import pytest
from fastapi.testclient import TestClient

import app as app_module
import routers.rooms as rooms_module
from backend import RoomRegistry


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return RoomRegistry(clock=clock)


@pytest.fixture
def client(registry, monkeypatch):
    monkeypatch.setattr(app_module, "registry", registry)
    monkeypatch.setattr(rooms_module, "registry", registry)
    return TestClient(app_module.app)
