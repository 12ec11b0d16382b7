from __future__ import annotations

from collections.abc import Generator

import fakeredis
import pytest


class FakeClock:
    def __init__(self, t: float = 0.0) -> None:
        self.t = t

    def __call__(self) -> float:  # acts like time.monotonic
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(t=100.0)


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def _fresh_runtime() -> Generator[None, None, None]:
    """Give every test its own process runtime so scheduled tasks never leak between tests."""

    from quiet.config import Settings
    from quiet.runtime import init_runtime, reset_runtime_for_tests

    reset_runtime_for_tests()
    init_runtime(settings=Settings())
    yield
    reset_runtime_for_tests()


@pytest.fixture()
def client_and_redis(r: fakeredis.FakeRedis):
    """FastAPI TestClient with the redis dependency pointed at fakeredis."""

    from fastapi.testclient import TestClient

    from quiet.api.deps import get_redis
    from quiet.main import app

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
