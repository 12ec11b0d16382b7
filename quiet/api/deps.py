from __future__ import annotations

from collections.abc import Generator

import redis
from fastapi import Depends

from quiet.infra.redis_client import create_redis
from quiet.runtime import Runtime, get_runtime
from quiet.variables import VariableStore


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_variables(r: redis.Redis = Depends(get_redis)) -> VariableStore:
    store = VariableStore(r=r)
    store.ensure_defaults()
    return store


def get_runtime_dep() -> Runtime:
    return get_runtime()
