from __future__ import annotations

import redis

from quiet.config import load_settings


def get_redis_url() -> str:
    return load_settings().redis_url


def create_redis() -> redis.Redis:
    # decode_responses=True => strings in/out instead of bytes
    return redis.Redis.from_url(get_redis_url(), decode_responses=True)
