from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import redis
from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

VARIABLES_KEY = "quiet:variables"
DEBUG_TOGGLE = "DebugToggle"

DEFAULT_VARIABLES: dict[str, Any] = {
    DEBUG_TOGGLE: False,
}


class VariableTypeError(TypeError):
    """Raised when a stored variable cannot be read as the requested type."""


def _encode(name: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise TypeError(f"Variable {name} is not JSON serializable: {e}") from e


class VariableStore:
    """Loosely typed, process-wide variables kept in a single redis hash.

    Values are JSON; `get_as`/`initialize_as` validate them against a type with pydantic.
    """

    def __init__(self, *, r: redis.Redis, key: str = VARIABLES_KEY):
        self._r = r
        self._key = key

    def ensure_defaults(self) -> None:
        for name, value in DEFAULT_VARIABLES.items():
            self._r.hsetnx(self._key, name, _encode(name, value))

    def add(self, name: str, value: Any) -> None:
        """Create or overwrite a variable."""
        self._r.hset(self._key, name, _encode(name, value))

    def add_many(self, variables: Mapping[str, Any]) -> None:
        if not variables:
            return
        self._r.hset(self._key, mapping={name: _encode(name, v) for name, v in variables.items()})

    def set(self, name: str, value: Any) -> bool:
        """Overwrite an existing variable. Returns False (and stores nothing) if it doesn't exist."""
        if not self._r.hexists(self._key, name):
            return False
        self._r.hset(self._key, name, _encode(name, value))
        return True

    def get(self, name: str, default: Any = None) -> Any:
        raw = self._r.hget(self._key, name)
        if raw is None:
            return default
        return json.loads(raw)

    def get_as(self, name: str, type_: type[T]) -> T:
        raw = self._r.hget(self._key, name)
        if raw is None:
            raise KeyError(name)
        return self._validate(name, type_, json.loads(raw))

    def has(self, name: str) -> bool:
        return bool(self._r.hexists(self._key, name))

    def initialize(self, name: str, value: Any | Callable[[], Any]) -> Any:
        """Store `value` only if `name` is missing, then return the stored value.

        A zero-arg callable is treated as a factory and only invoked when the variable is missing.
        """

        if not self.has(name):
            resolved = value() if callable(value) else value
            self._r.hsetnx(self._key, name, _encode(name, resolved))
        return self.get(name)

    def initialize_as(self, name: str, type_: type[T], value: T | Callable[[], T]) -> T:
        return self._validate(name, type_, self.initialize(name, value))

    def remove(self, name: str) -> bool:
        return bool(self._r.hdel(self._key, name))

    def all(self) -> dict[str, Any]:
        raw = self._r.hgetall(self._key)
        return {str(k): json.loads(v) for k, v in raw.items()}

    def _validate(self, name: str, type_: type[T], value: Any) -> T:
        try:
            return TypeAdapter(type_).validate_python(value, strict=True)
        except ValidationError as e:
            logger.error("Variable %s could not be retrieved as type %s: %s", name, type_, e)
            raise VariableTypeError(f"Variable {name} is not a valid {type_}") from e


class StoreDebugToggle:
    """Debug flag backed by the `DebugToggle` variable; re-read on every check."""

    def __init__(self, store: VariableStore):
        self._store = store

    def __bool__(self) -> bool:
        return bool(self._store.get(DEBUG_TOGGLE, False))
