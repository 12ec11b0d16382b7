from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from quiet.scheduler import TaskInfo


class VariableValue(BaseModel):
    value: Any = None


class VariableEntry(BaseModel):
    name: str
    value: Any = None


class VariableListResponse(BaseModel):
    variables: dict[str, Any]


class DebugState(BaseModel):
    enabled: bool


class TaskListResponse(BaseModel):
    now: float
    tasks: list[TaskInfo]
