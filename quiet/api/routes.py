from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from quiet.api.deps import get_runtime_dep, get_variables
from quiet.api.models import DebugState, TaskListResponse, VariableEntry, VariableListResponse, VariableValue
from quiet.core.handles import TaskHandle
from quiet.runtime import Runtime
from quiet.scheduler import TaskInfo
from quiet.variables import DEBUG_TOGGLE, DEFAULT_VARIABLES, VariableStore

router = APIRouter()


def _parse_handle(handle: str) -> TaskHandle:
    try:
        return TaskHandle.parse(handle)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---- variables ----


@router.get("/variables", response_model=VariableListResponse)
async def list_variables_route(store: VariableStore = Depends(get_variables)) -> VariableListResponse:
    return VariableListResponse(variables=store.all())


@router.get("/variables/{name}", response_model=VariableEntry)
async def get_variable_route(name: str, store: VariableStore = Depends(get_variables)) -> VariableEntry:
    if not store.has(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Variable not found")
    return VariableEntry(name=name, value=store.get(name))


@router.put("/variables/{name}", response_model=VariableEntry)
async def put_variable_route(
    name: str,
    payload: VariableValue,
    rt: Runtime = Depends(get_runtime_dep),
    store: VariableStore = Depends(get_variables),
) -> VariableEntry:
    try:
        store.add(name, payload.value)
    except TypeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    if name == DEBUG_TOGGLE:
        rt.debug.enabled = bool(payload.value)
    return VariableEntry(name=name, value=store.get(name))


@router.delete("/variables/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_variable_route(
    name: str,
    rt: Runtime = Depends(get_runtime_dep),
    store: VariableStore = Depends(get_variables),
) -> Response:
    if not store.remove(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Variable not found")
    if name == DEBUG_TOGGLE:
        # The default is re-seeded on the next request; keep the runtime on that default.
        rt.debug.enabled = bool(DEFAULT_VARIABLES[DEBUG_TOGGLE])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- debug toggle ----


@router.get("/debug", response_model=DebugState)
async def get_debug_route(rt: Runtime = Depends(get_runtime_dep)) -> DebugState:
    return DebugState(enabled=rt.debug.enabled)


@router.put("/debug", response_model=DebugState)
async def put_debug_route(
    payload: DebugState,
    rt: Runtime = Depends(get_runtime_dep),
    store: VariableStore = Depends(get_variables),
) -> DebugState:
    rt.debug.enabled = payload.enabled
    # Keep the shared variable in step so StoreDebugToggle readers see the same value.
    store.add(DEBUG_TOGGLE, payload.enabled)
    return DebugState(enabled=rt.debug.enabled)


# ---- scheduled tasks ----


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks_route(rt: Runtime = Depends(get_runtime_dep)) -> TaskListResponse:
    return TaskListResponse(now=rt.scheduler.now, tasks=rt.scheduler.snapshot())


@router.get("/tasks/{handle}", response_model=TaskInfo)
async def get_task_route(handle: str, rt: Runtime = Depends(get_runtime_dep)) -> TaskInfo:
    info = rt.scheduler.info(_parse_handle(handle))
    if info is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return info


@router.post("/tasks/{handle}/pause", status_code=status.HTTP_204_NO_CONTENT)
async def pause_task_route(handle: str, rt: Runtime = Depends(get_runtime_dep)) -> Response:
    rt.scheduler.pause(_parse_handle(handle))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{handle}/resume", status_code=status.HTTP_204_NO_CONTENT)
async def resume_task_route(handle: str, rt: Runtime = Depends(get_runtime_dep)) -> Response:
    rt.scheduler.resume(_parse_handle(handle))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/tasks/{handle}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_task_route(handle: str, rt: Runtime = Depends(get_runtime_dep)) -> Response:
    # Idempotent: unknown or already-finished handles are accepted.
    rt.scheduler.cancel(_parse_handle(handle))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
