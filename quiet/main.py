import asyncio
import logging
from pathlib import Path

from fastapi import FastAPI

from quiet.api.routes import router
from quiet.config import load_settings
from quiet.runtime import get_runtime, init_runtime

_project_root = Path(__file__).resolve().parent.parent

settings = load_settings(env_file=_project_root / ".env")

app = FastAPI(title="quiet-utils", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

_frame_loop_stop = asyncio.Event()
_frame_loop_task: asyncio.Task[None] | None = None


@app.on_event("startup")
async def _startup() -> None:
    global _frame_loop_task
    rt = init_runtime(settings=settings)
    if rt.settings.frame_loop_autostart:
        _frame_loop_stop.clear()
        _frame_loop_task = asyncio.create_task(
            rt.frame_loop.run(frame_interval=rt.settings.frame_interval, stop=_frame_loop_stop)
        )


@app.on_event("shutdown")
async def _shutdown() -> None:
    global _frame_loop_task
    if _frame_loop_task is not None:
        _frame_loop_stop.set()
        try:
            await _frame_loop_task
        finally:
            _frame_loop_task = None
    logger.info("Shutting down with %d scheduled tasks", len(get_runtime().scheduler))


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "quiet-utils", "version": "0.1.0"}
