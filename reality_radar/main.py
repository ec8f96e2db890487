"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from reality_radar.config import get_settings
from reality_radar.db.session import dispose_engine
from reality_radar.logging_setup import configure_logging
from reality_radar.taskiq_app.broker import broker
from reality_radar.web.router import router


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Start the Taskiq broker for the API process and release DB connections on exit."""

    configure_logging()
    if not broker.is_worker_process:
        await broker.startup()
    yield
    if not broker.is_worker_process:
        await broker.shutdown()
    await dispose_engine()


app = FastAPI(title=get_settings().app_name, lifespan=lifespan)
app.include_router(router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Basic health endpoint."""

    return {"status": "ok"}
