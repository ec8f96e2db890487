"""Worker entrypoint: ``taskiq worker reality_radar.taskiq_app.worker:broker``."""

import logging

from taskiq import TaskiqEvents, TaskiqState

from reality_radar.logging_setup import configure_logging
from reality_radar.taskiq_app import tasks as _tasks  # noqa: F401
from reality_radar.taskiq_app.broker import broker, scheduler

logger = logging.getLogger(__name__)


@broker.on_event(TaskiqEvents.WORKER_STARTUP)
async def _on_worker_startup(state: TaskiqState) -> None:  # noqa: ARG001
    configure_logging()
    logger.info(f"Worker ready with tasks: {', '.join(sorted(broker.get_all_tasks()))}")


__all__ = ["broker", "scheduler"]
