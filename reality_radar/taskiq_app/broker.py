"""Taskiq broker and scheduler configuration."""

import importlib

import taskiq_fastapi
from taskiq import InMemoryBroker, SimpleRetryMiddleware, TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource
from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from reality_radar.config import get_settings

settings = get_settings()

# Tasks opt in with retry_on_error; a structure change is returned, not raised.
retry_middleware = SimpleRetryMiddleware(default_retry_count=3)

if settings.taskiq_testing:
    broker = InMemoryBroker().with_middlewares(retry_middleware)
else:
    result_backend = RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.task_result_ttl_seconds,
    )
    broker = (
        RedisStreamBroker(
            url=settings.redis_url,
            queue_name=settings.taskiq_queue_name,
            consumer_group_name=settings.taskiq_queue_name,
        )
        .with_result_backend(result_backend)
        .with_middlewares(retry_middleware)
    )

taskiq_fastapi.init(broker, "reality_radar.main:app")

scheduler = TaskiqScheduler(
    broker=broker,
    sources=[LabelScheduleSource(broker)],
)


def _register_tasks() -> None:
    importlib.import_module("reality_radar.taskiq_app.tasks")


_register_tasks()

__all__ = ["broker", "scheduler"]
