"""Celery application for the worker."""

import logging
from typing import Optional

from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown

from printshop.database import Database
from printshop_worker.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "printshop_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["printshop_worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=settings.task_time_limit_seconds,
    task_soft_time_limit=settings.task_soft_time_limit_seconds,
    worker_concurrency=settings.worker_concurrency,
    worker_prefetch_multiplier=1,
)

_database: Optional[Database] = None


def get_database() -> Database:
    """Database of the current worker process."""
    global _database
    if _database is None:
        _database = Database(settings.database_url, echo=settings.database_echo)
    return _database


def set_database(database: Optional[Database]) -> None:
    global _database
    _database = database


@worker_process_init.connect
def init_worker_process(**kwargs):
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    set_database(Database(settings.database_url, echo=settings.database_echo))
    logger.info("Worker process database ready")


@worker_process_shutdown.connect
def shutdown_worker_process(**kwargs):
    global _database
    if _database is not None:
        _database.dispose()
        _database = None
