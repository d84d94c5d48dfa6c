"""Celery tasks."""

from printshop_worker.celery_app import celery_app

# Import all tasks to register them with Celery
from printshop_worker.tasks.analyze_gcode import analyze_gcode  # noqa: F401


@celery_app.task(name="printshop_worker.tasks.health_check")
def health_check() -> dict:
    """Health check task."""
    return {"status": "ok", "worker": "ready"}


__all__ = ["analyze_gcode", "health_check"]
