"""Celery worker for the print shop service."""
