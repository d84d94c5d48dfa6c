"""API dependencies."""

from typing import Generator, Optional

import httpx
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from printshop.database import Database
from printshop.errors import ValidationError
from printshop.services.telemetry import TelemetryAdapter
from printshop.storage.base import BaseStorageDriver


def get_database(request: Request) -> Database:
    """Database built in the application lifespan."""
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """Get database session."""
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_telemetry(request: Request) -> TelemetryAdapter:
    return request.app.state.telemetry


def get_storage(request: Request) -> BaseStorageDriver:
    return request.app.state.storage


def _parse_organization_id(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"X-Organization-ID non valido: {value}")


def get_organization_id(x_organization_id: Optional[str] = Header(None)) -> int:
    """Get organization ID from header (required)."""
    if not x_organization_id:
        raise ValidationError("X-Organization-ID header is required")
    return _parse_organization_id(x_organization_id)


def get_optional_organization_id(x_organization_id: Optional[str] = Header(None)) -> Optional[int]:
    """Organization ID from header, or None for deployment-wide views."""
    if not x_organization_id:
        return None
    return _parse_organization_id(x_organization_id)


def get_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Get caller user ID from header (set by the auth gateway)."""
    return x_user_id or None
