"""Response envelope shared by every endpoint."""

from typing import Optional

from pydantic import BaseModel


class Envelope(BaseModel):
    """Every response carries a success flag."""

    success: bool = True


class MessageResponse(Envelope):
    """Envelope with a human readable message."""

    message: str
    task_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Failure envelope."""

    success: bool = False
    error: str
