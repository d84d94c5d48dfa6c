"""Commessa schemas."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from printshop.schemas.common import Envelope


class CommessaCreate(BaseModel):
    """Schema for creating a commessa.

    organizzazione_id comes from the X-Organization-ID header, not from body.
    """

    nome: str = Field(..., min_length=1, max_length=255)


class CommessaResponse(BaseModel):
    """Schema for commessa response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    nome: str
    organizzazione_id: int
    created_at: datetime


class CommessaDetailResponse(Envelope):
    commessa: CommessaResponse


class CommessaListResponse(Envelope):
    commesse: List[CommessaResponse]
    count: int
