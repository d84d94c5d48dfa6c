"""Organization and membership schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from printshop.schemas.common import Envelope


class OrganizzazioneCreate(BaseModel):
    """Schema for creating an organization."""

    nome: str = Field(..., min_length=1, max_length=255)


class OrganizzazioneResponse(BaseModel):
    """Schema for organization response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    nome: str
    created_at: datetime


class MembroCreate(BaseModel):
    """Schema for adding a user to an organization."""

    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    role: str = Field("user", pattern="^(user|admin)$")


class MembroResponse(BaseModel):
    """Schema for membership response."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    organizzazione_id: int
    role: str


class OrganizzazioneDetailResponse(Envelope):
    organizzazione: OrganizzazioneResponse


class OrganizzazioneListResponse(Envelope):
    organizzazioni: List[OrganizzazioneResponse]
    count: int


class MembroDetailResponse(Envelope):
    membro: MembroResponse


class MembroListResponse(Envelope):
    membri: List[MembroResponse]
    count: int
