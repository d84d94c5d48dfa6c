"""Organization endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_user_id
from printshop.schemas.organization import (
    MembroCreate,
    MembroDetailResponse,
    MembroListResponse,
    MembroResponse,
    OrganizzazioneCreate,
    OrganizzazioneDetailResponse,
    OrganizzazioneListResponse,
    OrganizzazioneResponse,
)
from printshop.services import organization_service

router = APIRouter()


@router.get("", response_model=OrganizzazioneListResponse)
def list_organizzazioni(
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_user_id),
):
    """List organizations the caller belongs to (all of them for superusers)."""
    organizzazioni = organization_service.list_organizations(db, user_id)
    return OrganizzazioneListResponse(
        organizzazioni=[OrganizzazioneResponse.model_validate(o) for o in organizzazioni],
        count=len(organizzazioni),
    )


@router.post("", response_model=OrganizzazioneDetailResponse, status_code=status.HTTP_201_CREATED)
def create_organizzazione(
    data: OrganizzazioneCreate,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_user_id),
):
    """
    Create an organization.

    - **nome**: Unique organization name

    The caller (X-User-ID header) becomes its admin.
    """
    organizzazione = organization_service.create_organization(db, data.nome, user_id)
    return OrganizzazioneDetailResponse(organizzazione=OrganizzazioneResponse.model_validate(organizzazione))


@router.get("/{organizzazione_id}/membri", response_model=MembroListResponse)
def list_membri(organizzazione_id: int, db: Session = Depends(get_db)):
    """List members of an organization."""
    membri = organization_service.list_members(db, organizzazione_id)
    return MembroListResponse(membri=[MembroResponse.model_validate(m) for m in membri], count=len(membri))


@router.post(
    "/{organizzazione_id}/membri",
    response_model=MembroDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_membro(organizzazione_id: int, data: MembroCreate, db: Session = Depends(get_db)):
    """Add a user to an organization."""
    membro = organization_service.add_member(db, organizzazione_id, data.user_id, data.role, data.email)
    return MembroDetailResponse(membro=MembroResponse.model_validate(membro))
