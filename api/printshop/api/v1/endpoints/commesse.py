"""Commessa (job) endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_organization_id, get_storage
from printshop.schemas.commessa import (
    CommessaCreate,
    CommessaDetailResponse,
    CommessaListResponse,
    CommessaResponse,
)
from printshop.schemas.common import MessageResponse
from printshop.services import organization_service
from printshop.storage.base import BaseStorageDriver

router = APIRouter()


@router.get("", response_model=CommessaListResponse)
def list_commesse(
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """List commesse of the organization, newest first."""
    commesse = organization_service.list_commesse(db, organizzazione_id)
    return CommessaListResponse(
        commesse=[CommessaResponse.model_validate(c) for c in commesse],
        count=len(commesse),
    )


@router.post("", response_model=CommessaDetailResponse, status_code=status.HTTP_201_CREATED)
def create_commessa(
    data: CommessaCreate,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """
    Create a commessa.

    Note: organizzazione_id is automatically taken from X-Organization-ID header
    """
    commessa = organization_service.create_commessa(db, organizzazione_id, data.nome)
    return CommessaDetailResponse(commessa=CommessaResponse.model_validate(commessa))


@router.get("/{commessa_id}", response_model=CommessaDetailResponse)
def get_commessa(
    commessa_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Get commessa by ID."""
    commessa = organization_service.get_commessa(db, commessa_id, organizzazione_id)
    return CommessaDetailResponse(commessa=CommessaResponse.model_validate(commessa))


@router.delete("/{commessa_id}", response_model=MessageResponse)
async def delete_commessa(
    commessa_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
    storage: BaseStorageDriver = Depends(get_storage),
):
    """Delete a commessa and its files (refused while orders reference it)."""
    keys = organization_service.delete_commessa(db, commessa_id, organizzazione_id)
    for key in keys:
        await storage.delete_file(key)
    return MessageResponse(message=f"Commessa {commessa_id} eliminata")
