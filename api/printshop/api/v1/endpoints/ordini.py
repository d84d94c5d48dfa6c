"""Order endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_organization_id, get_user_id
from printshop.schemas.common import MessageResponse
from printshop.schemas.ordine import (
    OrdineCreate,
    OrdineDetailResponse,
    OrdineListResponse,
    OrdineResponse,
    OrdineUpdate,
)
from printshop.services import lifecycle

router = APIRouter()


@router.get("", response_model=OrdineListResponse)
def list_ordini(
    stato: Optional[str] = None,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """List orders of the organization, newest first."""
    ordini = lifecycle.list_orders(db, organizzazione_id, user_id=user_id, stato=stato)
    return OrdineListResponse(ordini=[OrdineResponse.model_validate(o) for o in ordini], count=len(ordini))


@router.post("", response_model=OrdineDetailResponse, status_code=status.HTTP_201_CREATED)
def submit_ordine(
    data: OrdineCreate,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
    user_id: Optional[str] = Depends(get_user_id),
):
    """
    Submit an order for N copies of a G-code.

    - **gcode_id**: G-code to print
    - **quantita**: Number of copies (> 0)
    - **commessa_id**: Commessa (defaults to the G-code's)
    - **consegna_richiesta**: Requested delivery date (optional)

    The order starts in `processamento`.
    """
    ordine = lifecycle.submit_order(
        db,
        gcode_id=data.gcode_id,
        quantita=data.quantita,
        commessa_id=data.commessa_id,
        organizzazione_id=organizzazione_id,
        user_id=user_id,
        consegna_richiesta=data.consegna_richiesta,
        note=data.note,
    )
    return OrdineDetailResponse(ordine=OrdineResponse.model_validate(ordine))


@router.get("/{ordine_id}", response_model=OrdineDetailResponse)
def get_ordine(
    ordine_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Get order by ID."""
    ordine = lifecycle.get_order(db, ordine_id, organizzazione_id)
    return OrdineDetailResponse(ordine=OrdineResponse.model_validate(ordine))


@router.patch("/{ordine_id}", response_model=OrdineDetailResponse)
def update_ordine(
    ordine_id: int,
    data: OrdineUpdate,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Update quantity, requested delivery date or notes of an order still in `processamento`."""
    ordine = lifecycle.update_order(
        db,
        ordine_id,
        organizzazione_id,
        quantita=data.quantita,
        consegna_richiesta=data.consegna_richiesta,
        note=data.note,
    )
    return OrdineDetailResponse(ordine=OrdineResponse.model_validate(ordine))


@router.delete("/{ordine_id}", response_model=MessageResponse)
def delete_ordine(
    ordine_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Delete an order still in `processamento`."""
    lifecycle.delete_order(db, ordine_id, organizzazione_id)
    return MessageResponse(message=f"Ordine {ordine_id} eliminato")


@router.post("/{ordine_id}/consegna", response_model=OrdineDetailResponse)
def consegna_ordine(
    ordine_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Mark a `pronto` order as delivered."""
    ordine = lifecycle.mark_delivered(db, ordine_id, organizzazione_id)
    return OrdineDetailResponse(ordine=OrdineResponse.model_validate(ordine))
