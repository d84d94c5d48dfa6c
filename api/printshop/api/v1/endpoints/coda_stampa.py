"""Print queue endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_optional_organization_id
from printshop.schemas.coda_stampa import (
    CodaComplete,
    CodaCreate,
    CodaStampaDetailResponse,
    CodaStampaListResponse,
    CodaStampaResponse,
    ConcatenationListResponse,
)
from printshop.services import lifecycle

router = APIRouter()


@router.get("", response_model=CodaStampaListResponse)
def list_coda(
    stampante_id: Optional[int] = None,
    stato: Optional[str] = None,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """List queue entries, per printer in FIFO order."""
    entries = lifecycle.list_queue(db, stampante_id=stampante_id, stato=stato, organizzazione_id=organizzazione_id)
    return CodaStampaListResponse(coda=[CodaStampaResponse.model_validate(e) for e in entries], count=len(entries))


@router.get("/concatenation-candidates", response_model=ConcatenationListResponse)
def concatenation_candidates(
    stampante_id: Optional[int] = None,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """
    Propose waiting entries that could be printed as one job.

    - **stampante_id**: Restrict to one printer

    Proposals group entries of the same printer sharing a G-code or a material,
    with total quantity and estimated print time and filament.
    """
    proposte = lifecycle.find_concatenation_candidates(
        db, stampante_id=stampante_id, organizzazione_id=organizzazione_id
    )
    return ConcatenationListResponse(proposte=proposte, count=len(proposte))


@router.post("", response_model=CodaStampaDetailResponse, status_code=status.HTTP_201_CREATED)
def enqueue(
    data: CodaCreate,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """
    Put an order on a printer's queue.

    - **ordine_id**: Order to print
    - **stampante_id**: Target printer (must be active)
    """
    entry = lifecycle.enqueue(
        db, data.ordine_id, data.stampante_id, note=data.note, organizzazione_id=organizzazione_id
    )
    return CodaStampaDetailResponse(coda=CodaStampaResponse.model_validate(entry))


@router.post("/{coda_id}/start", response_model=CodaStampaDetailResponse)
def start_print(
    coda_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Start printing a queued entry (one print at a time per printer)."""
    entry = lifecycle.start_print(db, coda_id, organizzazione_id)
    return CodaStampaDetailResponse(coda=CodaStampaResponse.model_validate(entry))


@router.post("/{coda_id}/complete", response_model=CodaStampaDetailResponse)
def complete_print(
    coda_id: int,
    data: CodaComplete,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """
    Finish a running print.

    - **esito**: `done` or `error`; a failed print is reprinted by enqueuing the order again
    """
    entry = lifecycle.complete_print(db, coda_id, data.esito, note=data.note, organizzazione_id=organizzazione_id)
    return CodaStampaDetailResponse(coda=CodaStampaResponse.model_validate(entry))
