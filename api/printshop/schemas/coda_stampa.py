"""Print queue schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from printshop.schemas.common import Envelope


class CodaStato:
    """Queue entry status values."""

    IN_QUEUE = "in_queue"
    PRINTING = "printing"
    DONE = "done"
    ERROR = "error"

    ACTIVE = (IN_QUEUE, PRINTING)
    TERMINAL = (DONE, ERROR)


class CodaCreate(BaseModel):
    """Request to put an order on a printer queue."""

    ordine_id: int
    stampante_id: int
    note: Optional[str] = None


class CodaComplete(BaseModel):
    """Outcome of a finished print."""

    esito: str = Field(..., pattern="^(done|error)$", description="'done' or 'error'")
    note: Optional[str] = None


class CodaStampaResponse(BaseModel):
    """Schema for queue entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    ordine_id: int
    stampante_id: int
    posizione: int
    stato: str
    data_inizio: Optional[datetime]
    data_fine: Optional[datetime]
    note: Optional[str]
    created_at: datetime


class CodaStampaDetailResponse(Envelope):
    coda: CodaStampaResponse


class CodaStampaListResponse(Envelope):
    coda: List[CodaStampaResponse]
    count: int


class ConcatenationProposal(BaseModel):
    """Queued entries of one printer that could be printed as a single job."""

    id: str
    tipo: str = Field(..., description="'same_gcode' or 'same_material'")
    stampante_id: int
    coda_ids: List[int]
    ordine_ids: List[int]
    gcode_ids: List[int]
    materiale: Optional[str] = None
    quantita_totale: int
    tempo_stimato_min: int
    materiale_stimato_grammi: float
    descrizione: str


class ConcatenationListResponse(Envelope):
    proposte: List[ConcatenationProposal]
    count: int
