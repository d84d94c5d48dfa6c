"""Order schemas."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from printshop.schemas.common import Envelope


class OrdineStato:
    """Order status values, in lifecycle order."""

    PROCESSAMENTO = "processamento"
    IN_CODA = "in_coda"
    IN_STAMPA = "in_stampa"
    PRONTO = "pronto"
    CONSEGNATO = "consegnato"

    SEQUENCE = (PROCESSAMENTO, IN_CODA, IN_STAMPA, PRONTO, CONSEGNATO)
    # Still being worked on by the shop
    PENDING = (PROCESSAMENTO, IN_CODA, IN_STAMPA)


class OrdineCreate(BaseModel):
    """Request to submit an order.

    organizzazione_id comes from the X-Organization-ID header, user from X-User-ID.
    """

    gcode_id: int
    quantita: int = Field(..., description="Number of copies (must be positive)")
    commessa_id: Optional[int] = None
    consegna_richiesta: Optional[date] = None
    note: Optional[str] = None


class OrdineUpdate(BaseModel):
    """Editable order fields; status changes only through lifecycle actions."""

    quantita: Optional[int] = Field(None, gt=0)
    consegna_richiesta: Optional[date] = None
    note: Optional[str] = None


class OrdineResponse(BaseModel):
    """Schema for order response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    gcode_id: int
    commessa_id: Optional[int]
    organizzazione_id: int
    user_id: Optional[str]
    quantita: int
    stato: str
    consegna_richiesta: Optional[date]
    note: Optional[str]
    data_ordine: datetime
    data_consegna: Optional[datetime]


class OrdineDetailResponse(Envelope):
    ordine: OrdineResponse


class OrdineListResponse(Envelope):
    ordini: List[OrdineResponse]
    count: int
