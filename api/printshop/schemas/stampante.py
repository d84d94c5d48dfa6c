"""Printer schemas."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from printshop.schemas.common import Envelope


class TipoSistema:
    """Printer firmware / API families we can talk to directly."""

    KLIPPER = "klipper"
    BAMBU = "bambu"

    ALL = (KLIPPER, BAMBU)


class StatoStampante:
    """Live printer state reported in StampanteStatus."""

    PRONTA = "pronta"
    IN_STAMPA = "in_stampa"
    PAUSA = "pausa"
    ERRORE = "errore"
    OFFLINE = "offline"


class StampanteBase(BaseModel):
    """Base printer schema."""

    nome: str = Field(..., min_length=1, max_length=255)
    modello: Optional[str] = None
    seriale: Optional[str] = None
    attiva: bool = True
    data_acquisto: Optional[date] = None
    note: Optional[str] = None
    tipo_sistema: Optional[str] = Field(None, pattern="^(klipper|bambu)$")
    endpoint_api: Optional[str] = None
    ha_entity_id: Optional[str] = None


class StampanteCreate(StampanteBase):
    """Schema for creating a printer."""

    api_key: Optional[str] = None


class StampanteUpdate(BaseModel):
    """Schema for updating a printer."""

    nome: Optional[str] = Field(None, min_length=1, max_length=255)
    modello: Optional[str] = None
    seriale: Optional[str] = None
    attiva: Optional[bool] = None
    data_acquisto: Optional[date] = None
    note: Optional[str] = None
    tipo_sistema: Optional[str] = Field(None, pattern="^(klipper|bambu)$")
    endpoint_api: Optional[str] = None
    api_key: Optional[str] = None
    ha_entity_id: Optional[str] = None


class StampanteResponse(StampanteBase):
    """Schema for printer response (api_key is never returned)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    organizzazione_id: Optional[int]
    has_api_key: bool = False
    created_at: datetime
    updated_at: datetime


class StampanteStatus(BaseModel):
    """Live telemetry snapshot, rebuilt on every request."""

    stampante_id: int
    stato: str
    temperatura_nozzle: Optional[float] = None
    temperatura_piatto: Optional[float] = None
    temperatura_camera: Optional[float] = None
    percentuale_completamento: Optional[float] = None
    tempo_rimanente: Optional[float] = None
    tempo_totale: Optional[float] = None
    velocita_ventola: Optional[float] = None
    velocita_estrusore: Optional[float] = None
    nome_file_corrente: Optional[str] = None
    ultimo_aggiornamento: datetime
    error: Optional[str] = None


class StampanteControlRequest(BaseModel):
    """Direct printer command."""

    action: str = Field(
        ...,
        pattern="^(start_print|pause_print|resume_print|cancel_print|set_temperature|set_bed_temperature)$",
    )
    params: Dict[str, Any] = Field(default_factory=dict)


class StampanteDetailResponse(Envelope):
    stampante: StampanteResponse


class StampanteListResponse(Envelope):
    stampanti: List[StampanteResponse]
    count: int


class StampanteStatusResponse(Envelope):
    status: StampanteStatus


class ControlResponse(Envelope):
    message: Optional[str] = None
    error: Optional[str] = None
    result: Optional[Any] = None
