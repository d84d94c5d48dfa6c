"""Printer endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_optional_organization_id, get_telemetry
from printshop.schemas.common import MessageResponse
from printshop.schemas.stampante import (
    ControlResponse,
    StampanteControlRequest,
    StampanteCreate,
    StampanteDetailResponse,
    StampanteListResponse,
    StampanteResponse,
    StampanteStatusResponse,
    StampanteUpdate,
)
from printshop.services import stampante_service
from printshop.services.home_assistant_config import get_config
from printshop.services.telemetry import TelemetryAdapter

router = APIRouter()


def _list_response(db: Session, organizzazione_id: Optional[int], solo_attive: bool) -> StampanteListResponse:
    stampanti = stampante_service.list_stampanti(db, organizzazione_id, solo_attive)
    return StampanteListResponse(
        stampanti=[StampanteResponse.model_validate(s) for s in stampanti],
        count=len(stampanti),
    )


@router.get("", response_model=StampanteListResponse)
def list_stampanti(
    solo_attive: bool = False,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """List printers (scoped to X-Organization-ID when given)."""
    return _list_response(db, organizzazione_id, solo_attive)


@router.get("/list", response_model=StampanteListResponse)
def list_stampanti_compat(
    solo_attive: bool = False,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Same listing as `GET /api/stampanti`, kept at its historical path."""
    return _list_response(db, organizzazione_id, solo_attive)


@router.post("", response_model=StampanteDetailResponse, status_code=status.HTTP_201_CREATED)
def create_stampante(
    data: StampanteCreate,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """
    Register a printer.

    - **nome**: Printer name
    - **tipo_sistema**: `klipper` or `bambu` (optional)
    - **endpoint_api**: Printer API base URL (optional)
    - **api_key**: Printer API key, stored encrypted (optional)
    - **ha_entity_id**: Home Assistant entity tracking the printer (optional)
    """
    stampante = stampante_service.create_stampante(db, data, organizzazione_id)
    return StampanteDetailResponse(stampante=StampanteResponse.model_validate(stampante))


@router.get("/status/{stampante_id}", response_model=StampanteStatusResponse)
async def get_status(
    stampante_id: int,
    db: Session = Depends(get_db),
    telemetry: TelemetryAdapter = Depends(get_telemetry),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Live status snapshot, read from the printer (or Home Assistant) on every call."""
    stampante = stampante_service.get_stampante(db, stampante_id, organizzazione_id)
    ha_config = get_config(db) if stampante.ha_entity_id else None
    snapshot = await telemetry.get_status(stampante, ha_config)
    return StampanteStatusResponse(status=snapshot)


@router.get("/{stampante_id}", response_model=StampanteDetailResponse)
def get_stampante(
    stampante_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Get printer by ID."""
    stampante = stampante_service.get_stampante(db, stampante_id, organizzazione_id)
    return StampanteDetailResponse(stampante=StampanteResponse.model_validate(stampante))


@router.put("/{stampante_id}", response_model=StampanteDetailResponse)
def update_stampante(
    stampante_id: int,
    data: StampanteUpdate,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Update printer fields; set `attiva` to false to retire a printer."""
    stampante = stampante_service.update_stampante(db, stampante_id, data, organizzazione_id)
    return StampanteDetailResponse(stampante=StampanteResponse.model_validate(stampante))


@router.delete("/{stampante_id}", response_model=MessageResponse)
def delete_stampante(
    stampante_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Delete a printer with no queue history."""
    stampante_service.delete_stampante(db, stampante_id, organizzazione_id)
    return MessageResponse(message=f"Stampante {stampante_id} eliminata")


@router.post("/{stampante_id}/control", response_model=ControlResponse)
async def control_stampante(
    stampante_id: int,
    data: StampanteControlRequest,
    db: Session = Depends(get_db),
    telemetry: TelemetryAdapter = Depends(get_telemetry),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """
    Send a command to the printer.

    - **action**: start_print, pause_print, resume_print, cancel_print,
      set_temperature, set_bed_temperature
    - **params**: Action parameters (filename / file_id, temperature)

    Returns 400 with the error when the printer rejects the command.
    """
    stampante = stampante_service.get_stampante(db, stampante_id, organizzazione_id)
    ha_config = get_config(db) if stampante.ha_entity_id else None
    result = await telemetry.control(stampante, data.action, data.params, ha_config)

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ControlResponse(success=False, error=result.error).model_dump(),
        )
    return ControlResponse(message=f"Comando {data.action} inviato", result=result.result)
