"""Home Assistant endpoints."""

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_http_client
from printshop.schemas.common import MessageResponse
from printshop.schemas.home_assistant import (
    HomeAssistantConfigEnvelope,
    HomeAssistantConfigResponse,
    HomeAssistantConfigUpsert,
    HomeAssistantControlRequest,
    PrinterEntityListResponse,
)
from printshop.schemas.stampante import ControlResponse
from printshop.services import home_assistant_config
from printshop.services.home_assistant import HomeAssistantClient

router = APIRouter()


def _envelope(config) -> HomeAssistantConfigEnvelope:
    if config is None:
        return HomeAssistantConfigEnvelope(config=None)
    return HomeAssistantConfigEnvelope(config=HomeAssistantConfigResponse.model_validate(config))


@router.get("/config", response_model=HomeAssistantConfigEnvelope)
def get_config(db: Session = Depends(get_db)):
    """Current Home Assistant connection (`config` is null when not configured)."""
    return _envelope(home_assistant_config.get_config(db))


@router.post("/config", response_model=HomeAssistantConfigEnvelope)
def upsert_config(data: HomeAssistantConfigUpsert, db: Session = Depends(get_db)):
    """
    Create or update the Home Assistant connection.

    - **base_url**: Home Assistant URL (required the first time)
    - **access_token**: Long-lived access token (required the first time)
    - **entity_prefix**: Prefix of printer entity ids (optional)

    Later calls only change the fields they provide.
    """
    config = home_assistant_config.upsert_config(db, data.model_dump(exclude_unset=True))
    return _envelope(config)


@router.delete("/config", response_model=MessageResponse)
def delete_config(db: Session = Depends(get_db)):
    """Forget the Home Assistant connection."""
    deleted = home_assistant_config.delete_config(db)
    return MessageResponse(message="Configurazione eliminata" if deleted else "Nessuna configurazione presente")


@router.get("/printers", response_model=PrinterEntityListResponse)
async def list_printers(
    db: Session = Depends(get_db),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Printer entities found in Home Assistant."""
    client = HomeAssistantClient(home_assistant_config.get_config(db), http_client)
    printers = await client.get_available_printers()
    return PrinterEntityListResponse(printers=printers, count=len(printers))


@router.post("/control", response_model=ControlResponse)
async def control_printer(
    data: HomeAssistantControlRequest,
    db: Session = Depends(get_db),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Call a printer service through Home Assistant.

    - **entity_id**: Printer entity
    - **service**: start_print, pause_print, resume_print, cancel_print, set_temperature, set_fan_speed
    - **data**: Extra service data

    Returns 400 with the error when Home Assistant rejects the call.
    """
    client = HomeAssistantClient(home_assistant_config.get_config(db), http_client)
    result = await client.control_printer(data.entity_id, data.service, data.data)

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ControlResponse(success=False, error=result.error).model_dump(),
        )
    return ControlResponse(message=f"Servizio {data.service} eseguito su {data.entity_id}", result=result.result)
