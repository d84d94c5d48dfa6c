"""Home Assistant schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from printshop.schemas.common import Envelope


class PrinterService:
    """Printer services exposed through Home Assistant."""

    START_PRINT = "start_print"
    PAUSE_PRINT = "pause_print"
    RESUME_PRINT = "resume_print"
    CANCEL_PRINT = "cancel_print"
    SET_TEMPERATURE = "set_temperature"
    SET_FAN_SPEED = "set_fan_speed"

    ALL = (START_PRINT, PAUSE_PRINT, RESUME_PRINT, CANCEL_PRINT, SET_TEMPERATURE, SET_FAN_SPEED)


class PrinterState:
    """Printer state derived from a Home Assistant entity."""

    IDLE = "idle"
    PRINTING = "printing"
    PAUSED = "paused"
    ERROR = "error"
    OFFLINE = "offline"


class HomeAssistantConfigUpsert(BaseModel):
    """Create or partially update the Home Assistant connection."""

    base_url: Optional[str] = Field(None, min_length=1, max_length=500)
    access_token: Optional[str] = Field(None, min_length=1)
    entity_prefix: Optional[str] = None


class HomeAssistantConfigResponse(BaseModel):
    """Config response; the token itself is not echoed back."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    base_url: str
    entity_prefix: Optional[str]
    has_access_token: bool = True
    created_at: datetime
    updated_at: datetime


class HomeAssistantConfigEnvelope(Envelope):
    config: Optional[HomeAssistantConfigResponse]


class HomeAssistantControlRequest(BaseModel):
    """Service call on a printer entity."""

    entity_id: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("service")
    @classmethod
    def validate_service(cls, value: str) -> str:
        if value not in PrinterService.ALL:
            raise ValueError(f"servizio non supportato, ammessi: {', '.join(PrinterService.ALL)}")
        return value


class PrinterEntity(BaseModel):
    """Printer-like entity found in Home Assistant."""

    entity_id: str
    state: str
    friendly_name: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    last_updated: Optional[str] = None


class PrinterEntityListResponse(Envelope):
    printers: List[PrinterEntity]
    count: int


class ControlResult(BaseModel):
    """Outcome of a printer command; callers inspect success."""

    success: bool
    error: Optional[str] = None
    result: Optional[Any] = None
