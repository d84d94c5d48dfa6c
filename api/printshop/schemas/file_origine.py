"""Source file schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from printshop.schemas.common import Envelope


class FileTipo:
    """Accepted source file types."""

    STL = "stl"
    STEP = "step"

    ALL = (STL, STEP)


class FileOrigineResponse(BaseModel):
    """Schema for source file response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    nome_file: str
    commessa_id: int
    descrizione: Optional[str]
    user_id: Optional[str]
    tipo: str
    data_caricamento: datetime
    gcode_principale_id: Optional[int]


class GcodePrincipaleUpdate(BaseModel):
    """Set (or clear) the principal G-code of a source file."""

    gcode_id: Optional[int] = None


class FileOrigineDetailResponse(Envelope):
    file: FileOrigineResponse


class FileOrigineListResponse(Envelope):
    files: List[FileOrigineResponse]
    count: int
