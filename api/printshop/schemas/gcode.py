"""G-code schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from printshop.schemas.common import Envelope

# Metadata columns written by the analysis task
ANALYSIS_FIELDS = ("peso_grammi", "tempo_stampa_min", "materiale", "stampante")


class GcodeResponse(BaseModel):
    """Schema for G-code response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    file_origine_id: int
    nome_file: str
    user_id: Optional[str]
    data_caricamento: datetime
    peso_grammi: Optional[float]
    tempo_stampa_min: Optional[int]
    materiale: Optional[str]
    stampante: Optional[str]
    data_analisi: Optional[datetime]
    note: Optional[str]


class GcodeDetailResponse(Envelope):
    gcode: GcodeResponse


class GcodeListResponse(Envelope):
    gcode: List[GcodeResponse]
    count: int


class NullStats(BaseModel):
    """How many G-code rows still miss each analysis field."""

    total: int
    with_nulls: int
    null_fields: Dict[str, int]
    percentages: Dict[str, int]


class NullStatsResponse(Envelope):
    stats: NullStats


class AnalyzeAllResponse(Envelope):
    message: str
    gcode_ids: List[int]
    count: int
