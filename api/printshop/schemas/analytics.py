"""Analytics schemas."""

from typing import Dict, List

from pydantic import BaseModel

from printshop.schemas.common import Envelope


class DeliveredStats(BaseModel):
    total: int
    this_month: int
    last_month: int
    on_time: int
    late: int
    average_delivery_days: float


class PrinterStats(BaseModel):
    """Finished queue entries of one printer."""

    stampante_id: int
    nome: str
    prints_completed: int
    prints_failed: int
    success_rate: float
    average_print_minutes: float
    total_hours: float


class PeriodStats(BaseModel):
    """One calendar month; period is ``YYYY-MM``."""

    period: str
    orders: int
    delivered: int
    prints_completed: int
    print_hours: float


class TopPerformer(BaseModel):
    stampante_id: int
    nome: str
    prints_completed: int
    success_rate: float


class AnalyticsSummary(BaseModel):
    """Shop-wide counters for the dashboard."""

    total_printers: int
    active_printers: int
    total_orders: int
    pending_orders: int
    completed_orders: int
    orders_by_status: Dict[str, int]
    total_commesse: int
    delivered: DeliveredStats
    printer_stats: List[PrinterStats] = []
    time_stats: List[PeriodStats] = []
    top_performers: List[TopPerformer] = []


class AnalyticsSummaryResponse(Envelope):
    summary: AnalyticsSummary
