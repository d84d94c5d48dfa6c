"""Analytics endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_optional_organization_id
from printshop.schemas.analytics import AnalyticsSummaryResponse
from printshop.services import analytics

router = APIRouter()


@router.get("/summary", response_model=AnalyticsSummaryResponse)
def get_summary(
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Printers, orders and delivery counters for the dashboard."""
    return AnalyticsSummaryResponse(summary=analytics.get_summary(db, organizzazione_id))
