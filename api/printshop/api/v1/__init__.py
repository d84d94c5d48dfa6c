"""API v1 router."""

from fastapi import APIRouter

from printshop.api.v1.endpoints import (
    analytics,
    coda_stampa,
    commesse,
    files,
    gcode,
    health,
    home_assistant,
    ordini,
    organizzazioni,
    stampanti,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(organizzazioni.router, prefix="/organizzazioni", tags=["organizzazioni"])
api_router.include_router(commesse.router, prefix="/commesse", tags=["commesse"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(gcode.router, prefix="/gcode", tags=["gcode"])
api_router.include_router(ordini.router, prefix="/ordini", tags=["ordini"])
api_router.include_router(coda_stampa.router, prefix="/coda-stampa", tags=["coda-stampa"])
api_router.include_router(stampanti.router, prefix="/stampanti", tags=["stampanti"])
api_router.include_router(home_assistant.router, prefix="/home-assistant", tags=["home-assistant"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
