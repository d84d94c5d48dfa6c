"""G-code endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_optional_organization_id, get_organization_id, get_storage, get_user_id
from printshop.api.v1.endpoints.files import read_upload
from printshop.errors import PrintShopError
from printshop.schemas.common import MessageResponse
from printshop.schemas.gcode import (
    AnalyzeAllResponse,
    GcodeDetailResponse,
    GcodeListResponse,
    GcodeResponse,
    NullStatsResponse,
)
from printshop.services import gcode_service
from printshop.storage.base import BaseStorageDriver

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=GcodeListResponse)
def list_gcode(
    file_origine_id: Optional[int] = None,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """List G-code files, optionally for one source file."""
    gcodes = gcode_service.list_gcode(db, organizzazione_id, file_origine_id)
    return GcodeListResponse(gcode=[GcodeResponse.model_validate(g) for g in gcodes], count=len(gcodes))


@router.post("", response_model=GcodeDetailResponse, status_code=status.HTTP_201_CREATED)
async def upload_gcode(
    file: UploadFile = File(...),
    file_origine_id: int = Form(...),
    note: Optional[str] = Form(None),
    analyze: bool = Form(True),
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_storage),
    organizzazione_id: int = Depends(get_organization_id),
    user_id: Optional[str] = Depends(get_user_id),
):
    """
    Upload a G-code (or .gcode.3mf) generated from a source file.

    - **file**: The sliced file
    - **file_origine_id**: Source file it was generated from
    - **note**: Optional notes
    - **analyze**: Queue metadata analysis right away (default: true)
    """
    content = await read_upload(file)
    gcode = await gcode_service.upload_gcode(
        db,
        storage,
        file_origine_id=file_origine_id,
        organizzazione_id=organizzazione_id,
        filename=file.filename or "",
        content=content,
        user_id=user_id,
        note=note,
    )

    if analyze:
        try:
            gcode_service.request_analysis(db, gcode.id)
        except Exception as e:
            # The upload is stored; analysis can be triggered again later
            logger.error(f"Failed to queue analysis for G-code {gcode.id}: {e}", exc_info=True)

    return GcodeDetailResponse(gcode=GcodeResponse.model_validate(gcode))


@router.get("/null-stats", response_model=NullStatsResponse)
def get_null_stats(
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """How many G-code files still miss weight, time, material or printer."""
    return NullStatsResponse(stats=gcode_service.null_stats(db, organizzazione_id))


@router.post("/analyze-all", response_model=AnalyzeAllResponse, status_code=status.HTTP_202_ACCEPTED)
def analyze_all(
    only_missing: bool = False,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """
    Queue analysis for every G-code.

    - **only_missing**: Only G-code with at least one empty metadata field
    """
    try:
        gcode_ids = gcode_service.request_analysis_all(db, organizzazione_id, only_missing)
    except Exception as e:
        logger.error(f"Failed to start analysis: {e}", exc_info=True)
        raise PrintShopError(f"Impossibile avviare l'analisi: {e}")

    return AnalyzeAllResponse(
        message=f"Analisi avviata per {len(gcode_ids)} G-code",
        gcode_ids=gcode_ids,
        count=len(gcode_ids),
    )


@router.get("/{gcode_id}", response_model=GcodeDetailResponse)
def get_gcode(
    gcode_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Get G-code by ID."""
    gcode = gcode_service.get_gcode(db, gcode_id, organizzazione_id)
    return GcodeDetailResponse(gcode=GcodeResponse.model_validate(gcode))


@router.delete("/{gcode_id}", response_model=MessageResponse)
async def delete_gcode(
    gcode_id: int,
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_storage),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Delete a G-code (refused while orders reference it)."""
    await gcode_service.delete_gcode(db, storage, gcode_id, organizzazione_id)
    return MessageResponse(message=f"G-code {gcode_id} eliminato")


@router.get("/{gcode_id}/download")
async def download_gcode(
    gcode_id: int,
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_storage),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Download the stored G-code file."""
    filename, content = await gcode_service.download_gcode(db, storage, gcode_id, organizzazione_id)
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{gcode_id}/analyze", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def analyze_gcode(
    gcode_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: Optional[int] = Depends(get_optional_organization_id),
):
    """Queue metadata analysis (weight, print time, material, printer) of one G-code."""
    gcode_service.get_gcode(db, gcode_id, organizzazione_id)
    try:
        task_id = gcode_service.request_analysis(db, gcode_id)
    except Exception as e:
        logger.error(f"Failed to start analysis of G-code {gcode_id}: {e}", exc_info=True)
        raise PrintShopError(f"Impossibile avviare l'analisi: {e}")

    return MessageResponse(message=f"Analisi del G-code {gcode_id} avviata", task_id=task_id)
