"""Source file endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from printshop.api.deps import get_db, get_organization_id, get_storage, get_user_id
from printshop.config import settings
from printshop.errors import ValidationError
from printshop.schemas.common import MessageResponse
from printshop.schemas.file_origine import (
    FileOrigineDetailResponse,
    FileOrigineListResponse,
    FileOrigineResponse,
    GcodePrincipaleUpdate,
)
from printshop.services import file_service
from printshop.storage.base import BaseStorageDriver

router = APIRouter()


async def read_upload(upload: UploadFile) -> bytes:
    """Read an uploaded file, enforcing the configured size limit."""
    content = await upload.read()
    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise ValidationError(f"File troppo grande (massimo {settings.max_upload_size_mb} MB)")
    return content


@router.get("", response_model=FileOrigineListResponse)
def list_files(
    commessa_id: Optional[int] = None,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """List source files, optionally for one commessa."""
    files = file_service.list_files(db, organizzazione_id, commessa_id)
    return FileOrigineListResponse(files=[FileOrigineResponse.model_validate(f) for f in files], count=len(files))


@router.post("", response_model=FileOrigineDetailResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    commessa_id: int = Form(...),
    descrizione: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_storage),
    organizzazione_id: int = Depends(get_organization_id),
    user_id: Optional[str] = Depends(get_user_id),
):
    """
    Upload an STL/STEP source file.

    - **file**: The design file
    - **commessa_id**: Commessa the file belongs to
    - **descrizione**: Optional description

    Stored at `<organization>/<commessa>/<name>.<ext>`; uploading the same
    name twice in a commessa is refused with 409.
    """
    content = await read_upload(file)
    file_origine = await file_service.upload_file(
        db,
        storage,
        commessa_id=commessa_id,
        organizzazione_id=organizzazione_id,
        filename=file.filename or "",
        content=content,
        user_id=user_id,
        descrizione=descrizione,
    )
    return FileOrigineDetailResponse(file=FileOrigineResponse.model_validate(file_origine))


@router.get("/{file_id}", response_model=FileOrigineDetailResponse)
def get_file(
    file_id: int,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Get source file by ID."""
    file_origine = file_service.get_file(db, file_id, organizzazione_id)
    return FileOrigineDetailResponse(file=FileOrigineResponse.model_validate(file_origine))


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: int,
    db: Session = Depends(get_db),
    storage: BaseStorageDriver = Depends(get_storage),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Delete a source file and its G-code (refused while orders use them)."""
    await file_service.delete_file(db, storage, file_id, organizzazione_id)
    return MessageResponse(message=f"File {file_id} eliminato")


@router.put("/{file_id}/gcode-principale", response_model=FileOrigineDetailResponse)
def set_gcode_principale(
    file_id: int,
    data: GcodePrincipaleUpdate,
    db: Session = Depends(get_db),
    organizzazione_id: int = Depends(get_organization_id),
):
    """Set or clear the principal G-code of a source file."""
    file_origine = file_service.set_gcode_principale(db, file_id, data.gcode_id, organizzazione_id)
    return FileOrigineDetailResponse(file=FileOrigineResponse.model_validate(file_origine))
