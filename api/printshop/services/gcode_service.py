"""G-code files: upload, listing, deletion and metadata analysis."""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printshop.celery_app import ANALYZE_GCODE_TASK, celery_app
from printshop.errors import ConflictError, NotFoundError, ValidationError
from printshop.models.commessa import Commessa
from printshop.models.file_origine import FileOrigine
from printshop.models.gcode import Gcode
from printshop.models.ordine import Ordine
from printshop.schemas.gcode import ANALYSIS_FIELDS, NullStats
from printshop.services.file_service import clean_name, file_base_name
from printshop.services.gcode_analysis import GcodeAnalysis
from printshop.storage.base import BaseStorageDriver, StorageFileExistsError

logger = logging.getLogger(__name__)

GCODE_EXTENSIONS = (".gcode", ".gcode.3mf", ".bgcode")


def gcode_key(organizzazione_nome: str, commessa_nome: str, file_nome: str, filename: str) -> str:
    """Storage key of a G-code: ``<org>/<commessa>/<file base>/<filename>``."""
    return "/".join(
        [
            clean_name(organizzazione_nome),
            clean_name(commessa_nome),
            file_base_name(file_nome),
            re.sub(r"\s+", "_", filename),
        ]
    )


def _scoped(query, organizzazione_id: Optional[int]):
    if organizzazione_id is None:
        return query
    return (
        query.join(FileOrigine, Gcode.file_origine_id == FileOrigine.id)
        .join(Commessa, FileOrigine.commessa_id == Commessa.id)
        .filter(Commessa.organizzazione_id == organizzazione_id)
    )


def list_gcode(
    db: Session, organizzazione_id: Optional[int] = None, file_origine_id: Optional[int] = None
) -> List[Gcode]:
    """List G-code files, newest first."""
    query = _scoped(db.query(Gcode), organizzazione_id)
    if file_origine_id is not None:
        query = query.filter(Gcode.file_origine_id == file_origine_id)
    return query.order_by(Gcode.data_caricamento.desc(), Gcode.id.desc()).all()


def get_gcode(db: Session, gcode_id: int, organizzazione_id: Optional[int] = None) -> Gcode:
    """
    Get G-code by ID.

    Raises:
        NotFoundError: If the G-code does not exist
    """
    gcode = _scoped(db.query(Gcode), organizzazione_id).filter(Gcode.id == gcode_id).first()
    if not gcode:
        raise NotFoundError(f"G-code {gcode_id} non trovato")
    return gcode


async def upload_gcode(
    db: Session,
    storage: BaseStorageDriver,
    file_origine_id: int,
    organizzazione_id: int,
    filename: str,
    content: bytes,
    user_id: Optional[str] = None,
    note: Optional[str] = None,
) -> Gcode:
    """
    Store a G-code generated from a source file.

    The first G-code of a source file becomes its principal G-code.

    Raises:
        ValidationError: If the file is empty or not G-code
        NotFoundError: If the source file does not exist in the organization
        ConflictError: If a G-code with the same name exists for the source file
    """
    if not filename.lower().endswith(GCODE_EXTENSIONS):
        raise ValidationError(f"Tipo di file non supportato: {filename} (ammessi: .gcode, .gcode.3mf)")
    if not content:
        raise ValidationError("File vuoto")

    file_origine = (
        db.query(FileOrigine)
        .join(Commessa, FileOrigine.commessa_id == Commessa.id)
        .filter(FileOrigine.id == file_origine_id, Commessa.organizzazione_id == organizzazione_id)
        .first()
    )
    if not file_origine:
        raise NotFoundError(f"File {file_origine_id} non trovato")

    commessa = file_origine.commessa
    key = gcode_key(commessa.organizzazione.nome, commessa.nome, file_origine.nome_file, filename)

    exists_message = "Esiste già un G-code con questo nome per questo file"
    if db.query(Gcode.id).filter(Gcode.nome_file == key).first():
        raise ConflictError(exists_message)
    try:
        await storage.upload_file(key, content)
    except StorageFileExistsError:
        raise ConflictError(exists_message)

    gcode = Gcode(
        file_origine_id=file_origine_id,
        nome_file=key,
        user_id=user_id,
        note=note,
    )
    db.add(gcode)
    try:
        db.flush()
        if file_origine.gcode_principale_id is None:
            file_origine.gcode_principale_id = gcode.id
        db.commit()
    except IntegrityError:
        db.rollback()
        await storage.delete_file(key)
        raise ConflictError(exists_message)

    db.refresh(gcode)
    logger.info(f"G-code {gcode.id} caricato: {key} ({len(content)} bytes)")
    return gcode


async def delete_gcode(
    db: Session, storage: BaseStorageDriver, gcode_id: int, organizzazione_id: Optional[int] = None
) -> None:
    """
    Delete a G-code from database and storage.

    Raises:
        NotFoundError: If the G-code does not exist
        ConflictError: If an order references it
    """
    gcode = get_gcode(db, gcode_id, organizzazione_id)

    if db.query(Ordine.id).filter(Ordine.gcode_id == gcode_id).first():
        raise ConflictError(f"G-code {gcode_id} usato da ordini, impossibile eliminarlo")

    key = gcode.nome_file
    db.query(FileOrigine).filter(FileOrigine.gcode_principale_id == gcode_id).update(
        {FileOrigine.gcode_principale_id: None}, synchronize_session=False
    )
    db.delete(gcode)
    db.commit()

    await storage.delete_file(key)
    logger.info(f"G-code {gcode_id} eliminato")


async def download_gcode(
    db: Session, storage: BaseStorageDriver, gcode_id: int, organizzazione_id: Optional[int] = None
) -> Tuple[str, bytes]:
    """
    Return (filename, content) of a stored G-code.

    Raises:
        NotFoundError: If the G-code or its stored object does not exist
    """
    gcode = get_gcode(db, gcode_id, organizzazione_id)
    try:
        content = await storage.download_file(gcode.nome_file)
    except FileNotFoundError:
        raise NotFoundError(f"File del G-code {gcode_id} non presente nello storage")
    return gcode.nome_file.rsplit("/", 1)[-1], content


def apply_analysis(db: Session, gcode: Gcode, analysis: GcodeAnalysis) -> Gcode:
    """Write extracted metadata back to the G-code row.

    Fields the analysis could not extract keep their current value.
    """
    for field, value in analysis.as_dict().items():
        if value is not None:
            setattr(gcode, field, value)
    gcode.data_analisi = datetime.utcnow()
    db.commit()
    db.refresh(gcode)
    return gcode


def _missing_filter():
    return or_(*[getattr(Gcode, field).is_(None) for field in ANALYSIS_FIELDS])


def request_analysis(db: Session, gcode_id: int, organizzazione_id: Optional[int] = None) -> str:
    """
    Dispatch the analysis task for one G-code.

    Returns:
        Celery task ID

    Raises:
        NotFoundError: If the G-code does not exist
    """
    get_gcode(db, gcode_id, organizzazione_id)

    task = celery_app.send_task(ANALYZE_GCODE_TASK, args=[gcode_id])
    logger.info(f"Analisi del G-code {gcode_id} in coda (task {task.id})")
    return task.id


def request_analysis_all(
    db: Session, organizzazione_id: Optional[int] = None, only_missing: bool = False
) -> List[int]:
    """
    Dispatch the analysis task for every G-code.

    Args:
        db: Database session
        organizzazione_id: Restrict to one organization
        only_missing: Only G-code with at least one metadata field still empty

    Returns:
        IDs of the G-code sent to analysis
    """
    query = _scoped(db.query(Gcode.id), organizzazione_id)
    if only_missing:
        query = query.filter(_missing_filter())

    gcode_ids = [row.id for row in query.order_by(Gcode.id).all()]
    for gcode_id in gcode_ids:
        celery_app.send_task(ANALYZE_GCODE_TASK, args=[gcode_id])

    logger.info(f"Analisi in coda per {len(gcode_ids)} G-code (only_missing={only_missing})")
    return gcode_ids


def null_stats(db: Session, organizzazione_id: Optional[int] = None) -> NullStats:
    """Count G-code rows still missing each analysis field."""
    total = _scoped(db.query(Gcode.id), organizzazione_id).count()
    with_nulls = _scoped(db.query(Gcode.id), organizzazione_id).filter(_missing_filter()).count()

    null_fields: Dict[str, int] = {}
    percentages: Dict[str, int] = {}
    for field in ANALYSIS_FIELDS:
        count = _scoped(db.query(Gcode.id), organizzazione_id).filter(getattr(Gcode, field).is_(None)).count()
        null_fields[field] = count
        percentages[field] = round(count * 100 / total) if total else 0

    return NullStats(total=total, with_nulls=with_nulls, null_fields=null_fields, percentages=percentages)


def analysis_summary(gcode: Gcode) -> Dict[str, Any]:
    """Current metadata of a G-code, for task results and logs."""
    return {field: getattr(gcode, field) for field in ANALYSIS_FIELDS}
