"""Source design files (STL/STEP) and their storage keys."""

import logging
import re
import unicodedata
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printshop.errors import ConflictError, NotFoundError, ValidationError
from printshop.models.commessa import Commessa
from printshop.models.file_origine import FileOrigine
from printshop.models.gcode import Gcode
from printshop.models.ordine import Ordine
from printshop.schemas.file_origine import FileTipo
from printshop.storage.base import BaseStorageDriver, StorageFileExistsError

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = {"stl": FileTipo.STL, "step": FileTipo.STEP, "stp": FileTipo.STEP}


def clean_name(value: str) -> str:
    """Make a name safe for a storage key.

    Strips accents and special characters, turns whitespace into ``_`` and
    lowercases.

    Examples:
        >>> clean_name("Società Rossi & Figli")
        'societa_rossi_figli'
    """
    value = unicodedata.normalize("NFD", value)
    value = re.sub(r"[^\w\s-]", "", value, flags=re.ASCII)
    return re.sub(r"\s+", "_", value).lower()


def split_extension(filename: str):
    """Split ``name.ext`` into (name, ext); ext is lowercase and may be empty."""
    if "." not in filename:
        return filename, ""
    base, ext = filename.rsplit(".", 1)
    return base, ext.lower()


def source_file_key(organizzazione_nome: str, commessa_nome: str, filename: str) -> str:
    """Storage key of a source file: ``<org>/<commessa>/<base>.<ext>``."""
    base, ext = split_extension(filename)
    base = re.sub(r"\s+", "_", base).lower()
    return f"{clean_name(organizzazione_nome)}/{clean_name(commessa_nome)}/{base}.{ext}"


def file_base_name(nome_file: str) -> str:
    """Cleaned base name of a stored source file (folder for its G-code)."""
    leaf = nome_file.rsplit("/", 1)[-1]
    return clean_name(leaf.split(".")[0] or "origine")


def list_files(
    db: Session, organizzazione_id: Optional[int] = None, commessa_id: Optional[int] = None
) -> List[FileOrigine]:
    """List source files, newest first."""
    query = db.query(FileOrigine)
    if organizzazione_id is not None:
        query = query.join(Commessa, FileOrigine.commessa_id == Commessa.id).filter(
            Commessa.organizzazione_id == organizzazione_id
        )
    if commessa_id is not None:
        query = query.filter(FileOrigine.commessa_id == commessa_id)
    return query.order_by(FileOrigine.data_caricamento.desc(), FileOrigine.id.desc()).all()


def get_file(db: Session, file_id: int, organizzazione_id: Optional[int] = None) -> FileOrigine:
    """
    Get source file by ID.

    Raises:
        NotFoundError: If the file does not exist (or belongs to another organization)
    """
    query = db.query(FileOrigine).filter(FileOrigine.id == file_id)
    if organizzazione_id is not None:
        query = query.join(Commessa, FileOrigine.commessa_id == Commessa.id).filter(
            Commessa.organizzazione_id == organizzazione_id
        )

    file_origine = query.first()
    if not file_origine:
        raise NotFoundError(f"File {file_id} non trovato")
    return file_origine


async def upload_file(
    db: Session,
    storage: BaseStorageDriver,
    commessa_id: int,
    organizzazione_id: int,
    filename: str,
    content: bytes,
    user_id: Optional[str] = None,
    descrizione: Optional[str] = None,
) -> FileOrigine:
    """
    Store a source file and register it.

    Args:
        db: Database session
        storage: Storage driver
        commessa_id: Owning commessa (must belong to the organization)
        organizzazione_id: Caller's organization
        filename: Original file name
        content: File bytes
        user_id: Uploader
        descrizione: Optional description

    Returns:
        Created FileOrigine

    Raises:
        ValidationError: If the file is empty or not STL/STEP
        NotFoundError: If the commessa does not exist in the organization
        ConflictError: If a file with the same name exists in the commessa
    """
    _, ext = split_extension(filename)
    tipo = SOURCE_EXTENSIONS.get(ext)
    if tipo is None:
        raise ValidationError(f"Tipo di file non supportato: {filename} (ammessi: stl, step)")
    if not content:
        raise ValidationError("File vuoto")

    commessa = (
        db.query(Commessa)
        .filter(Commessa.id == commessa_id, Commessa.organizzazione_id == organizzazione_id)
        .first()
    )
    if not commessa:
        raise NotFoundError(f"Commessa {commessa_id} non trovata")

    key = source_file_key(commessa.organizzazione.nome, commessa.nome, filename)
    if db.query(FileOrigine.id).filter(FileOrigine.nome_file == key).first():
        raise ConflictError("Esiste già un file con questo nome nella commessa")

    try:
        await storage.upload_file(key, content)
    except StorageFileExistsError:
        raise ConflictError("Esiste già un file con questo nome nella commessa")

    file_origine = FileOrigine(
        nome_file=key,
        commessa_id=commessa_id,
        descrizione=descrizione,
        user_id=user_id,
        tipo=tipo,
    )
    db.add(file_origine)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        await storage.delete_file(key)
        raise ConflictError("Esiste già un file con questo nome nella commessa")

    db.refresh(file_origine)
    logger.info(f"File {file_origine.id} caricato: {key} ({len(content)} bytes)")
    return file_origine


async def delete_file(
    db: Session, storage: BaseStorageDriver, file_id: int, organizzazione_id: Optional[int] = None
) -> None:
    """
    Delete a source file with its G-code, from database and storage.

    Raises:
        NotFoundError: If the file does not exist
        ConflictError: If one of its G-code files is referenced by an order
    """
    file_origine = get_file(db, file_id, organizzazione_id)

    referenced = (
        db.query(Ordine.id)
        .join(Gcode, Ordine.gcode_id == Gcode.id)
        .filter(Gcode.file_origine_id == file_id)
        .first()
    )
    if referenced:
        raise ConflictError(f"File {file_id} ha G-code usati da ordini")

    keys = [file_origine.nome_file] + [gcode.nome_file for gcode in file_origine.gcodes]

    file_origine.gcode_principale_id = None
    db.flush()
    db.delete(file_origine)
    db.commit()

    for key in keys:
        await storage.delete_file(key)
    logger.info(f"File {file_id} eliminato ({len(keys)} oggetti rimossi dallo storage)")


def set_gcode_principale(
    db: Session, file_id: int, gcode_id: Optional[int], organizzazione_id: Optional[int] = None
) -> FileOrigine:
    """
    Set (or clear, with None) the principal G-code of a source file.

    Raises:
        NotFoundError: If the file does not exist
        ValidationError: If the G-code was not generated from this file
    """
    file_origine = get_file(db, file_id, organizzazione_id)

    if gcode_id is not None:
        gcode = db.query(Gcode).filter(Gcode.id == gcode_id).first()
        if not gcode or gcode.file_origine_id != file_id:
            raise ValidationError(f"G-code {gcode_id} non appartiene al file {file_id}")

    file_origine.gcode_principale_id = gcode_id
    db.commit()
    db.refresh(file_origine)
    return file_origine
