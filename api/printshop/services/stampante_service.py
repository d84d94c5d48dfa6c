"""Printer registry."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printshop.errors import ConflictError, NotFoundError
from printshop.models.coda_stampa import CodaStampa
from printshop.models.stampante import Stampante
from printshop.schemas.stampante import StampanteCreate, StampanteUpdate

logger = logging.getLogger(__name__)


def list_stampanti(
    db: Session, organizzazione_id: Optional[int] = None, solo_attive: bool = False
) -> List[Stampante]:
    """List printers ordered by name."""
    query = db.query(Stampante)
    if organizzazione_id is not None:
        query = query.filter(Stampante.organizzazione_id == organizzazione_id)
    if solo_attive:
        query = query.filter(Stampante.attiva.is_(True))
    return query.order_by(Stampante.nome, Stampante.id).all()


def get_stampante(db: Session, stampante_id: int, organizzazione_id: Optional[int] = None) -> Stampante:
    """
    Get printer by ID.

    Raises:
        NotFoundError: If the printer does not exist
    """
    query = db.query(Stampante).filter(Stampante.id == stampante_id)
    if organizzazione_id is not None:
        query = query.filter(Stampante.organizzazione_id == organizzazione_id)

    stampante = query.first()
    if not stampante:
        raise NotFoundError(f"Stampante {stampante_id} non trovata")
    return stampante


def create_stampante(db: Session, data: StampanteCreate, organizzazione_id: Optional[int]) -> Stampante:
    """
    Register a printer; the API key is stored encrypted.

    Raises:
        ConflictError: If the serial number is already registered
    """
    stampante = Stampante(organizzazione_id=organizzazione_id, **data.model_dump(exclude={"api_key"}))
    stampante.api_key = data.api_key
    db.add(stampante)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Seriale {data.seriale} già registrato")

    db.refresh(stampante)
    logger.info(f"Stampante {stampante.id} creata: {stampante.nome} ({stampante.tipo_sistema or 'manuale'})")
    return stampante


def update_stampante(
    db: Session, stampante_id: int, data: StampanteUpdate, organizzazione_id: Optional[int] = None
) -> Stampante:
    """
    Update provided fields of a printer.

    Deactivating a printer (attiva=False) is the way to retire it while it
    still has queue history.

    Raises:
        NotFoundError: If the printer does not exist
        ConflictError: If the new serial number is already registered
    """
    stampante = get_stampante(db, stampante_id, organizzazione_id)

    changes = data.model_dump(exclude_unset=True)
    if "api_key" in changes:
        stampante.api_key = changes.pop("api_key")
    for field, value in changes.items():
        setattr(stampante, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Seriale {data.seriale} già registrato")

    db.refresh(stampante)
    return stampante


def delete_stampante(db: Session, stampante_id: int, organizzazione_id: Optional[int] = None) -> None:
    """
    Delete a printer that never appeared in the print queue.

    Raises:
        NotFoundError: If the printer does not exist
        ConflictError: If queue entries reference it (deactivate it instead)
    """
    stampante = get_stampante(db, stampante_id, organizzazione_id)

    if db.query(CodaStampa.id).filter(CodaStampa.stampante_id == stampante_id).first():
        raise ConflictError(f"Stampante {stampante_id} presente nella coda di stampa, disattivarla invece")

    db.delete(stampante)
    db.commit()
    logger.info(f"Stampante {stampante_id} eliminata")
