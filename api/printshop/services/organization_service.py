"""Organizations, memberships and commesse."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printshop.errors import ConflictError, NotFoundError
from printshop.models.commessa import Commessa
from printshop.models.file_origine import FileOrigine
from printshop.models.gcode import Gcode
from printshop.models.ordine import Ordine
from printshop.models.organization import Organizzazione, OrganizzazioneUtente, Utente

logger = logging.getLogger(__name__)


def list_organizations(db: Session, user_id: Optional[str] = None) -> List[Organizzazione]:
    """List organizations, restricted to the user's memberships unless superuser."""
    query = db.query(Organizzazione)

    if user_id:
        utente = db.query(Utente).filter(Utente.id == user_id).first()
        if not (utente and utente.is_superuser):
            query = query.join(
                OrganizzazioneUtente, OrganizzazioneUtente.organizzazione_id == Organizzazione.id
            ).filter(OrganizzazioneUtente.user_id == user_id)

    return query.order_by(Organizzazione.nome).all()


def get_organization(db: Session, organizzazione_id: int) -> Organizzazione:
    organizzazione = db.query(Organizzazione).filter(Organizzazione.id == organizzazione_id).first()
    if not organizzazione:
        raise NotFoundError(f"Organizzazione {organizzazione_id} non trovata")
    return organizzazione


def create_organization(db: Session, nome: str, user_id: Optional[str] = None) -> Organizzazione:
    """Create an organization; the creating user becomes its admin.

    Raises:
        ConflictError: If the name is taken
    """
    if db.query(Organizzazione).filter(Organizzazione.nome == nome).first():
        raise ConflictError(f"Organizzazione '{nome}' già esistente")

    organizzazione = Organizzazione(nome=nome)
    db.add(organizzazione)
    db.flush()

    if user_id:
        _ensure_user(db, user_id)
        db.add(OrganizzazioneUtente(user_id=user_id, organizzazione_id=organizzazione.id, role="admin"))

    db.commit()
    db.refresh(organizzazione)
    logger.info(f"Organizzazione {organizzazione.id} creata: {nome}")
    return organizzazione


def _ensure_user(db: Session, user_id: str, email: Optional[str] = None) -> Utente:
    utente = db.query(Utente).filter(Utente.id == user_id).first()
    if not utente:
        utente = Utente(id=user_id, email=email)
        db.add(utente)
        db.flush()
    elif email and not utente.email:
        utente.email = email
    return utente


def list_members(db: Session, organizzazione_id: int) -> List[OrganizzazioneUtente]:
    get_organization(db, organizzazione_id)
    return (
        db.query(OrganizzazioneUtente)
        .filter(OrganizzazioneUtente.organizzazione_id == organizzazione_id)
        .order_by(OrganizzazioneUtente.user_id)
        .all()
    )


def add_member(
    db: Session, organizzazione_id: int, user_id: str, role: str = "user", email: Optional[str] = None
) -> OrganizzazioneUtente:
    """Add a user to an organization.

    Raises:
        NotFoundError: If the organization does not exist
        ConflictError: If the user is already a member
    """
    get_organization(db, organizzazione_id)
    existing = (
        db.query(OrganizzazioneUtente)
        .filter(
            OrganizzazioneUtente.organizzazione_id == organizzazione_id,
            OrganizzazioneUtente.user_id == user_id,
        )
        .first()
    )
    if existing:
        raise ConflictError(f"Utente {user_id} già membro dell'organizzazione {organizzazione_id}")

    _ensure_user(db, user_id, email)

    membro = OrganizzazioneUtente(user_id=user_id, organizzazione_id=organizzazione_id, role=role)
    db.add(membro)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Utente {user_id} già membro dell'organizzazione {organizzazione_id}")

    db.refresh(membro)
    return membro


def list_commesse(db: Session, organizzazione_id: Optional[int] = None) -> List[Commessa]:
    query = db.query(Commessa)
    if organizzazione_id is not None:
        query = query.filter(Commessa.organizzazione_id == organizzazione_id)
    return query.order_by(Commessa.created_at.desc(), Commessa.id.desc()).all()


def get_commessa(db: Session, commessa_id: int, organizzazione_id: Optional[int] = None) -> Commessa:
    query = db.query(Commessa).filter(Commessa.id == commessa_id)
    if organizzazione_id is not None:
        query = query.filter(Commessa.organizzazione_id == organizzazione_id)

    commessa = query.first()
    if not commessa:
        raise NotFoundError(f"Commessa {commessa_id} non trovata")
    return commessa


def create_commessa(db: Session, organizzazione_id: int, nome: str) -> Commessa:
    """
    Create a commessa in an organization.

    Raises:
        NotFoundError: If the organization does not exist
        ConflictError: If the organization already has a commessa with this name
    """
    get_organization(db, organizzazione_id)

    commessa = Commessa(nome=nome, organizzazione_id=organizzazione_id)
    db.add(commessa)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Commessa '{nome}' già esistente")

    db.refresh(commessa)
    logger.info(f"Commessa {commessa.id} creata: {nome}")
    return commessa


def delete_commessa(db: Session, commessa_id: int, organizzazione_id: Optional[int] = None) -> List[str]:
    """
    Delete a commessa and its files.

    Returns:
        Storage keys of the deleted source files and G-code, for the caller
        to remove from storage

    Raises:
        NotFoundError: If the commessa does not exist
        ConflictError: If orders still reference it
    """
    commessa = get_commessa(db, commessa_id, organizzazione_id)

    gcode_in_use = (
        db.query(Ordine.id)
        .join(Gcode, Ordine.gcode_id == Gcode.id)
        .join(FileOrigine, Gcode.file_origine_id == FileOrigine.id)
        .filter(FileOrigine.commessa_id == commessa_id)
        .first()
    )
    if gcode_in_use or db.query(Ordine.id).filter(Ordine.commessa_id == commessa_id).first():
        raise ConflictError(f"Commessa {commessa_id} ha ordini associati")

    keys = []
    for file_origine in commessa.files:
        keys.append(file_origine.nome_file)
        keys.extend(gcode.nome_file for gcode in file_origine.gcodes)
        file_origine.gcode_principale_id = None
    db.flush()

    db.delete(commessa)
    db.commit()
    logger.info(f"Commessa {commessa_id} eliminata")
    return keys
