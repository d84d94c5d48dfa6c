"""Order and print queue lifecycle.

Order status only moves forward::

    processamento -> in_coda -> in_stampa -> pronto -> consegnato

Queue entries move ``in_queue -> printing -> done | error``.

Every transition is a conditional UPDATE (``WHERE stato = <expected>``) so a
concurrent writer running on another server instance cannot make a row skip
or repeat a step; the partial unique indexes on ``coda_stampa`` back the
per-printer invariants at the storage layer.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printshop.errors import ConflictError, NotFoundError, ValidationError
from printshop.models.coda_stampa import CodaStampa
from printshop.models.gcode import Gcode
from printshop.models.ordine import Ordine
from printshop.models.stampante import Stampante
from printshop.schemas.coda_stampa import CodaStato, ConcatenationProposal
from printshop.schemas.ordine import OrdineStato

logger = logging.getLogger(__name__)


def get_order(db: Session, ordine_id: int, organizzazione_id: Optional[int] = None) -> Ordine:
    """
    Get order by ID, optionally scoped to an organization.

    Raises:
        NotFoundError: If order not found
    """
    query = db.query(Ordine).filter(Ordine.id == ordine_id)
    if organizzazione_id is not None:
        query = query.filter(Ordine.organizzazione_id == organizzazione_id)

    ordine = query.first()
    if not ordine:
        raise NotFoundError(f"Ordine {ordine_id} non trovato")
    return ordine


def get_queue_entry(db: Session, coda_id: int, organizzazione_id: Optional[int] = None) -> CodaStampa:
    """Get queue entry by ID (scoped through its order) or raise NotFoundError."""
    query = db.query(CodaStampa).filter(CodaStampa.id == coda_id)
    if organizzazione_id is not None:
        query = query.join(Ordine, CodaStampa.ordine_id == Ordine.id).filter(
            Ordine.organizzazione_id == organizzazione_id
        )
    entry = query.first()
    if not entry:
        raise NotFoundError(f"Voce di coda {coda_id} non trovata")
    return entry


def _advance_order(db: Session, ordine_id: int, expected: str, new_status: str) -> bool:
    """Move an order one step forward if it is still in the expected status.

    Returns:
        True if the row was updated
    """
    values = {"stato": new_status}
    if new_status == OrdineStato.CONSEGNATO:
        values["data_consegna"] = datetime.utcnow()

    result = db.execute(
        update(Ordine)
        .where(Ordine.id == ordine_id, Ordine.stato == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info(f"Ordine {ordine_id}: {expected} -> {new_status}")
    return bool(result.rowcount)


def submit_order(
    db: Session,
    gcode_id: int,
    quantita: int,
    commessa_id: Optional[int],
    organizzazione_id: int,
    user_id: Optional[str],
    consegna_richiesta: Optional[date] = None,
    note: Optional[str] = None,
) -> Ordine:
    """
    Create an order in status 'processamento'.

    Args:
        db: Database session
        gcode_id: G-code to print
        quantita: Number of copies
        commessa_id: Owning commessa (defaults to the G-code's commessa)
        organizzazione_id: Owning organization
        user_id: Requesting user
        consegna_richiesta: Optional requested delivery date
        note: Optional notes

    Returns:
        Created order

    Raises:
        ValidationError: If quantita <= 0 or the G-code does not exist
    """
    if quantita is None or quantita <= 0:
        raise ValidationError("La quantità deve essere maggiore di zero")

    gcode = db.query(Gcode).filter(Gcode.id == gcode_id).first()
    if not gcode:
        raise ValidationError(f"G-code {gcode_id} non trovato")

    if commessa_id is None and gcode.file_origine is not None:
        commessa_id = gcode.file_origine.commessa_id

    ordine = Ordine(
        gcode_id=gcode_id,
        commessa_id=commessa_id,
        organizzazione_id=organizzazione_id,
        user_id=user_id,
        quantita=quantita,
        stato=OrdineStato.PROCESSAMENTO,
        consegna_richiesta=consegna_richiesta,
        note=note,
        data_ordine=datetime.utcnow(),
    )
    db.add(ordine)
    db.commit()
    db.refresh(ordine)

    logger.info(f"Ordine {ordine.id} creato per G-code {gcode_id} (quantita={quantita})")
    return ordine


def enqueue(
    db: Session,
    ordine_id: int,
    stampante_id: int,
    note: Optional[str] = None,
    organizzazione_id: Optional[int] = None,
) -> CodaStampa:
    """
    Put an order at the end of a printer's queue.

    The new entry gets posizione = highest non-terminal position + 1. An order
    still in 'processamento' moves to 'in_coda'; orders already queued or
    printing keep their status (reprints).

    Raises:
        NotFoundError: If order or printer is missing
        ConflictError: If the printer is inactive or the order is finished
    """
    ordine = get_order(db, ordine_id, organizzazione_id)

    query = db.query(Stampante).filter(Stampante.id == stampante_id)
    if organizzazione_id is not None:
        query = query.filter(Stampante.organizzazione_id == organizzazione_id)
    stampante = query.first()
    if not stampante:
        raise NotFoundError(f"Stampante {stampante_id} non trovata")
    if not stampante.attiva:
        raise ConflictError(f"Stampante {stampante_id} non attiva")

    if ordine.stato in (OrdineStato.PRONTO, OrdineStato.CONSEGNATO):
        raise ConflictError(f"Ordine {ordine_id} già completato (stato: {ordine.stato})")

    max_posizione = (
        db.query(func.max(CodaStampa.posizione))
        .filter(
            CodaStampa.stampante_id == stampante_id,
            CodaStampa.stato.in_(CodaStato.ACTIVE),
        )
        .scalar()
    )

    entry = CodaStampa(
        ordine_id=ordine_id,
        stampante_id=stampante_id,
        posizione=(max_posizione or 0) + 1,
        stato=CodaStato.IN_QUEUE,
        note=note,
        created_at=datetime.utcnow(),
    )
    db.add(entry)

    try:
        db.flush()
        _advance_order(db, ordine_id, OrdineStato.PROCESSAMENTO, OrdineStato.IN_CODA)
        db.commit()
    except IntegrityError:
        # Another writer took the same position in the meantime
        db.rollback()
        raise ConflictError(f"Coda della stampante {stampante_id} modificata in concorrenza, riprovare")

    db.refresh(entry)
    logger.info(f"Ordine {ordine_id} in coda su stampante {stampante_id} (posizione {entry.posizione})")
    return entry


def start_print(db: Session, coda_id: int, organizzazione_id: Optional[int] = None) -> CodaStampa:
    """
    Start printing a queued entry.

    Raises:
        NotFoundError: If the entry does not exist
        ConflictError: If the entry is not 'in_queue' or the printer is busy
    """
    entry = get_queue_entry(db, coda_id, organizzazione_id)

    if entry.stato != CodaStato.IN_QUEUE:
        raise ConflictError(f"Voce di coda {coda_id} non in attesa (stato: {entry.stato})")

    busy = (
        db.query(CodaStampa.id)
        .filter(
            CodaStampa.stampante_id == entry.stampante_id,
            CodaStampa.stato == CodaStato.PRINTING,
            CodaStampa.id != coda_id,
        )
        .first()
    )
    if busy:
        raise ConflictError(f"Stampante {entry.stampante_id} sta già stampando (coda {busy.id})")

    try:
        result = db.execute(
            update(CodaStampa)
            .where(CodaStampa.id == coda_id, CodaStampa.stato == CodaStato.IN_QUEUE)
            .values(stato=CodaStato.PRINTING, data_inizio=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            db.rollback()
            raise ConflictError(f"Voce di coda {coda_id} modificata in concorrenza")

        _advance_order(db, entry.ordine_id, OrdineStato.IN_CODA, OrdineStato.IN_STAMPA)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Stampante {entry.stampante_id} sta già stampando")

    db.refresh(entry)
    logger.info(f"Stampa avviata: coda {coda_id} su stampante {entry.stampante_id}")
    return entry


def complete_print(
    db: Session, coda_id: int, esito: str, note: Optional[str] = None, organizzazione_id: Optional[int] = None
) -> CodaStampa:
    """
    Finish a running print with outcome 'done' or 'error'.

    On 'done' the order becomes 'pronto' once every queue entry of the order
    that did not fail is done. Failed entries are superseded by reprints, so
    on 'error' the order stays 'in_stampa' until an operator enqueues again.

    Raises:
        ValidationError: If esito is not 'done' or 'error'
        NotFoundError: If the entry does not exist
        ConflictError: If the entry is not 'printing'
    """
    if esito not in CodaStato.TERMINAL:
        raise ValidationError(f"Esito non valido: {esito}")

    entry = get_queue_entry(db, coda_id, organizzazione_id)

    values = {"stato": esito, "data_fine": datetime.utcnow()}
    if note is not None:
        values["note"] = note

    result = db.execute(
        update(CodaStampa)
        .where(CodaStampa.id == coda_id, CodaStampa.stato == CodaStato.PRINTING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.rollback()
        raise ConflictError(f"Voce di coda {coda_id} non in stampa (stato: {entry.stato})")

    if esito == CodaStato.DONE:
        outstanding = (
            db.query(func.count(CodaStampa.id))
            .filter(
                CodaStampa.ordine_id == entry.ordine_id,
                CodaStampa.stato.in_(CodaStato.ACTIVE),
            )
            .scalar()
        )
        if outstanding == 0:
            _advance_order(db, entry.ordine_id, OrdineStato.IN_STAMPA, OrdineStato.PRONTO)
    else:
        logger.warning(f"Stampa fallita: coda {coda_id}, ordine {entry.ordine_id} richiede ristampa")

    db.commit()
    db.refresh(entry)
    return entry


def mark_delivered(db: Session, ordine_id: int, organizzazione_id: Optional[int] = None) -> Ordine:
    """
    Mark a ready order as delivered (terminal).

    Raises:
        NotFoundError: If order not found
        ConflictError: If the order is not 'pronto'
    """
    ordine = get_order(db, ordine_id, organizzazione_id)

    if not _advance_order(db, ordine_id, OrdineStato.PRONTO, OrdineStato.CONSEGNATO):
        db.rollback()
        raise ConflictError(f"Ordine {ordine_id} non pronto per la consegna (stato: {ordine.stato})")

    db.commit()
    db.refresh(ordine)
    return ordine


def list_orders(
    db: Session,
    organizzazione_id: Optional[int] = None,
    user_id: Optional[str] = None,
    stato: Optional[str] = None,
) -> List[Ordine]:
    """List orders, newest first."""
    query = db.query(Ordine)

    if organizzazione_id is not None:
        query = query.filter(Ordine.organizzazione_id == organizzazione_id)
    if user_id:
        query = query.filter(Ordine.user_id == user_id)
    if stato:
        query = query.filter(Ordine.stato == stato)

    return query.order_by(Ordine.data_ordine.desc(), Ordine.id.desc()).all()


def update_order(
    db: Session,
    ordine_id: int,
    organizzazione_id: Optional[int],
    quantita: Optional[int] = None,
    consegna_richiesta: Optional[date] = None,
    note: Optional[str] = None,
) -> Ordine:
    """
    Update editable fields of an order still in 'processamento'.

    Raises:
        NotFoundError: If order not found
        ValidationError: If quantita <= 0
        ConflictError: If the order already left 'processamento'
    """
    ordine = get_order(db, ordine_id, organizzazione_id)

    if ordine.stato != OrdineStato.PROCESSAMENTO:
        raise ConflictError(f"Ordine {ordine_id} non modificabile (stato: {ordine.stato})")

    if quantita is not None:
        if quantita <= 0:
            raise ValidationError("La quantità deve essere maggiore di zero")
        ordine.quantita = quantita
    if consegna_richiesta is not None:
        ordine.consegna_richiesta = consegna_richiesta
    if note is not None:
        ordine.note = note

    db.commit()
    db.refresh(ordine)
    return ordine


def delete_order(db: Session, ordine_id: int, organizzazione_id: Optional[int] = None) -> None:
    """
    Delete an order that never reached a printer queue.

    Raises:
        NotFoundError: If order not found
        ConflictError: If the order already left 'processamento'
    """
    ordine = get_order(db, ordine_id, organizzazione_id)

    if ordine.stato != OrdineStato.PROCESSAMENTO:
        raise ConflictError(f"Ordine {ordine_id} non eliminabile (stato: {ordine.stato})")

    db.delete(ordine)
    db.commit()


def list_queue(
    db: Session,
    stampante_id: Optional[int] = None,
    stato: Optional[str] = None,
    organizzazione_id: Optional[int] = None,
) -> List[CodaStampa]:
    """List queue entries in FIFO order (per printer, by posizione)."""
    query = db.query(CodaStampa)

    if organizzazione_id is not None:
        query = query.join(Ordine, CodaStampa.ordine_id == Ordine.id).filter(
            Ordine.organizzazione_id == organizzazione_id
        )
    if stampante_id is not None:
        query = query.filter(CodaStampa.stampante_id == stampante_id)
    if stato:
        query = query.filter(CodaStampa.stato == stato)

    return query.order_by(CodaStampa.stampante_id, CodaStampa.posizione, CodaStampa.id).all()


def _proposal(
    tipo: str,
    key: str,
    stampante_id: int,
    items: List[Tuple[CodaStampa, Ordine, Gcode]],
    materiale: Optional[str],
    descrizione: str,
) -> ConcatenationProposal:
    gcode_ids: List[int] = []
    for _, _, gcode in items:
        if gcode.id not in gcode_ids:
            gcode_ids.append(gcode.id)

    return ConcatenationProposal(
        id=f"{tipo}_{key}_{stampante_id}",
        tipo=tipo,
        stampante_id=stampante_id,
        coda_ids=[entry.id for entry, _, _ in items],
        ordine_ids=[ordine.id for _, ordine, _ in items],
        gcode_ids=gcode_ids,
        materiale=materiale,
        quantita_totale=sum(ordine.quantita for _, ordine, _ in items),
        tempo_stimato_min=sum((gcode.tempo_stampa_min or 0) * ordine.quantita for _, ordine, gcode in items),
        materiale_stimato_grammi=round(
            sum((gcode.peso_grammi or 0) * ordine.quantita for _, ordine, gcode in items), 2
        ),
        descrizione=descrizione,
    )


def find_concatenation_candidates(
    db: Session, stampante_id: Optional[int] = None, organizzazione_id: Optional[int] = None
) -> List[ConcatenationProposal]:
    """
    Propose groups of waiting queue entries that could be printed together.

    Only entries still 'in_queue' are considered, per printer:

    - ``same_gcode``: two or more entries printing the same G-code
    - ``same_material``: entries of two or more different G-code sliced
      for the same material

    Estimates multiply the analyzed print time and weight of each G-code by
    the order quantity; G-code not yet analyzed count as zero.

    Raises:
        NotFoundError: If stampante_id is given and the printer does not exist
    """
    if stampante_id is not None:
        query = db.query(Stampante.id).filter(Stampante.id == stampante_id)
        if organizzazione_id is not None:
            query = query.filter(Stampante.organizzazione_id == organizzazione_id)
        if not query.first():
            raise NotFoundError(f"Stampante {stampante_id} non trovata")

    query = (
        db.query(CodaStampa, Ordine, Gcode)
        .join(Ordine, CodaStampa.ordine_id == Ordine.id)
        .join(Gcode, Ordine.gcode_id == Gcode.id)
        .filter(CodaStampa.stato == CodaStato.IN_QUEUE)
    )
    if stampante_id is not None:
        query = query.filter(CodaStampa.stampante_id == stampante_id)
    if organizzazione_id is not None:
        query = query.filter(Ordine.organizzazione_id == organizzazione_id)

    by_printer: Dict[int, List[Tuple[CodaStampa, Ordine, Gcode]]] = {}
    for entry, ordine, gcode in query.order_by(CodaStampa.stampante_id, CodaStampa.posizione).all():
        by_printer.setdefault(entry.stampante_id, []).append((entry, ordine, gcode))

    proposals: List[ConcatenationProposal] = []
    for printer_id, items in by_printer.items():
        if len(items) < 2:
            continue

        by_gcode: Dict[int, List[Tuple[CodaStampa, Ordine, Gcode]]] = {}
        by_material: Dict[str, List[Tuple[CodaStampa, Ordine, Gcode]]] = {}
        for item in items:
            gcode = item[2]
            by_gcode.setdefault(gcode.id, []).append(item)
            if gcode.materiale:
                by_material.setdefault(gcode.materiale.upper(), []).append(item)

        for gcode_id, group in by_gcode.items():
            if len(group) < 2:
                continue
            quantita = sum(ordine.quantita for _, ordine, _ in group)
            nome = group[0][2].nome_file.rsplit("/", 1)[-1]
            proposals.append(
                _proposal("same_gcode", str(gcode_id), printer_id, group, group[0][2].materiale, f"{quantita}x {nome}")
            )

        for materiale, group in by_material.items():
            distinct = {gcode.id for _, _, gcode in group}
            if len(distinct) < 2:
                continue
            proposals.append(
                _proposal(
                    "same_material",
                    materiale,
                    printer_id,
                    group,
                    materiale,
                    f"{len(distinct)} G-code diversi in {materiale}",
                )
            )

    logger.debug(f"{len(proposals)} proposte di concatenazione su {len(by_printer)} stampanti")
    return proposals
