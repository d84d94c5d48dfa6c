"""Order and print queue lifecycle tests."""

import pytest
from sqlalchemy import text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.dml import Update

from printshop.errors import ConflictError, NotFoundError, ValidationError
from printshop.models.coda_stampa import CodaStampa
from printshop.models.gcode import Gcode
from printshop.schemas.ordine import OrdineStato
from printshop.services import lifecycle


def _stato(db, ordine_id):
    db.expire_all()
    return lifecycle.get_order(db, ordine_id).stato


def test_submit_order_starts_in_processamento(make_ordine, gcode, commessa):
    ordine = make_ordine(quantita=3)

    assert ordine.stato == OrdineStato.PROCESSAMENTO
    assert ordine.quantita == 3
    assert ordine.gcode_id == gcode.id
    # Commessa defaults to the one of the G-code's source file
    assert ordine.commessa_id == commessa.id


@pytest.mark.parametrize("quantita", [0, -1])
def test_submit_order_rejects_non_positive_quantity(make_ordine, quantita):
    with pytest.raises(ValidationError):
        make_ordine(quantita=quantita)


def test_submit_order_unknown_gcode(db, organizzazione):
    with pytest.raises(ValidationError):
        lifecycle.submit_order(db, 9999, 1, None, organizzazione.id, "user-1")


def test_enqueue_moves_order_to_in_coda_and_appends(db, make_ordine, stampante):
    first = make_ordine()
    second = make_ordine()

    entry_1 = lifecycle.enqueue(db, first.id, stampante.id)
    entry_2 = lifecycle.enqueue(db, second.id, stampante.id)

    assert (entry_1.posizione, entry_2.posizione) == (1, 2)
    assert entry_1.stato == "in_queue"
    assert _stato(db, first.id) == OrdineStato.IN_CODA
    assert [e.id for e in lifecycle.list_queue(db, stampante_id=stampante.id)] == [entry_1.id, entry_2.id]


def test_enqueue_inactive_printer(db, make_ordine, make_stampante):
    spenta = make_stampante("Spenta", attiva=False)
    with pytest.raises(ConflictError):
        lifecycle.enqueue(db, make_ordine().id, spenta.id)


def test_enqueue_unknown_printer(db, make_ordine):
    with pytest.raises(NotFoundError):
        lifecycle.enqueue(db, make_ordine().id, 9999)


def test_only_one_print_per_printer(db, make_ordine, stampante):
    entry_1 = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    entry_2 = lifecycle.enqueue(db, make_ordine().id, stampante.id)

    lifecycle.start_print(db, entry_1.id)
    with pytest.raises(ConflictError):
        lifecycle.start_print(db, entry_2.id)

    printing = lifecycle.list_queue(db, stampante_id=stampante.id, stato="printing")
    assert [e.id for e in printing] == [entry_1.id]


def test_database_rejects_second_running_print(db, make_ordine, stampante):
    entry_a = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    entry_b = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    lifecycle.start_print(db, entry_a.id)

    with pytest.raises(IntegrityError):
        db.execute(update(CodaStampa).where(CodaStampa.id == entry_b.id).values(stato="printing"))
    db.rollback()


def test_database_rejects_duplicate_active_position(db, make_ordine, stampante):
    entry = lifecycle.enqueue(db, make_ordine().id, stampante.id)

    db.add(CodaStampa(ordine_id=entry.ordine_id, stampante_id=stampante.id, posizione=entry.posizione))
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()

    # Finished entries free their position
    lifecycle.start_print(db, entry.id)
    lifecycle.complete_print(db, entry.id, "done")
    db.add(CodaStampa(ordine_id=entry.ordine_id, stampante_id=stampante.id, posizione=entry.posizione))
    db.commit()


def test_start_print_loses_race_to_concurrent_writer(db, make_ordine, stampante, monkeypatch):
    entry_a = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    entry_b = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    execute = db.execute

    def racing_execute(statement, *args, **kwargs):
        if isinstance(statement, Update):
            # Another worker starts entry b after the busy check passed
            execute(text("UPDATE coda_stampa SET stato = 'printing' WHERE id = :id"), {"id": entry_b.id})
        return execute(statement, *args, **kwargs)

    monkeypatch.setattr(db, "execute", racing_execute)
    with pytest.raises(ConflictError):
        lifecycle.start_print(db, entry_a.id)
    monkeypatch.undo()

    db.expire_all()
    assert lifecycle.get_queue_entry(db, entry_a.id).stato == "in_queue"
    assert lifecycle.get_queue_entry(db, entry_b.id).stato == "in_queue"
    assert _stato(db, entry_a.ordine_id) == OrdineStato.IN_CODA


def test_enqueue_loses_race_for_position(db, make_ordine, stampante, monkeypatch):
    first = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    ordine = make_ordine()
    flush = db.flush

    def racing_flush(*args, **kwargs):
        # Another request appends to the same printer first
        db.execute(
            CodaStampa.__table__.insert().values(
                ordine_id=first.ordine_id, stampante_id=stampante.id, posizione=2, stato="in_queue"
            )
        )
        return flush(*args, **kwargs)

    monkeypatch.setattr(db, "flush", racing_flush)
    with pytest.raises(ConflictError):
        lifecycle.enqueue(db, ordine.id, stampante.id)
    monkeypatch.undo()

    assert _stato(db, ordine.id) == OrdineStato.PROCESSAMENTO
    assert len(lifecycle.list_queue(db, stampante_id=stampante.id)) == 1


def test_start_print_twice(db, make_ordine, stampante):
    entry = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    lifecycle.start_print(db, entry.id)
    with pytest.raises(ConflictError):
        lifecycle.start_print(db, entry.id)


def test_complete_requires_printing(db, make_ordine, stampante):
    entry = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    with pytest.raises(ConflictError):
        lifecycle.complete_print(db, entry.id, "done")


def test_complete_rejects_unknown_outcome(db, make_ordine, stampante):
    entry = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    lifecycle.start_print(db, entry.id)
    with pytest.raises(ValidationError):
        lifecycle.complete_print(db, entry.id, "finished")


def test_failed_print_keeps_order_in_stampa(db, make_ordine, stampante):
    ordine = make_ordine()
    entry = lifecycle.enqueue(db, ordine.id, stampante.id)
    lifecycle.start_print(db, entry.id)

    lifecycle.complete_print(db, entry.id, "error", note="Distacco dal piatto")
    assert _stato(db, ordine.id) == OrdineStato.IN_STAMPA

    # Reprint on the same printer completes the order
    reprint = lifecycle.enqueue(db, ordine.id, stampante.id)
    assert reprint.posizione == 1
    lifecycle.start_print(db, reprint.id)
    lifecycle.complete_print(db, reprint.id, "done")
    assert _stato(db, ordine.id) == OrdineStato.PRONTO


def test_mark_delivered_requires_pronto(db, make_ordine, stampante):
    ordine = make_ordine()
    with pytest.raises(ConflictError):
        lifecycle.mark_delivered(db, ordine.id)

    entry = lifecycle.enqueue(db, ordine.id, stampante.id)
    with pytest.raises(ConflictError):
        lifecycle.mark_delivered(db, ordine.id)

    lifecycle.start_print(db, entry.id)
    with pytest.raises(ConflictError):
        lifecycle.mark_delivered(db, ordine.id)
    assert _stato(db, ordine.id) == OrdineStato.IN_STAMPA


def test_enqueue_refused_once_ready(db, make_ordine, stampante):
    ordine = make_ordine()
    entry = lifecycle.enqueue(db, ordine.id, stampante.id)
    lifecycle.start_print(db, entry.id)
    lifecycle.complete_print(db, entry.id, "done")

    with pytest.raises(ConflictError):
        lifecycle.enqueue(db, ordine.id, stampante.id)


def test_update_and_delete_only_in_processamento(db, make_ordine, organizzazione, stampante):
    ordine = make_ordine(quantita=2)
    updated = lifecycle.update_order(db, ordine.id, organizzazione.id, quantita=5, note="urgente")
    assert (updated.quantita, updated.note) == (5, "urgente")

    with pytest.raises(ValidationError):
        lifecycle.update_order(db, ordine.id, organizzazione.id, quantita=0)

    lifecycle.enqueue(db, ordine.id, stampante.id)
    with pytest.raises(ConflictError):
        lifecycle.update_order(db, ordine.id, organizzazione.id, quantita=1)
    with pytest.raises(ConflictError):
        lifecycle.delete_order(db, ordine.id, organizzazione.id)

    other = make_ordine()
    lifecycle.delete_order(db, other.id, organizzazione.id)
    with pytest.raises(NotFoundError):
        lifecycle.get_order(db, other.id)


def test_orders_scoped_by_organization(db, make_ordine, organizzazione):
    ordine = make_ordine()
    with pytest.raises(NotFoundError):
        lifecycle.get_order(db, ordine.id, organizzazione.id + 1)
    assert lifecycle.list_orders(db, organizzazione.id + 1) == []


def test_end_to_end_order_flow(db, make_ordine, make_stampante):
    stampante_a = make_stampante("Voron A")
    stampante_b = make_stampante("Voron B")
    seen = []

    ordine = make_ordine(quantita=3)
    seen.append(_stato(db, ordine.id))

    entry_a = lifecycle.enqueue(db, ordine.id, stampante_a.id)
    entry_b = lifecycle.enqueue(db, ordine.id, stampante_b.id)
    seen.append(_stato(db, ordine.id))
    assert seen[-1] == OrdineStato.IN_CODA

    with pytest.raises(ConflictError):
        lifecycle.mark_delivered(db, ordine.id)

    lifecycle.start_print(db, entry_a.id)
    seen.append(_stato(db, ordine.id))
    assert seen[-1] == OrdineStato.IN_STAMPA

    lifecycle.complete_print(db, entry_a.id, "done")
    assert _stato(db, ordine.id) == OrdineStato.IN_STAMPA

    lifecycle.start_print(db, entry_b.id)
    lifecycle.complete_print(db, entry_b.id, "done")
    seen.append(_stato(db, ordine.id))
    assert seen[-1] == OrdineStato.PRONTO

    delivered = lifecycle.mark_delivered(db, ordine.id)
    seen.append(delivered.stato)
    assert delivered.stato == OrdineStato.CONSEGNATO
    assert delivered.data_consegna is not None

    with pytest.raises(ConflictError):
        lifecycle.mark_delivered(db, ordine.id)

    # Every observed status follows the lifecycle order
    indexes = [OrdineStato.SEQUENCE.index(s) for s in seen]
    assert indexes == sorted(indexes)
    assert seen == list(OrdineStato.SEQUENCE)


def _gcode(db, file_origine, nome, **fields):
    gcode = Gcode(file_origine_id=file_origine.id, nome_file=f"officina_test/staffe/staffa/{nome}", **fields)
    db.add(gcode)
    db.commit()
    db.refresh(gcode)
    return gcode


def test_concatenation_candidates(db, gcode, file_origine, organizzazione, make_ordine, make_stampante):
    gcode.materiale = "PLA"
    gcode.tempo_stampa_min = 30
    gcode.peso_grammi = 10.5
    db.commit()
    supporto = _gcode(db, file_origine, "supporto_pla.gcode", materiale="pla", tempo_stampa_min=20, peso_grammi=4.0)
    voron = make_stampante("Voron")
    prusa = make_stampante("Prusa")

    a = lifecycle.enqueue(db, make_ordine(quantita=2).id, voron.id)
    b = lifecycle.enqueue(db, make_ordine(quantita=3).id, voron.id)
    ordine_supporto = lifecycle.submit_order(db, supporto.id, 1, None, organizzazione.id, "user-1")
    c = lifecycle.enqueue(db, ordine_supporto.id, voron.id)
    # alone on its printer
    lifecycle.enqueue(db, make_ordine().id, prusa.id)

    proposals = lifecycle.find_concatenation_candidates(db)
    assert len(proposals) == 2
    by_tipo = {p.tipo: p for p in proposals}

    same = by_tipo["same_gcode"]
    assert same.stampante_id == voron.id
    assert same.coda_ids == [a.id, b.id]
    assert same.gcode_ids == [gcode.id]
    assert same.quantita_totale == 5
    assert same.tempo_stimato_min == 150
    assert same.materiale_stimato_grammi == 52.5
    assert same.descrizione == "5x staffa_pla.gcode"

    material = by_tipo["same_material"]
    assert material.coda_ids == [a.id, b.id, c.id]
    assert material.gcode_ids == [gcode.id, supporto.id]
    assert material.materiale == "PLA"
    assert material.quantita_totale == 6
    assert material.tempo_stimato_min == 170
    assert material.materiale_stimato_grammi == 56.5


def test_concatenation_ignores_started_entries(db, make_ordine, stampante):
    first = lifecycle.enqueue(db, make_ordine().id, stampante.id)
    lifecycle.enqueue(db, make_ordine().id, stampante.id)
    assert len(lifecycle.find_concatenation_candidates(db, stampante_id=stampante.id)) == 1

    lifecycle.start_print(db, first.id)
    assert lifecycle.find_concatenation_candidates(db, stampante_id=stampante.id) == []


def test_concatenation_unknown_printer(db):
    with pytest.raises(NotFoundError):
        lifecycle.find_concatenation_candidates(db, stampante_id=9999)
