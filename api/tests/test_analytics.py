"""Analytics summary tests."""

from datetime import date, datetime, timedelta

from printshop.models.coda_stampa import CodaStampa
from printshop.models.ordine import Ordine
from printshop.services.analytics import get_summary


def _delivered(db, gcode, organizzazione, consegnato, richiesta=None, ordinato=None):
    ordine = Ordine(
        gcode_id=gcode.id,
        organizzazione_id=organizzazione.id,
        quantita=1,
        stato="consegnato",
        consegna_richiesta=richiesta,
        data_ordine=ordinato or datetime(2026, 9, 1),
        data_consegna=consegnato,
    )
    db.add(ordine)
    db.commit()
    return ordine


def test_summary_counts(db, gcode, organizzazione, make_stampante, make_ordine):
    make_stampante("A")
    make_stampante("B", attiva=False)
    make_ordine()
    make_ordine()
    _delivered(db, gcode, organizzazione, datetime(2026, 10, 5), richiesta=date(2026, 10, 10))
    _delivered(db, gcode, organizzazione, datetime(2026, 9, 20), richiesta=date(2026, 9, 15))
    _delivered(db, gcode, organizzazione, datetime(2026, 8, 3))

    summary = get_summary(db, organizzazione.id, today=date(2026, 10, 18))

    assert summary.total_printers == 2
    assert summary.active_printers == 1
    assert summary.total_orders == 5
    assert summary.pending_orders == 2
    assert summary.completed_orders == 3
    assert summary.orders_by_status["processamento"] == 2
    assert summary.orders_by_status["in_stampa"] == 0
    assert summary.total_commesse == 1
    assert summary.delivered.this_month == 1
    assert summary.delivered.last_month == 1
    assert summary.delivered.on_time == 2
    assert summary.delivered.late == 1


def test_summary_january_uses_previous_december(db, gcode, organizzazione):
    _delivered(db, gcode, organizzazione, datetime(2026, 12, 30), ordinato=datetime(2026, 12, 28))

    summary = get_summary(db, organizzazione.id, today=date(2027, 1, 2))

    assert summary.delivered.last_month == 1
    assert summary.delivered.this_month == 0
    assert summary.delivered.average_delivery_days == 2.0


def test_summary_endpoint(client, headers, stampante):
    response = client.get("/api/analytics/summary", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["summary"]["total_printers"] == 1
    assert body["summary"]["delivered"]["total"] == 0


def _finished(db, ordine, stampante, stato, inizio, ore):
    entry = CodaStampa(
        ordine_id=ordine.id,
        stampante_id=stampante.id,
        posizione=1,
        stato=stato,
        data_inizio=inizio,
        data_fine=inizio + timedelta(hours=ore),
    )
    db.add(entry)
    db.commit()
    return entry


def test_printer_and_monthly_stats(db, gcode, organizzazione, make_stampante, make_ordine):
    voron = make_stampante("Voron")
    prusa = make_stampante("Prusa")
    make_stampante("Ferma")
    ordine = make_ordine()
    _finished(db, ordine, voron, "done", datetime(2026, 10, 2, 8), 2)
    _finished(db, ordine, voron, "done", datetime(2026, 9, 10, 8), 4)
    _finished(db, ordine, voron, "error", datetime(2026, 9, 11, 8), 1)
    _finished(db, ordine, prusa, "done", datetime(2026, 10, 3, 8), 1.5)
    _delivered(db, gcode, organizzazione, datetime(2026, 9, 25), ordinato=datetime(2026, 9, 1))

    summary = get_summary(db, organizzazione.id, today=date(2026, 10, 18), months=3)

    stats = {s.nome: s for s in summary.printer_stats}
    assert stats["Voron"].prints_completed == 2
    assert stats["Voron"].prints_failed == 1
    assert stats["Voron"].success_rate == 66.7
    assert stats["Voron"].average_print_minutes == 180.0
    assert stats["Voron"].total_hours == 7.0
    assert stats["Ferma"].prints_completed == 0
    assert stats["Ferma"].success_rate == 0.0

    assert [p.period for p in summary.time_stats] == ["2026-08", "2026-09", "2026-10"]
    settembre = summary.time_stats[1]
    assert settembre.prints_completed == 1
    assert settembre.print_hours == 4.0
    assert settembre.delivered == 1
    assert settembre.orders == 1
    ottobre = summary.time_stats[2]
    assert ottobre.prints_completed == 2
    assert ottobre.print_hours == 3.5

    assert [t.nome for t in summary.top_performers] == ["Voron", "Prusa"]
