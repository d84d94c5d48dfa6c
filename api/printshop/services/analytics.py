"""Dashboard analytics."""

from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from printshop.models.coda_stampa import CodaStampa
from printshop.models.commessa import Commessa
from printshop.models.ordine import Ordine
from printshop.models.stampante import Stampante
from printshop.schemas.analytics import AnalyticsSummary, DeliveredStats, PeriodStats, PrinterStats, TopPerformer
from printshop.schemas.coda_stampa import CodaStato
from printshop.schemas.ordine import OrdineStato


def _month_start(day: date, months_back: int = 0) -> datetime:
    index = day.year * 12 + day.month - 1 - months_back
    return datetime(index // 12, index % 12 + 1, 1)


def _print_hours(entry: CodaStampa) -> float:
    if entry.data_inizio is None or entry.data_fine is None:
        return 0.0
    return max((entry.data_fine - entry.data_inizio).total_seconds(), 0) / 3600


def printer_stats(db: Session, stampanti: List[Stampante]) -> List[PrinterStats]:
    """Completed and failed prints per printer, with hours spent printing.

    Failed prints count towards the hours (the printer was busy) but not
    towards the average print time.
    """
    ids = [stampante.id for stampante in stampanti]
    finished = (
        db.query(CodaStampa)
        .filter(CodaStampa.stampante_id.in_(ids), CodaStampa.stato.in_(CodaStato.TERMINAL))
        .all()
        if ids
        else []
    )

    stats = []
    for stampante in stampanti:
        entries = [entry for entry in finished if entry.stampante_id == stampante.id]
        done = [entry for entry in entries if entry.stato == CodaStato.DONE]
        failed = len(entries) - len(done)
        done_hours = sum(_print_hours(entry) for entry in done)
        stats.append(
            PrinterStats(
                stampante_id=stampante.id,
                nome=stampante.nome,
                prints_completed=len(done),
                prints_failed=failed,
                success_rate=round(len(done) * 100 / len(entries), 1) if entries else 0.0,
                average_print_minutes=round(done_hours * 60 / len(done), 1) if done else 0.0,
                total_hours=round(sum(_print_hours(entry) for entry in entries), 2),
            )
        )
    return stats


def time_stats(
    ordini: List[Ordine], finished: List[CodaStampa], today: date, months: int = 6
) -> List[PeriodStats]:
    """Per-month counters for the last ``months`` months, oldest first."""
    periods = []
    for back in range(months - 1, -1, -1):
        start = _month_start(today, back)
        end = _month_start(today, back - 1)

        def in_period(value: Optional[datetime]) -> bool:
            return value is not None and start <= value < end

        done = [e for e in finished if e.stato == CodaStato.DONE and in_period(e.data_fine)]
        periods.append(
            PeriodStats(
                period=start.strftime("%Y-%m"),
                orders=sum(1 for o in ordini if in_period(o.data_ordine)),
                delivered=sum(
                    1 for o in ordini if o.stato == OrdineStato.CONSEGNATO and in_period(o.data_consegna)
                ),
                prints_completed=len(done),
                print_hours=round(sum(_print_hours(e) for e in done), 2),
            )
        )
    return periods


def get_summary(
    db: Session, organizzazione_id: Optional[int] = None, today: Optional[date] = None, months: int = 6
) -> AnalyticsSummary:
    """Counters for printers, orders and deliveries.

    Delivered orders are bucketed by delivery date; an order is on time when
    it was delivered on or before its requested date (or had none).
    Printer and monthly statistics come from finished queue entries.
    """
    today = today or datetime.utcnow().date()

    stampanti = db.query(Stampante)
    ordini = db.query(Ordine)
    commesse = db.query(Commessa)
    if organizzazione_id is not None:
        stampanti = stampanti.filter(Stampante.organizzazione_id == organizzazione_id)
        ordini = ordini.filter(Ordine.organizzazione_id == organizzazione_id)
        commesse = commesse.filter(Commessa.organizzazione_id == organizzazione_id)

    by_status: Dict[str, int] = {stato: 0 for stato in OrdineStato.SEQUENCE}
    rows = ordini.with_entities(Ordine.stato, func.count(Ordine.id)).group_by(Ordine.stato).all()
    for stato, count in rows:
        by_status[stato] = count

    this_month = _month_start(today)
    last_month = _month_start(today, 1)
    delivered = ordini.filter(Ordine.stato == OrdineStato.CONSEGNATO).all()

    on_time = 0
    delivery_days = []
    for ordine in delivered:
        consegnato = ordine.data_consegna or ordine.data_ordine
        if ordine.consegna_richiesta is None or consegnato.date() <= ordine.consegna_richiesta:
            on_time += 1
        delivery_days.append((consegnato - ordine.data_ordine).total_seconds() / 86400)

    def delivered_between(start: datetime, end: Optional[datetime] = None) -> int:
        count = 0
        for ordine in delivered:
            consegnato = ordine.data_consegna or ordine.data_ordine
            if consegnato >= start and (end is None or consegnato < end):
                count += 1
        return count

    finished_query = db.query(CodaStampa).filter(CodaStampa.stato.in_(CodaStato.TERMINAL))
    if organizzazione_id is not None:
        finished_query = finished_query.join(Ordine, CodaStampa.ordine_id == Ordine.id).filter(
            Ordine.organizzazione_id == organizzazione_id
        )

    per_printer = printer_stats(db, stampanti.order_by(Stampante.nome).all())
    ranked = sorted(per_printer, key=lambda s: (-s.prints_completed, -s.success_rate, s.nome))

    return AnalyticsSummary(
        total_printers=stampanti.count(),
        active_printers=stampanti.filter(Stampante.attiva.is_(True)).count(),
        total_orders=sum(by_status.values()),
        pending_orders=sum(by_status[stato] for stato in OrdineStato.PENDING),
        completed_orders=by_status[OrdineStato.CONSEGNATO],
        orders_by_status=by_status,
        total_commesse=commesse.count(),
        delivered=DeliveredStats(
            total=len(delivered),
            this_month=delivered_between(this_month),
            last_month=delivered_between(last_month, this_month),
            on_time=on_time,
            late=len(delivered) - on_time,
            average_delivery_days=round(sum(delivery_days) / len(delivery_days), 1) if delivery_days else 0.0,
        ),
        printer_stats=per_printer,
        time_stats=time_stats(ordini.all(), finished_query.all(), today, months),
        top_performers=[
            TopPerformer(
                stampante_id=s.stampante_id,
                nome=s.nome,
                prints_completed=s.prints_completed,
                success_rate=s.success_rate,
            )
            for s in ranked[:3]
            if s.prints_completed
        ],
    )
