"""Print queue entry model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from printshop.database import Base

_ACTIVE = text("stato IN ('in_queue', 'printing')")
_PRINTING = text("stato = 'printing'")


class CodaStampa(Base):
    """Assignment of an order to a printer, FIFO by posizione."""

    __tablename__ = "coda_stampa"
    __table_args__ = (
        # At most one running print per printer
        Index(
            "uq_coda_stampa_printing_per_stampante",
            "stampante_id",
            unique=True,
            postgresql_where=_PRINTING,
            sqlite_where=_PRINTING,
        ),
        # Positions are unique among entries still waiting or printing
        Index(
            "uq_coda_stampa_posizione_attiva",
            "stampante_id",
            "posizione",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    ordine_id = Column(Integer, ForeignKey("ordine.id", ondelete="CASCADE"), nullable=False, index=True)
    stampante_id = Column(Integer, ForeignKey("stampante.id", ondelete="RESTRICT"), nullable=False, index=True)
    posizione = Column(Integer, nullable=False)
    stato = Column(String(20), nullable=False, default="in_queue", index=True)
    # Stato: in_queue -> printing -> done | error
    data_inizio = Column(DateTime, nullable=True)
    data_fine = Column(DateTime, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    ordine = relationship("Ordine", back_populates="coda")
    stampante = relationship("Stampante", back_populates="coda")

    def __repr__(self):
        return f"<CodaStampa(id={self.id}, ordine_id={self.ordine_id}, stampante_id={self.stampante_id}, stato={self.stato})>"
