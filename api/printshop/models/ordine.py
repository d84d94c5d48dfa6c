"""Print order model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from printshop.database import Base


class Ordine(Base):
    """Request to print N copies of a G-code for a commessa."""

    __tablename__ = "ordine"
    __table_args__ = (CheckConstraint("quantita > 0", name="ck_ordine_quantita_positiva"),)

    id = Column(Integer, primary_key=True, index=True)
    gcode_id = Column(Integer, ForeignKey("gcode.id", ondelete="RESTRICT"), nullable=False, index=True)
    commessa_id = Column(Integer, ForeignKey("commessa.id", ondelete="CASCADE"), nullable=True, index=True)
    organizzazione_id = Column(Integer, ForeignKey("organizzazione.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    quantita = Column(Integer, nullable=False, default=1)
    stato = Column(String(20), nullable=False, default="processamento", index=True)
    # Stato: processamento -> in_coda -> in_stampa -> pronto -> consegnato
    consegna_richiesta = Column(Date, nullable=True)
    note = Column(Text, nullable=True)
    data_ordine = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    data_consegna = Column(DateTime, nullable=True)

    # Relationships
    gcode = relationship("Gcode", back_populates="ordini")
    commessa = relationship("Commessa")
    coda = relationship(
        "CodaStampa",
        back_populates="ordine",
        cascade="all, delete-orphan",
        order_by="CodaStampa.id",
    )

    def __repr__(self):
        return f"<Ordine(id={self.id}, stato={self.stato}, gcode_id={self.gcode_id})>"
