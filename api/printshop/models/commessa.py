"""Commessa (customer job) model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from printshop.database import Base


class Commessa(Base):
    """Customer job grouping source files and orders."""

    __tablename__ = "commessa"
    __table_args__ = (UniqueConstraint("organizzazione_id", "nome", name="uq_commessa_organizzazione_nome"),)

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(255), nullable=False)
    organizzazione_id = Column(Integer, ForeignKey("organizzazione.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    organizzazione = relationship("Organizzazione", back_populates="commesse")
    files = relationship("FileOrigine", back_populates="commessa", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Commessa(id={self.id}, nome={self.nome}, organizzazione_id={self.organizzazione_id})>"
