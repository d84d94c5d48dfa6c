"""G-code model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from printshop.database import Base


class Gcode(Base):
    """Sliced, printable artifact derived from one source file."""

    __tablename__ = "gcode"

    id = Column(Integer, primary_key=True, index=True)
    file_origine_id = Column(Integer, ForeignKey("file_origine.id", ondelete="CASCADE"), nullable=False, index=True)
    nome_file = Column(String(1000), nullable=False, unique=True)  # storage path
    user_id = Column(String(64), nullable=True)
    data_caricamento = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    # Filled by the analysis task
    peso_grammi = Column(Float, nullable=True)
    tempo_stampa_min = Column(Integer, nullable=True)
    materiale = Column(String(100), nullable=True)
    stampante = Column(String(255), nullable=True)  # printer name found in the file
    data_analisi = Column(DateTime, nullable=True)
    note = Column(Text, nullable=True)

    # Relationships
    file_origine = relationship("FileOrigine", back_populates="gcodes", foreign_keys=[file_origine_id])
    ordini = relationship("Ordine", back_populates="gcode")

    def __repr__(self):
        return f"<Gcode(id={self.id}, nome_file={self.nome_file}, file_origine_id={self.file_origine_id})>"
