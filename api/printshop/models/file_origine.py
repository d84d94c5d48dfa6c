"""Source design file model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from printshop.database import Base


class FileOrigine(Base):
    """Uploaded STL/STEP design file."""

    __tablename__ = "file_origine"

    id = Column(Integer, primary_key=True, index=True)
    nome_file = Column(String(1000), nullable=False, unique=True)  # storage path
    commessa_id = Column(Integer, ForeignKey("commessa.id", ondelete="CASCADE"), nullable=False, index=True)
    descrizione = Column(Text, nullable=True)
    user_id = Column(String(64), nullable=True)
    tipo = Column(String(10), nullable=False)  # 'stl' or 'step'
    data_caricamento = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    gcode_principale_id = Column(
        Integer,
        ForeignKey("gcode.id", ondelete="SET NULL", use_alter=True, name="fk_file_origine_gcode_principale"),
        nullable=True,
    )

    # Relationships
    commessa = relationship("Commessa", back_populates="files")
    gcodes = relationship(
        "Gcode",
        back_populates="file_origine",
        cascade="all, delete-orphan",
        foreign_keys="Gcode.file_origine_id",
    )
    gcode_principale = relationship("Gcode", foreign_keys=[gcode_principale_id], post_update=True)

    def __repr__(self):
        return f"<FileOrigine(id={self.id}, nome_file={self.nome_file})>"
