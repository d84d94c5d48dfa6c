"""Printer model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from printshop.crypto import decrypt_secret, encrypt_secret
from printshop.database import Base


class Stampante(Base):
    """Physical 3D printer and how to reach it."""

    __tablename__ = "stampante"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(255), nullable=False)
    modello = Column(String(255), nullable=True)
    seriale = Column(String(255), nullable=True, unique=True)
    attiva = Column(Boolean, default=True, nullable=False)
    data_acquisto = Column(Date, nullable=True)
    note = Column(Text, nullable=True)
    organizzazione_id = Column(Integer, ForeignKey("organizzazione.id", ondelete="SET NULL"), nullable=True, index=True)
    # Integration descriptor
    tipo_sistema = Column(String(20), nullable=True)  # 'klipper' or 'bambu'
    endpoint_api = Column(String(500), nullable=True)
    api_key_encrypted = Column(Text, nullable=True)
    ha_entity_id = Column(String(255), nullable=True)  # Home Assistant entity, if tracked there
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    organizzazione = relationship("Organizzazione", back_populates="stampanti")
    coda = relationship("CodaStampa", back_populates="stampante")

    @property
    def api_key(self) -> Optional[str]:
        if not self.api_key_encrypted:
            return None
        return decrypt_secret(self.api_key_encrypted)

    @api_key.setter
    def api_key(self, value: Optional[str]) -> None:
        self.api_key_encrypted = encrypt_secret(value) if value else None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key_encrypted)

    def __repr__(self):
        return f"<Stampante(id={self.id}, nome={self.nome}, tipo_sistema={self.tipo_sistema})>"
