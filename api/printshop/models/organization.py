"""Organization, user and membership models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from printshop.database import Base


class Utente(Base):
    """Application user; the id comes from the external auth provider."""

    __tablename__ = "utente"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    nome = Column(String(255), nullable=True)
    is_superuser = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    memberships = relationship("OrganizzazioneUtente", back_populates="utente", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Utente(id={self.id}, email={self.email})>"


class Organizzazione(Base):
    """Organization owning jobs and printers."""

    __tablename__ = "organizzazione"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    membri = relationship("OrganizzazioneUtente", back_populates="organizzazione", cascade="all, delete-orphan")
    commesse = relationship("Commessa", back_populates="organizzazione", cascade="all, delete-orphan")
    stampanti = relationship("Stampante", back_populates="organizzazione")

    def __repr__(self):
        return f"<Organizzazione(id={self.id}, nome={self.nome})>"


class OrganizzazioneUtente(Base):
    """Membership of a user in an organization."""

    __tablename__ = "organizzazioni_utente"

    user_id = Column(String(64), ForeignKey("utente.id", ondelete="CASCADE"), primary_key=True)
    organizzazione_id = Column(Integer, ForeignKey("organizzazione.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(50), nullable=False, default="user")

    # Relationships
    utente = relationship("Utente", back_populates="memberships")
    organizzazione = relationship("Organizzazione", back_populates="membri")

    def __repr__(self):
        return f"<OrganizzazioneUtente(user_id={self.user_id}, organizzazione_id={self.organizzazione_id})>"
