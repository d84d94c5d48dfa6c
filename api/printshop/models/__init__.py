"""SQLAlchemy models."""

from printshop.database import Base
from printshop.models.organization import Organizzazione, OrganizzazioneUtente, Utente
from printshop.models.commessa import Commessa
from printshop.models.file_origine import FileOrigine
from printshop.models.gcode import Gcode
from printshop.models.ordine import Ordine
from printshop.models.coda_stampa import CodaStampa
from printshop.models.stampante import Stampante
from printshop.models.home_assistant_config import HomeAssistantConfig

__all__ = [
    "Base",
    "Utente",
    "Organizzazione",
    "OrganizzazioneUtente",
    "Commessa",
    "FileOrigine",
    "Gcode",
    "Ordine",
    "CodaStampa",
    "Stampante",
    "HomeAssistantConfig",
]
