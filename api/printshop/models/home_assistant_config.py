"""Home Assistant connection settings."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, Text

from printshop.crypto import decrypt_secret, encrypt_secret
from printshop.database import Base


class HomeAssistantConfig(Base):
    """Deployment-wide Home Assistant settings; the newest row is the active one."""

    __tablename__ = "home_assistant_config"

    id = Column(Integer, primary_key=True, index=True)
    base_url = Column(String(500), nullable=False)
    access_token_encrypted = Column(Text, nullable=False)
    entity_prefix = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def access_token(self) -> Optional[str]:
        if not self.access_token_encrypted:
            return None
        return decrypt_secret(self.access_token_encrypted)

    @access_token.setter
    def access_token(self, value: str) -> None:
        self.access_token_encrypted = encrypt_secret(value)

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token_encrypted)

    def __repr__(self):
        return f"<HomeAssistantConfig(id={self.id}, base_url={self.base_url})>"
