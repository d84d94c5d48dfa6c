"""Home Assistant connection settings store (single active row)."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from printshop.errors import ValidationError
from printshop.models.home_assistant_config import HomeAssistantConfig

logger = logging.getLogger(__name__)

CONFIG_FIELDS = ("base_url", "access_token", "entity_prefix")


def get_config(db: Session) -> Optional[HomeAssistantConfig]:
    """Return the active config (newest row) or None.

    Read on every call; nothing is cached between requests.
    """
    return (
        db.query(HomeAssistantConfig)
        .order_by(HomeAssistantConfig.created_at.desc(), HomeAssistantConfig.id.desc())
        .first()
    )


def upsert_config(db: Session, data: Dict[str, Any]) -> HomeAssistantConfig:
    """Insert the config if absent, otherwise update only the provided fields.

    Args:
        db: Database session
        data: Subset of base_url, access_token, entity_prefix. Keys with a
            None value are treated as not provided.

    Returns:
        The stored config

    Raises:
        ValidationError: On first insert without base_url or access_token
    """
    provided = {key: data[key] for key in CONFIG_FIELDS if data.get(key) is not None}
    if "base_url" in provided:
        provided["base_url"] = provided["base_url"].rstrip("/")

    config = get_config(db)
    if config is None:
        missing = [key for key in ("base_url", "access_token") if key not in provided]
        if missing:
            raise ValidationError(f"Campi obbligatori mancanti: {', '.join(missing)}")
        config = HomeAssistantConfig()
        db.add(config)
        logger.info("Creating Home Assistant config")
    else:
        logger.info(f"Updating Home Assistant config {config.id}: {sorted(provided)}")

    for key, value in provided.items():
        setattr(config, key, value)

    db.commit()
    db.refresh(config)
    return config


def delete_config(db: Session) -> bool:
    """Remove every stored config row. Returns True if something was deleted."""
    deleted = db.query(HomeAssistantConfig).delete()
    db.commit()
    if deleted:
        logger.info(f"Deleted {deleted} Home Assistant config row(s)")
    return bool(deleted)
