"""Encryption of secrets stored in the database (printer API keys, HA token)."""

import base64
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from printshop.config import settings


def _get_fernet(key: Optional[str] = None) -> Fernet:
    """Get Fernet instance with encryption key from settings.

    Returns:
        Fernet instance for encryption/decryption
    """
    raw = (key or settings.encryption_key).encode()
    if len(raw) < 32:
        # Pad key if too short (for development only - use proper key in production)
        raw = raw.ljust(32, b"=")
    return Fernet(base64.urlsafe_b64encode(raw[:32]))


def encrypt_secret(value: str, key: Optional[str] = None) -> str:
    """Encrypt a secret string for database storage.

    Example:
        >>> encrypt_secret("my-long-lived-token")
        'gAAAAA...'
    """
    return _get_fernet(key).encrypt(value.encode()).decode()


def decrypt_secret(encrypted: str, key: Optional[str] = None) -> str:
    """Decrypt a secret previously produced by encrypt_secret.

    Raises:
        ValueError: If decryption fails (wrong key or corrupted data)
    """
    try:
        return _get_fernet(key).decrypt(encrypted.encode()).decode()
    except InvalidToken as e:
        raise ValueError(f"Failed to decrypt secret: {e}")
