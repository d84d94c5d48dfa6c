"""Storage driver interface for source files and G-code."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class StorageError(Exception):
    """Storage backend failure."""


class StorageConnectionError(StorageError):
    """Bucket or directory unreachable."""


class StorageFileExistsError(StorageError):
    """Key already holds an object."""


class BaseStorageDriver(ABC):
    """Object store addressed by keys like ``<org>/<commessa>/<file>``.

    Keys always use ``/`` separators whatever the backend. Drivers never
    overwrite an object unless asked to, so two uploads with the same
    cleaned name cannot silently replace each other.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    async def upload_file(self, key: str, content: bytes, overwrite: bool = False) -> str:
        """Store ``content`` under ``key`` and return the key.

        Raises:
            StorageFileExistsError: If the key is taken and overwrite is False
            StorageError: If the backend rejects the write
        """

    @abstractmethod
    async def download_file(self, key: str) -> bytes:
        """Read an object.

        Raises:
            FileNotFoundError: If nothing is stored under the key
            StorageError: If the backend fails
        """

    @abstractmethod
    async def delete_file(self, key: str) -> None:
        """Remove an object; a missing key is not an error."""

    @abstractmethod
    async def file_exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """True when the backend accepts reads and writes."""
