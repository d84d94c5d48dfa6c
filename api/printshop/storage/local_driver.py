"""Local filesystem storage driver."""

import logging
import os
from pathlib import Path
from typing import Any, Dict

import aiofiles

from printshop.storage.base import BaseStorageDriver, StorageError, StorageFileExistsError

logger = logging.getLogger(__name__)


class LocalStorageDriver(BaseStorageDriver):
    """Stores each key as a file below ``base_path``.

    Configuration:
        base_path: Storage root directory (made absolute)

    Example:
        >>> driver = LocalStorageDriver({"base_path": "/data/printshop-files"})
        >>> await driver.upload_file("acme/commessa_1/staffa.stl", content)
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.root = Path(config["base_path"]).resolve()

    def _path(self, key: str) -> Path:
        """Resolve a key to a path under the root.

        Raises:
            StorageError: If the key points outside the root
        """
        path = (self.root / key.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Chiave non valida, esce dalla cartella di storage: {key}")
        return path

    async def upload_file(self, key: str, content: bytes, overwrite: bool = False) -> str:
        path = self._path(key)
        if path.exists() and not overwrite:
            raise StorageFileExistsError(f"File already exists: {key}")

        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

        logger.debug(f"Stored {key} ({len(content)} bytes)")
        return key

    async def download_file(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {key}")

        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete_file(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            return
        path.unlink()

        # Drop folders left empty (a G-code folder after its last plate)
        parent = path.parent
        while parent != self.root and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    async def file_exists(self, key: str) -> bool:
        return self._path(key).is_file()

    async def test_connection(self) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Storage root {self.root} not usable: {e}")
            return False
        return os.access(self.root, os.R_OK | os.W_OK)
