"""Storage drivers for uploaded source files and G-code."""

from printshop.storage.base import BaseStorageDriver, StorageError, StorageFileExistsError
from printshop.storage.factory import get_storage_driver
from printshop.storage.local_driver import LocalStorageDriver
from printshop.storage.s3_driver import S3StorageDriver

__all__ = [
    "BaseStorageDriver",
    "LocalStorageDriver",
    "S3StorageDriver",
    "StorageError",
    "StorageFileExistsError",
    "get_storage_driver",
]
