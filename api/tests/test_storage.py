"""Storage driver tests."""

import asyncio

import pytest

from printshop.config import Settings
from printshop.storage import LocalStorageDriver, StorageError, StorageFileExistsError, get_storage_driver


def test_local_round_trip(storage):
    asyncio.run(storage.upload_file("acme/staffe/staffa.stl", b"solid"))

    assert asyncio.run(storage.file_exists("acme/staffe/staffa.stl")) is True
    assert asyncio.run(storage.download_file("acme/staffe/staffa.stl")) == b"solid"

    asyncio.run(storage.delete_file("acme/staffe/staffa.stl"))
    assert asyncio.run(storage.file_exists("acme/staffe/staffa.stl")) is False
    assert not (storage.root / "acme").exists()
    # Deleting twice is harmless
    asyncio.run(storage.delete_file("acme/staffe/staffa.stl"))


def test_local_refuses_overwrite(storage):
    asyncio.run(storage.upload_file("a.gcode", b"1"))
    with pytest.raises(StorageFileExistsError):
        asyncio.run(storage.upload_file("a.gcode", b"2"))

    asyncio.run(storage.upload_file("a.gcode", b"2", overwrite=True))
    assert asyncio.run(storage.download_file("a.gcode")) == b"2"


def test_local_missing_file(storage):
    with pytest.raises(FileNotFoundError):
        asyncio.run(storage.download_file("nope.gcode"))


def test_local_prevents_traversal(storage):
    with pytest.raises(StorageError):
        asyncio.run(storage.upload_file("../../etc/passwd", b"x"))


def test_factory(tmp_path):
    driver = get_storage_driver(Settings(storage_provider="local", storage_base_path=str(tmp_path)))
    assert isinstance(driver, LocalStorageDriver)

    with pytest.raises(StorageError):
        get_storage_driver(Settings(storage_provider="s3", storage_access_key_id=None))

    with pytest.raises(StorageError):
        get_storage_driver(Settings(storage_provider="ftp"))
