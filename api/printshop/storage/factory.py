"""Storage driver factory."""

from printshop.config import Settings, settings as default_settings
from printshop.storage.base import BaseStorageDriver, StorageError
from printshop.storage.local_driver import LocalStorageDriver
from printshop.storage.s3_driver import S3StorageDriver


def get_storage_driver(settings: Settings = default_settings) -> BaseStorageDriver:
    """Get the storage driver configured for this deployment.

    Raises:
        StorageError: If the provider is unknown or misconfigured

    Example:
        >>> driver = get_storage_driver()
        >>> content = await driver.download_file("acme/commessa_1/staffa/plate_1.gcode")
    """
    provider = settings.storage_provider.lower()

    if provider == "local":
        return LocalStorageDriver({"base_path": settings.storage_base_path})

    elif provider == "s3":
        if not settings.storage_access_key_id or not settings.storage_secret_access_key:
            raise StorageError("Missing required S3 configuration: access key / secret key")
        return S3StorageDriver(
            {
                "aws_access_key_id": settings.storage_access_key_id,
                "aws_secret_access_key": settings.storage_secret_access_key,
                "bucket_name": settings.storage_bucket,
                "region": settings.storage_region,
                "endpoint_url": settings.storage_endpoint_url,
            }
        )

    else:
        raise StorageError(f"Unsupported storage provider: {provider}")
