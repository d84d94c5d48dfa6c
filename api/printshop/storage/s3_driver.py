"""S3-compatible storage driver (Supabase Storage, AWS S3, MinIO)."""

import logging
from typing import Any, Dict

import aioboto3
from botocore.exceptions import ClientError

from printshop.storage.base import (
    BaseStorageDriver,
    StorageConnectionError,
    StorageError,
    StorageFileExistsError,
)

logger = logging.getLogger(__name__)

MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class S3StorageDriver(BaseStorageDriver):
    """Stores keys as objects of one bucket.

    Supabase Storage exposes its buckets on an S3 endpoint
    (``https://<project>.supabase.co/storage/v1/s3``), so this driver serves
    Supabase as well as AWS S3 and MinIO.

    Configuration:
        aws_access_key_id: Access key
        aws_secret_access_key: Secret key
        bucket_name: Bucket holding every file of the shop
        region: Region (default: us-east-1)
        endpoint_url: Custom endpoint (Supabase, MinIO)
        prefix: Key prefix inside the bucket (optional)
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.bucket_name = config["bucket_name"]
        self.prefix = (config.get("prefix") or "").strip("/")
        self.client_options = {
            "aws_access_key_id": config["aws_access_key_id"],
            "aws_secret_access_key": config["aws_secret_access_key"],
            "region_name": config.get("region") or "us-east-1",
        }
        if config.get("endpoint_url"):
            self.client_options["endpoint_url"] = config["endpoint_url"]

        self.session = aioboto3.Session()

    def _client(self):
        return self.session.client("s3", **self.client_options)

    def _object_key(self, key: str) -> str:
        key = key.strip("/")
        return f"{self.prefix}/{key}" if self.prefix else key

    async def upload_file(self, key: str, content: bytes, overwrite: bool = False) -> str:
        if not overwrite and await self.file_exists(key):
            raise StorageFileExistsError(f"File already exists: {key}")

        try:
            async with self._client() as s3:
                await s3.put_object(Bucket=self.bucket_name, Key=self._object_key(key), Body=content)
        except ClientError as e:
            raise StorageError(f"Upload of {key} failed: {e}")

        logger.debug(f"Stored {key} in bucket {self.bucket_name} ({len(content)} bytes)")
        return key

    async def download_file(self, key: str) -> bytes:
        try:
            async with self._client() as s3:
                response = await s3.get_object(Bucket=self.bucket_name, Key=self._object_key(key))
                async with response["Body"] as stream:
                    return await stream.read()
        except ClientError as e:
            if _error_code(e) in MISSING_CODES:
                raise FileNotFoundError(f"File not found: {key}")
            raise StorageError(f"Download of {key} failed: {e}")

    async def delete_file(self, key: str) -> None:
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=self._object_key(key))
        except ClientError as e:
            if _error_code(e) not in MISSING_CODES:
                raise StorageError(f"Delete of {key} failed: {e}")

    async def file_exists(self, key: str) -> bool:
        try:
            async with self._client() as s3:
                await s3.head_object(Bucket=self.bucket_name, Key=self._object_key(key))
        except ClientError as e:
            if _error_code(e) in MISSING_CODES:
                return False
            raise StorageError(f"Lookup of {key} failed: {e}")
        return True

    async def test_connection(self) -> bool:
        """Check the bucket is reachable.

        Raises:
            StorageConnectionError: If the bucket is missing or access is denied
        """
        try:
            async with self._client() as s3:
                await s3.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            code = _error_code(e)
            if code in ("404", "NoSuchBucket"):
                raise StorageConnectionError(f"Bucket not found: {self.bucket_name}")
            if code == "403":
                raise StorageConnectionError(f"Access denied to bucket: {self.bucket_name}")
            logger.warning(f"Bucket {self.bucket_name} check failed: {e}")
            return False
        return True
