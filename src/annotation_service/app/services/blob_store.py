import asyncio
import json
import shutil
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

import aiofiles
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ..core.config import Settings
from ..core.exceptions import BlobNotFoundError, BlobStoreError
from .domain import StoredBlob

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}
_MISSING_BUCKET_CODES = {"NoSuchBucket", "404", "NotFound"}


class BlobStore(ABC):
    """Put/get of byte payloads by key inside one fixed bucket."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """
        Store ``data`` under ``key``, tagged with ``content_type``.

        Raises:
            BlobStoreError: If the write fails
        """

    @abstractmethod
    async def get(self, key: str) -> StoredBlob:
        """
        Fetch the payload and content type stored under ``key``.

        Raises:
            BlobNotFoundError: If nothing is stored under ``key``
            BlobStoreError: If the read fails
        """

    async def ensure_bucket(self) -> None:
        return None


class S3BlobStore(BlobStore):
    def __init__(self, bucket: str, s3_client=None, region: str = "us-east-1"):
        super().__init__(bucket)
        self._region = region
        self._s3_client = s3_client or boto3.client("s3", region_name=region)

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3BlobStore":
        s3_client = boto3.client(
            "s3",
            region_name=settings.S3_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
        return cls(settings.BLOB_BUCKET, s3_client=s3_client, region=settings.S3_REGION)

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Failed to upload {key} to S3: {e}") from e

    async def get(self, key: str) -> StoredBlob:
        def _read_object() -> StoredBlob:
            response = self._s3_client.get_object(Bucket=self.bucket, Key=key)
            return StoredBlob(
                content_type=response.get("ContentType") or "application/octet-stream",
                data=response["Body"].read(),
            )

        try:
            return await asyncio.to_thread(_read_object)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                raise BlobNotFoundError(key) from e
            raise BlobStoreError(f"Failed to fetch {key} from S3: {e}") from e
        except BotoCoreError as e:
            raise BlobStoreError(f"Failed to fetch {key} from S3: {e}") from e

    async def ensure_bucket(self) -> None:
        def _create_if_missing() -> bool:
            try:
                self._s3_client.head_bucket(Bucket=self.bucket)
                return False
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") not in _MISSING_BUCKET_CODES:
                    raise
            if self._region == "us-east-1":
                self._s3_client.create_bucket(Bucket=self.bucket)
            else:
                self._s3_client.create_bucket(
                    Bucket=self.bucket,
                    CreateBucketConfiguration={"LocationConstraint": self._region},
                )
            return True

        try:
            if await asyncio.to_thread(_create_if_missing):
                logger.info(f"Created S3 bucket {self.bucket}")
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Failed to prepare bucket {self.bucket}: {e}") from e


class LocalBlobStore(BlobStore):
    """
    Blob store backed by a directory per bucket.

    Each blob is a pair of files: the payload under its key and a JSON
    sidecar holding the content type. Payloads are written to a temp file
    and moved into place, so readers see either the whole blob or nothing.
    """

    METADATA_SUFFIX = ".meta.json"

    def __init__(self, bucket: str, root_dir: str):
        super().__init__(bucket)
        self.bucket_dir = Path(root_dir) / bucket
        self.temp_dir = Path(root_dir) / ".tmp"

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalBlobStore":
        return cls(settings.BLOB_BUCKET, settings.absolute_blob_dir)

    def _blob_path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        return self.bucket_dir / key

    def _metadata_path(self, key: str) -> Path:
        return self.bucket_dir / f"{key}{self.METADATA_SUFFIX}"

    async def ensure_bucket(self) -> None:
        self.bucket_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        blob_path = self._blob_path(key)
        metadata_path = self._metadata_path(key)
        temp_name = uuid.uuid4().hex
        temp_blob = self.temp_dir / f"{temp_name}_blob"
        temp_metadata = self.temp_dir / f"{temp_name}_meta"
        metadata_moved = False
        completed = False

        try:
            await self.ensure_bucket()

            async with aiofiles.open(temp_blob, "wb") as f:
                await f.write(data)
            async with aiofiles.open(temp_metadata, "w", encoding="utf-8") as f:
                await f.write(json.dumps({"content_type": content_type}))

            # The payload is moved last: its presence marks the blob as complete
            await asyncio.to_thread(shutil.move, str(temp_metadata), str(metadata_path))
            metadata_moved = True
            await asyncio.to_thread(shutil.move, str(temp_blob), str(blob_path))
            completed = True

        except OSError as e:
            raise BlobStoreError(f"Failed to write {key}: {e}") from e

        finally:
            # Also reached on cancellation, e.g. when an upload timeout fires
            if not completed:
                await self._safe_delete_file(temp_blob)
                await self._safe_delete_file(temp_metadata)
                if metadata_moved:
                    await self._safe_delete_file(metadata_path)

    async def get(self, key: str) -> StoredBlob:
        blob_path = self._blob_path(key)
        if not blob_path.exists():
            raise BlobNotFoundError(key)

        try:
            async with aiofiles.open(blob_path, "rb") as f:
                data = await f.read()
            async with aiofiles.open(self._metadata_path(key), encoding="utf-8") as f:
                metadata = json.loads(await f.read())
            content_type = metadata["content_type"]
        except FileNotFoundError as e:
            raise BlobNotFoundError(key) from e
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise BlobStoreError(f"Failed to read {key}: {e}") from e

        return StoredBlob(content_type=content_type, data=data)

    async def _safe_delete_file(self, file_path: Path) -> bool:
        try:
            if file_path.exists():
                file_path.unlink()
                return True
            return False
        except OSError:
            return False


def create_blob_store(settings: Settings) -> BlobStore:
    if settings.BLOB_BACKEND == "s3":
        logger.info(f"Using S3 blob store, bucket {settings.BLOB_BUCKET}")
        return S3BlobStore.from_settings(settings)

    logger.info(f"Using local blob store under {settings.absolute_blob_dir}")
    return LocalBlobStore.from_settings(settings)
