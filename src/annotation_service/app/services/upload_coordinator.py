import asyncio

from loguru import logger

from ..core.config import Settings
from ..core.exceptions import BlobStoreError, ReconciliationFailure
from ..core.logging import RECONCILIATION_FAILURE_EVENT
from ..models import blob_key_for
from .blob_store import BlobStore
from .domain import UploadOutcome, UploadStatus
from .metadata_store import MetadataStore


class UploadCoordinator:
    """
    Stores one uploaded field across the metadata store and the blob store.

    The image row is reserved and committed first so the id is visible to
    readers right away; the bytes follow under ``image-<id>``. When the blob
    write fails the row is deleted again. That compensating delete is best
    effort: if it fails too, the orphaned id is logged as a reconciliation
    failure for out-of-band cleanup.
    """

    def __init__(
        self,
        metadata_store: MetadataStore | None = None,
        blob_store: BlobStore | None = None,
        settings: Settings = None,
    ):
        from ..core.config import get_settings

        self.settings = settings or get_settings()

        if metadata_store is None:
            raise ValueError("MetadataStore must be provided via dependency injection")
        if blob_store is None:
            raise ValueError("BlobStore must be provided via dependency injection")

        self.metadata_store = metadata_store
        self.blob_store = blob_store

    async def upload(self, content_type: str, data: bytes) -> UploadOutcome:
        try:
            image_id = await self.metadata_store.reserve_image()
        except Exception as e:
            logger.error(f"Couldn't create new image in db: {e}")
            return UploadOutcome(
                status=UploadStatus.RESERVATION_FAILED, error_message=str(e)
            )

        key = blob_key_for(image_id)
        logger.info(f"Reserved image {image_id}, uploading {len(data)} bytes to {key}")

        try:
            await self._put_blob(key, data, content_type)
        except BlobStoreError as upload_error:
            logger.error(f"Couldn't upload image {image_id}: {upload_error}")
            return await self._reconcile(image_id, upload_error)

        logger.info(f"Stored image {image_id} ({content_type})")
        return UploadOutcome(status=UploadStatus.STORED, image_id=image_id)

    async def _put_blob(self, key: str, data: bytes, content_type: str) -> None:
        timeout = self.settings.BLOB_UPLOAD_TIMEOUT
        try:
            await asyncio.wait_for(
                self.blob_store.put(key, data, content_type), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise BlobStoreError(f"Upload of {key} timed out after {timeout}s") from e
        except BlobStoreError:
            raise
        except Exception as e:
            raise BlobStoreError(f"Upload of {key} failed: {e}") from e

    async def _reconcile(
        self, image_id: int, upload_error: BlobStoreError
    ) -> UploadOutcome:
        try:
            await self.metadata_store.delete_image(image_id)
        except Exception as e:
            failure = ReconciliationFailure(image_id, str(e))
            logger.bind(event=RECONCILIATION_FAILURE_EVENT, image_id=image_id).critical(
                f"Image {image_id} is orphaned in the metadata store with no blob: "
                f"{failure}"
            )
            return UploadOutcome(
                status=UploadStatus.RECONCILIATION_FAILED,
                image_id=image_id,
                error_message=str(failure),
            )

        logger.warning(f"Rolled back image {image_id} after failed upload")
        return UploadOutcome(
            status=UploadStatus.ROLLED_BACK,
            image_id=image_id,
            error_message=str(upload_error),
        )
