from loguru import logger

from ..core.exceptions import BlobNotFoundError, BlobStoreError
from ..models import blob_key_for
from .blob_store import BlobStore
from .domain import AnnotationSet, StoredBlob
from .metadata_store import MetadataStore


class ImageQueryService:
    def __init__(
        self,
        metadata_store: MetadataStore | None = None,
        blob_store: BlobStore | None = None,
    ):
        if metadata_store is None:
            raise ValueError("MetadataStore must be provided via dependency injection")
        if blob_store is None:
            raise ValueError("BlobStore must be provided via dependency injection")

        self.metadata_store = metadata_store
        self.blob_store = blob_store

    async def fetch_blob(self, image_id: int) -> StoredBlob:
        key = blob_key_for(image_id)
        try:
            return await self.blob_store.get(key)
        except BlobNotFoundError:
            logger.warning(f"No blob stored for image {image_id}")
            raise
        except BlobStoreError as e:
            logger.error(f"Couldn't get image {image_id} from blob store: {e}")
            raise

    async def random_unannotated_image(self) -> int | None:
        return await self.metadata_store.random_unannotated_image_id()

    async def get_annotation_set(self, image_id: int) -> AnnotationSet:
        return await self.metadata_store.get_annotation_set(image_id)
