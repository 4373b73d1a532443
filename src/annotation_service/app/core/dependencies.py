from functools import lru_cache

from ..core.config import Settings, get_settings
from ..services.annotation_replacer import AnnotationReplacer
from ..services.blob_store import BlobStore, create_blob_store
from ..services.image_query import ImageQueryService
from ..services.metadata_store import MetadataStore
from ..services.upload_coordinator import UploadCoordinator
from ..services.upload_dispatcher import UploadDispatcher


@lru_cache()
def get_settings_dependency() -> Settings:
    return get_settings()


@lru_cache()
def get_blob_store() -> BlobStore:
    return create_blob_store(get_settings())


@lru_cache()
def get_metadata_store() -> MetadataStore:
    return MetadataStore()


@lru_cache()
def get_upload_coordinator() -> UploadCoordinator:
    return UploadCoordinator(
        metadata_store=get_metadata_store(),
        blob_store=get_blob_store(),
        settings=get_settings(),
    )


@lru_cache()
def get_upload_dispatcher() -> UploadDispatcher:
    return UploadDispatcher(coordinator=get_upload_coordinator())


def get_annotation_replacer() -> AnnotationReplacer:
    return AnnotationReplacer(metadata_store=get_metadata_store())


def get_image_query_service() -> ImageQueryService:
    return ImageQueryService(
        metadata_store=get_metadata_store(),
        blob_store=get_blob_store(),
    )
