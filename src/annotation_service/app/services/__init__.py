from .annotation_replacer import AnnotationReplacer
from .blob_store import BlobStore, LocalBlobStore, S3BlobStore, create_blob_store
from .image_query import ImageQueryService
from .metadata_store import MetadataStore
from .upload_coordinator import UploadCoordinator
from .upload_dispatcher import UploadDispatcher

__all__ = [
    "AnnotationReplacer",
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "create_blob_store",
    "ImageQueryService",
    "MetadataStore",
    "UploadCoordinator",
    "UploadDispatcher",
]
