class AnnotationServiceError(Exception):
    """Base class for errors raised by the annotation service."""

    status_code = 500


class ClientInputError(AnnotationServiceError):
    """Malformed multipart framing, missing content type or unreadable body."""

    status_code = 400


class PayloadTooLargeError(ClientInputError):
    status_code = 413


class MetadataError(AnnotationServiceError):
    """The metadata store was unreachable or rejected a statement."""


class ImageNotFoundError(MetadataError):
    status_code = 404

    def __init__(self, image_id: int):
        super().__init__(f"Image {image_id} not found")
        self.image_id = image_id


class ReconciliationFailure(MetadataError):
    """
    The compensating delete after a failed blob upload did not go through.

    The image row is now orphaned (no blob behind it) and needs out-of-band
    cleanup.
    """

    def __init__(self, image_id: int, reason: str):
        super().__init__(
            f"Failed to delete image {image_id} after blob upload failure: {reason}"
        )
        self.image_id = image_id


class BlobStoreError(AnnotationServiceError):
    """Upload or fetch against the blob store failed."""


class BlobNotFoundError(BlobStoreError):
    status_code = 404

    def __init__(self, key: str):
        super().__init__(f"Blob {key} not found")
        self.key = key
