from collections.abc import Sequence

from loguru import logger

from ..core.exceptions import ImageNotFoundError, MetadataError
from .domain import AnnotationSet, BoundingBox
from .metadata_store import MetadataStore


class AnnotationReplacer:
    def __init__(self, metadata_store: MetadataStore | None = None):
        if metadata_store is None:
            raise ValueError("MetadataStore must be provided via dependency injection")

        self.metadata_store = metadata_store

    async def replace(
        self,
        image_id: int,
        annotations: Sequence[BoundingBox],
        width: int,
        height: int,
    ) -> AnnotationSet:
        """
        Replace every annotation of an image and record the canvas size.

        An empty ``annotations`` sequence clears the image. Each call appends
        a dimensions row, so earlier canvas sizes stay on record.

        Raises:
            ValueError: If ``width`` or ``height`` is negative
            ImageNotFoundError: If the image does not exist
            MetadataError: If the transaction fails; nothing is changed
        """
        if width < 0 or height < 0:
            raise ValueError(f"Dimensions must be non-negative, got {width}x{height}")

        try:
            await self.metadata_store.replace_annotation_set(
                image_id, annotations, width, height
            )
        except ImageNotFoundError:
            logger.warning(f"Cannot annotate missing image {image_id}")
            raise
        except MetadataError as e:
            logger.error(f"Couldn't upload annotations for image {image_id}: {e}")
            raise

        logger.info(
            f"Replaced annotations for image {image_id}: "
            f"{len(annotations)} boxes on a {width}x{height} canvas"
        )

        return AnnotationSet(
            image_id=image_id,
            annotations=list(annotations),
            width=width,
            height=height,
        )
