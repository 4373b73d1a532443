import random
from collections.abc import Sequence

from loguru import logger
from tortoise.exceptions import BaseORMException
from tortoise.transactions import in_transaction

from ..core.exceptions import ImageNotFoundError, MetadataError
from ..models import Annotation, Dimensions, Image
from .domain import AnnotationSet, BoundingBox


class MetadataStore:
    """Queries and statements against the relational metadata store."""

    def __init__(self, connection_name: str | None = None):
        self.connection_name = connection_name

    async def reserve_image(self) -> int:
        """Insert a default ``images`` row and return its generated id."""
        try:
            image = await Image.create()
        except BaseORMException as e:
            raise MetadataError(f"Could not create image row: {e}") from e

        if image.id is None:
            raise MetadataError("Could not create image row: no id returned")

        return image.id

    async def delete_image(self, image_id: int) -> int:
        try:
            return await Image.filter(id=image_id).delete()
        except BaseORMException as e:
            raise MetadataError(f"Could not delete image {image_id}: {e}") from e

    async def image_exists(self, image_id: int) -> bool:
        try:
            return await Image.filter(id=image_id).exists()
        except BaseORMException as e:
            raise MetadataError(f"Could not look up image {image_id}: {e}") from e

    async def replace_annotation_set(
        self,
        image_id: int,
        annotations: Sequence[BoundingBox],
        width: int,
        height: int,
    ) -> None:
        """
        Swap the annotation set of an image and append a dimensions row.

        Runs as one transaction: existence check, delete of the previous
        annotations, insert of the new ones, insert of the dimensions. Any
        failure rolls all of it back.

        Raises:
            ImageNotFoundError: If no image row has ``image_id``
            MetadataError: If any statement or the commit fails
        """
        try:
            async with in_transaction(self.connection_name) as connection:
                if not await Image.filter(id=image_id).using_db(connection).exists():
                    raise ImageNotFoundError(image_id)

                deleted = (
                    await Annotation.filter(image_id=image_id)
                    .using_db(connection)
                    .delete()
                )

                if annotations:
                    await Annotation.bulk_create(
                        [
                            Annotation(
                                image_id=image_id,
                                x1=box.x1,
                                y1=box.y1,
                                x2=box.x2,
                                y2=box.y2,
                            )
                            for box in annotations
                        ],
                        using_db=connection,
                    )

                await Dimensions.create(
                    image_id=image_id, width=width, height=height, using_db=connection
                )

        except (BaseORMException, OverflowError) as e:
            raise MetadataError(
                f"Could not replace annotations for image {image_id}: {e}"
            ) from e

        logger.debug(
            f"Replaced {deleted} annotations with {len(annotations)} for image {image_id}"
        )

    async def get_annotation_set(self, image_id: int) -> AnnotationSet:
        try:
            if not await Image.filter(id=image_id).exists():
                raise ImageNotFoundError(image_id)

            rows = await Annotation.filter(image_id=image_id).order_by("id")
            dimensions = (
                await Dimensions.filter(image_id=image_id).order_by("-id").first()
            )
        except BaseORMException as e:
            raise MetadataError(
                f"Could not read annotations for image {image_id}: {e}"
            ) from e

        return AnnotationSet(
            image_id=image_id,
            annotations=[
                BoundingBox(x1=row.x1, y1=row.y1, x2=row.x2, y2=row.y2) for row in rows
            ],
            width=dimensions.width if dimensions else None,
            height=dimensions.height if dimensions else None,
        )

    async def random_unannotated_image_id(self) -> int | None:
        try:
            annotated_ids = (
                await Annotation.all().distinct().values_list("image_id", flat=True)
            )
            candidates = (
                Image.exclude(id__in=list(annotated_ids))
                if annotated_ids
                else Image.all()
            )

            count = await candidates.count()
            if count == 0:
                return None

            image = await candidates.order_by("id").offset(random.randrange(count)).first()
        except BaseORMException as e:
            raise MetadataError(f"Could not pick an unannotated image: {e}") from e

        # Deleted by a concurrent reconciliation between the two queries
        return image.id if image else None
