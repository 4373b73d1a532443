from unittest.mock import AsyncMock, Mock

import pytest

from src.annotation_service.app.core.exceptions import (
    BlobNotFoundError,
    BlobStoreError,
    ImageNotFoundError,
)
from src.annotation_service.app.services.domain import BoundingBox
from src.annotation_service.app.services.image_query import ImageQueryService


class TestImageQueryService:
    def test_requires_blob_store(self):
        with pytest.raises(ValueError, match="BlobStore must be provided"):
            ImageQueryService(metadata_store=Mock())

    async def test_fetch_blob_after_upload(self, coordinator, image_query, sample_jpeg):
        outcome = await coordinator.upload("image/jpeg", sample_jpeg)

        blob = await image_query.fetch_blob(outcome.image_id)

        assert blob.data == sample_jpeg
        assert blob.content_type == "image/jpeg"

    async def test_fetch_blob_unknown_id(self, image_query):
        with pytest.raises(BlobNotFoundError) as exc_info:
            await image_query.fetch_blob(999)

        assert exc_info.value.key == "image-999"

    async def test_fetch_blob_propagates_store_errors(self, metadata_store):
        blob_store = Mock()
        blob_store.get = AsyncMock(side_effect=BlobStoreError("access denied"))
        image_query = ImageQueryService(
            metadata_store=metadata_store, blob_store=blob_store
        )

        with pytest.raises(BlobStoreError, match="access denied"):
            await image_query.fetch_blob(1)

        blob_store.get.assert_awaited_once_with("image-1")

    async def test_random_unannotated_image(self, image_query, metadata_store, replacer):
        annotated = await metadata_store.reserve_image()
        pending = await metadata_store.reserve_image()
        await replacer.replace(annotated, [BoundingBox(0, 0, 5, 5)], 10, 10)

        assert await image_query.random_unannotated_image() == pending

    async def test_get_annotation_set(self, image_query, metadata_store, replacer):
        image_id = await metadata_store.reserve_image()
        await replacer.replace(image_id, [BoundingBox(1, 1, 2, 2)], 20, 30)

        annotation_set = await image_query.get_annotation_set(image_id)

        assert [box.as_tuple() for box in annotation_set.annotations] == [(1, 1, 2, 2)]
        assert (annotation_set.width, annotation_set.height) == (20, 30)

    async def test_get_annotation_set_unknown_image(self, image_query):
        with pytest.raises(ImageNotFoundError):
            await image_query.get_annotation_set(31337)
