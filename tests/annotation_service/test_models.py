import pytest

from src.annotation_service.app.models import (
    Annotation,
    Dimensions,
    Image,
    blob_key_for,
)


@pytest.fixture
async def sample_image(db):
    return await Image.create()


class TestImageModel:
    async def test_image_creation_generates_id(self, db):
        image = await Image.create()

        assert image.id is not None
        assert image.created_at is not None

    async def test_generated_ids_are_distinct(self, db):
        images = [await Image.create() for _ in range(5)]

        assert len({image.id for image in images}) == 5

    @pytest.mark.parametrize("image_id,expected_key", [(1, "image-1"), (42, "image-42")])
    def test_blob_key_for(self, image_id, expected_key):
        assert blob_key_for(image_id) == expected_key

    async def test_blob_key_property(self, sample_image):
        assert sample_image.blob_key == f"image-{sample_image.id}"

    async def test_image_str_representation(self, sample_image):
        assert str(sample_image) == f"<Image(id={sample_image.id})>"


class TestAnnotationModel:
    @pytest.mark.parametrize(
        "x1,y1,x2,y2",
        [
            (0.0, 0.0, 1.0, 1.0),
            (10.5, 20.25, 110.5, 220.75),
            (-5.0, -5.0, 5.0, 5.0),
        ],
    )
    async def test_annotation_creation(self, sample_image, x1, y1, x2, y2):
        annotation = await Annotation.create(
            image=sample_image, x1=x1, y1=y1, x2=x2, y2=y2
        )

        assert annotation.id is not None
        assert annotation.image_id == sample_image.id
        assert (annotation.x1, annotation.y1, annotation.x2, annotation.y2) == (
            x1,
            y1,
            x2,
            y2,
        )

    async def test_reverse_relation(self, sample_image):
        await Annotation.create(image=sample_image, x1=0, y1=0, x2=1, y2=1)
        await Annotation.create(image=sample_image, x1=2, y1=2, x2=3, y2=3)

        await sample_image.fetch_related("annotations")

        assert len(sample_image.annotations) == 2

    async def test_annotation_for_unknown_image_is_not_rejected_by_store(self, db):
        # Referential integrity is enforced by the application, not the schema
        annotation = await Annotation.create(image_id=9999, x1=0, y1=0, x2=1, y2=1)

        assert annotation.image_id == 9999


class TestDimensionsModel:
    async def test_dimensions_rows_accumulate(self, sample_image):
        await Dimensions.create(image=sample_image, width=800, height=600)
        await Dimensions.create(image=sample_image, width=1024, height=768)

        rows = await Dimensions.filter(image_id=sample_image.id).order_by("id")

        assert [(row.width, row.height) for row in rows] == [(800, 600), (1024, 768)]
        assert str(rows[0]) == f"<Dimensions(image={sample_image.id}, 800x600)>"
