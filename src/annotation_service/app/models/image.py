from tortoise import fields
from tortoise.models import Model


class Image(Model):
    id = fields.IntField(primary_key=True)

    created_at = fields.DatetimeField(
        auto_now_add=True, description="When the identifier was reserved"
    )

    annotations = fields.ReverseRelation["Annotation"]
    dimensions = fields.ReverseRelation["Dimensions"]

    class Meta:
        table = "images"

    @property
    def blob_key(self) -> str:
        return blob_key_for(self.id)

    def __str__(self) -> str:
        return f"<Image(id={self.id})>"


def blob_key_for(image_id: int) -> str:
    return f"image-{image_id}"
