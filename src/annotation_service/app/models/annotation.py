from tortoise import fields
from tortoise.models import Model


class Annotation(Model):
    id = fields.IntField(primary_key=True)
    image = fields.ForeignKeyField(
        "models.Image",
        related_name="annotations",
        on_delete=fields.NO_ACTION,
        db_constraint=False,
    )
    x1 = fields.FloatField(description="Left edge in canvas coordinates")
    y1 = fields.FloatField(description="Top edge in canvas coordinates")
    x2 = fields.FloatField(description="Right edge in canvas coordinates")
    y2 = fields.FloatField(description="Bottom edge in canvas coordinates")

    class Meta:
        table = "annotations"

    def __str__(self) -> str:
        return (
            f"<Annotation(id={self.id}, image={self.image_id}, "
            f"box=({self.x1}, {self.y1}, {self.x2}, {self.y2}))>"
        )


class Dimensions(Model):
    id = fields.IntField(primary_key=True)
    image = fields.ForeignKeyField(
        "models.Image",
        related_name="dimensions",
        on_delete=fields.NO_ACTION,
        db_constraint=False,
    )
    width = fields.IntField(description="Canvas width the annotations refer to")
    height = fields.IntField(description="Canvas height the annotations refer to")

    class Meta:
        table = "dimensions"

    def __str__(self) -> str:
        return f"<Dimensions(image={self.image_id}, {self.width}x{self.height})>"
