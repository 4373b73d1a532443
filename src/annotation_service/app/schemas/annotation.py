from pydantic import BaseModel, Field

from ..services.domain import AnnotationSet, BoundingBox

# Largest value a 64-bit signed INTEGER column holds
MAX_DIMENSION = 2**63 - 1


class AnnotationBox(BaseModel):
    """One bounding box in canvas coordinates"""

    x1: float = Field(..., allow_inf_nan=False, description="Left edge")
    y1: float = Field(..., allow_inf_nan=False, description="Top edge")
    x2: float = Field(..., allow_inf_nan=False, description="Right edge")
    y2: float = Field(..., allow_inf_nan=False, description="Bottom edge")

    def to_domain(self) -> BoundingBox:
        return BoundingBox(x1=self.x1, y1=self.y1, x2=self.x2, y2=self.y2)

    @classmethod
    def from_domain(cls, box: BoundingBox) -> "AnnotationBox":
        return cls(x1=box.x1, y1=box.y1, x2=box.x2, y2=box.y2)


class AnnotationGroup(BaseModel):
    """Request model for replacing the annotations of an image"""

    annotations: list[AnnotationBox] = Field(
        default_factory=list,
        description="Complete annotation set; an empty list clears the image",
    )
    width: int = Field(
        ..., ge=0, le=MAX_DIMENSION, description="Canvas width used for the boxes"
    )
    height: int = Field(
        ..., ge=0, le=MAX_DIMENSION, description="Canvas height used for the boxes"
    )


class AnnotationSetResponse(BaseModel):
    """Current annotations of an image"""

    image_id: int = Field(..., description="Image identifier")
    annotations: list[AnnotationBox] = Field(..., description="Current annotation set")
    width: int | None = Field(None, description="Latest recorded canvas width")
    height: int | None = Field(None, description="Latest recorded canvas height")

    @classmethod
    def from_domain(cls, annotation_set: AnnotationSet) -> "AnnotationSetResponse":
        return cls(
            image_id=annotation_set.image_id,
            annotations=[
                AnnotationBox.from_domain(box) for box in annotation_set.annotations
            ],
            width=annotation_set.width,
            height=annotation_set.height,
        )
