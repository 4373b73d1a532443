from pydantic import BaseModel, Field


class UploadAcceptedResponse(BaseModel):
    """Response model for an accepted multipart upload"""

    fields_dispatched: int = Field(
        ..., description="Number of fields handed to background uploads"
    )
    message: str = Field(..., description="Status message")


class RandomImageResponse(BaseModel):
    """An image that has no annotations yet"""

    image_id: int = Field(..., description="Image identifier")
    url: str = Field(..., description="Where to fetch the image bytes")
