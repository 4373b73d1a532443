from .annotation import AnnotationBox, AnnotationGroup, AnnotationSetResponse
from .image import RandomImageResponse, UploadAcceptedResponse

__all__ = [
    "AnnotationBox",
    "AnnotationGroup",
    "AnnotationSetResponse",
    "RandomImageResponse",
    "UploadAcceptedResponse",
]
