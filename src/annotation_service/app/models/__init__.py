from .annotation import Annotation, Dimensions
from .image import Image, blob_key_for

__all__ = [
    "Image",
    "Annotation",
    "Dimensions",
    "blob_key_for",
]
