from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class BoundingBox:
    x1: float
    y1: float
    x2: float
    y2: float

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)


@dataclass
class AnnotationSet:
    image_id: int
    annotations: list[BoundingBox] = field(default_factory=list)
    width: int | None = None
    height: int | None = None


@dataclass
class StoredBlob:
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class MultipartField:
    content_type: str
    data: bytes
    name: str | None = None
    filename: str | None = None


class UploadStatus(str, Enum):
    STORED = "stored"
    RESERVATION_FAILED = "reservation_failed"
    ROLLED_BACK = "rolled_back"
    RECONCILIATION_FAILED = "reconciliation_failed"


@dataclass
class UploadOutcome:
    status: UploadStatus
    image_id: int | None = None
    error_message: str | None = None

    @property
    def is_stored(self) -> bool:
        return self.status == UploadStatus.STORED

    @property
    def left_orphan(self) -> bool:
        """True when a metadata row was left behind without a blob."""
        return self.status == UploadStatus.RECONCILIATION_FAILED
