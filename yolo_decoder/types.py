from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ConfigurationError

Box = Tuple[float, float, float, float]


@dataclass(frozen=True)
class PreprocessMeta:
    """
    Letterbox parameters used to build the network input.

    A model-space point (x, y) maps back to the original image as
    ((x - offset_x) / scale, (y - offset_y) / scale).
    """

    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self) -> None:
        if not self.scale > 0:
            raise ConfigurationError(f"PreprocessMeta.scale must be > 0 (got {self.scale!r})")


@dataclass(frozen=True)
class ClassLabel:
    name: str
    display_name: Optional[str] = None
    emoji: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name


@dataclass(frozen=True)
class Detection:
    """
    A labeled box in original-image pixel coordinates.

    The decoder emits these with `label=None` (as candidates); the pipeline
    attaches class metadata after suppression.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    anchor_index: int = -1
    label: Optional[ClassLabel] = None

    @property
    def bbox(self) -> Box:
        return self.x1, self.y1, self.x2, self.y2

    def as_xyxy(self) -> Box:
        return self.bbox


Candidate = Detection
