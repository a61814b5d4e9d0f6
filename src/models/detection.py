"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A rectangle in pixel coordinates of the original image.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Rectangle width in pixels.
        height: Rectangle height in pixels.
    """
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x, self.y, self.x2, self.y2)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from corner coordinates, rounding to whole pixels."""
        left, top = int(round(x1)), int(round(y1))
        return cls(
            x=left,
            y=top,
            width=max(0, int(round(x2)) - left),
            height=max(0, int(round(y2)) - top),
        )

    @classmethod
    def from_normalized(
        cls,
        mid_x: float,
        mid_y: float,
        width: float,
        height: float,
        image_width: int,
        image_height: int,
    ) -> "BoundingBox":
        """
        Create from a normalized centre-point box (0..1), clipped to the image.
        """
        w = width * image_width
        h = height * image_height
        x1 = max(0.0, mid_x * image_width - w / 2)
        y1 = max(0.0, mid_y * image_height - h / 2)
        x2 = min(float(image_width), mid_x * image_width + w / 2)
        y2 = min(float(image_height), mid_y * image_height + h / 2)
        return cls.from_xyxy(x1, y1, x2, y2)


@dataclass(frozen=True)
class Detection:
    """
    A single object found in an image.

    Attributes:
        bbox: Where the object is, in original image pixels.
        class_id: Zero-based index of the class with the highest probability.
        confidence: Probability of that best class (0-1).
        all_probabilities: Every non-zero class/probability pair that passed
            the threshold, keyed by class index. Includes class_id.
        name: Display label, e.g. "car 80%, truck 60%".
        mid_x: Normalized centre x as reported by the detector.
        mid_y: Normalized centre y as reported by the detector.
        width: Normalized width as reported by the detector.
        height: Normalized height as reported by the detector.
        track_id: Tracking identifier; None or <= 0 when untracked.
        position_3d: Estimated (x, y, z) position in metres.
    """
    bbox: BoundingBox
    class_id: int
    confidence: float
    all_probabilities: Dict[int, float] = field(default_factory=dict)
    name: str = ""
    mid_x: Optional[float] = None
    mid_y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    track_id: Optional[int] = None
    position_3d: Optional[Tuple[float, float, float]] = None

    @property
    def best_class(self) -> int:
        return self.class_id

    @property
    def best_probability(self) -> float:
        return self.confidence

    @property
    def is_tracked(self) -> bool:
        return self.track_id is not None and self.track_id > 0

    def probabilities(self) -> Dict[int, float]:
        """All class probabilities, always containing the best class."""
        if self.class_id in self.all_probabilities:
            return dict(self.all_probabilities)
        probs = dict(self.all_probabilities)
        probs[self.class_id] = self.confidence
        return probs

    def with_name(self, name: str) -> "Detection":
        return replace(self, name=name)


def filter_by_threshold(detections: List[Detection], threshold: float) -> List[Detection]:
    """Keep detections whose best probability is at least threshold."""
    return [d for d in detections if d.confidence >= threshold]
