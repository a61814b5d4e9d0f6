"""
Frame models passed between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .detection import Detection


@dataclass
class FrameData:
    """
    A captured video frame and its capture metadata.

    Attributes:
        frame: The raw frame data as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the camera/video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)


@dataclass
class AnnotatedFrame:
    """
    Output of the detection stage for one frame.

    Attributes:
        frame_data: The frame the detector ran on.
        detections: Predictions for that frame.
        annotated: Copy of the frame with boxes and labels drawn.
        duration: Seconds spent in the detector.
    """
    frame_data: FrameData
    detections: List[Detection] = field(default_factory=list)
    annotated: Optional[np.ndarray] = None
    duration: float = 0.0

    @property
    def frame_index(self) -> int:
        return self.frame_data.frame_index
