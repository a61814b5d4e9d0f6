"""
Inference backend interface.

Backends wrap an external inference library and return detections in the
original frame's pixel coordinates.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

import numpy as np

from models.detection import Detection


class DetectorBackend(Protocol):
    @property
    def names(self) -> List[str]:
        """Class names known to the model itself; may be empty."""
        ...

    def detect(self, frame: np.ndarray, threshold: Optional[float] = None) -> List[Detection]:
        ...
