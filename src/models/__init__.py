"""
Typed models for the detection and annotation application.
"""

from .frame import FrameData, AnnotatedFrame
from .detection import Detection, BoundingBox, filter_by_threshold
from .config import (
    Config,
    DetectorConfig,
    AnnotationConfig,
    SourceConfig,
    StreamConfig,
)

__all__ = [
    # Frame
    "FrameData",
    "AnnotatedFrame",
    # Detection
    "Detection",
    "BoundingBox",
    "filter_by_threshold",
    # Config
    "Config",
    "DetectorConfig",
    "AnnotationConfig",
    "SourceConfig",
    "StreamConfig",
]
