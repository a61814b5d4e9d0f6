"""
Observation layer for pluggable video sources.

Each source implements the ObservationSource interface and returns FrameData
objects.
"""

from models.config import SourceConfig
from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, mask_credentials


def create_source_from_config(source_cfg: SourceConfig, source_id: str = "main-camera") -> ObservationSource:
    """Build an OpenCV source for a camera index, stream URL or video file."""
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg, source_id=source_id))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "mask_credentials",
    "create_source_from_config",
]
