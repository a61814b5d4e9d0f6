"""
OpenCV-based observation source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- RTSP/IP cameras (device_id as str URL)
- Video files (device_id as file path)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse

import cv2
import numpy as np

from models.config import SourceConfig
from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


def mask_credentials(device_id: Union[int, str]) -> str:
    """Hide the password of a stream URL for logging."""
    if not isinstance(device_id, str) or "://" not in device_id:
        return str(device_id)
    parsed = urlparse(device_id)
    if not parsed.password:
        return device_id
    netloc = f"{parsed.username}:***@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return parsed._replace(netloc=netloc).geturl()


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int), stream URL (str), or file path (str).
        rtsp_transport: Transport protocol for RTSP ("tcp" or "udp").
        buffer_size: OpenCV capture buffer size (reduces latency for live feeds).
        max_retries: Maximum attempts when opening the device.
        flip_horizontal: Mirror frames left-right.
        flip_vertical: Mirror frames top-bottom.
    """
    device_id: Union[int, str] = 0
    rtsp_transport: str = "tcp"
    buffer_size: int = 1
    max_retries: int = 3
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_source_config(cls, cfg: SourceConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        device_id = cfg.device_id
        # "0" from the command line means camera index 0
        if isinstance(device_id, str) and device_id.isdigit():
            device_id = int(device_id)
        return cls(
            source_id=source_id,
            resolution=tuple(cfg.resolution) if cfg.resolution else None,
            fps=cfg.fps,
            device_id=device_id,
            rtsp_transport=cfg.rtsp_transport,
            max_retries=cfg.max_retries,
            flip_horizontal=cfg.flip_horizontal,
            flip_vertical=cfg.flip_vertical,
        )


class OpenCVSource(ObservationSource):
    """
    Wraps cv2.VideoCapture to provide frames as FrameData objects, with
    reconnection for camera streams.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._consecutive_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_rtsp(self) -> bool:
        return isinstance(self.device_id, str) and self.device_id.startswith(("rtsp://", "rtsps://"))

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and not self.is_rtsp and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        self._initialize(retry_count=0)
        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={mask_credentials(self.device_id)}"
        )

    def _initialize(self, retry_count: int = 0) -> None:
        """Open or reopen the capture device, backing off between attempts."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

        if retry_count > 0:
            wait_time = min(2 ** retry_count, 10)
            logging.info(
                f"Retrying open (attempt {retry_count + 1}/"
                f"{self._opencv_config.max_retries}) after {wait_time}s"
            )
            time.sleep(wait_time)

        if self.is_rtsp:
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = (
                f"rtsp_transport;{self._opencv_config.rtsp_transport}"
            )

        self._cap = cv2.VideoCapture(self.device_id)

        if not self._cap.isOpened():
            if retry_count < self._opencv_config.max_retries - 1:
                logging.warning(f"Failed to open device {mask_credentials(self.device_id)}, retrying...")
                return self._initialize(retry_count + 1)
            raise RuntimeError(
                f"Failed to open device {mask_credentials(self.device_id)} after "
                f"{self._opencv_config.max_retries} attempts"
            )

        # Resolution/fps only apply to local cameras
        if isinstance(self.device_id, int):
            if self._opencv_config.resolution:
                w, h = self._opencv_config.resolution
                self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._opencv_config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._opencv_config.buffer_size)

        self._consecutive_failures = 0

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()

        if not ret or frame is None:
            self._consecutive_failures += 1

            if self.is_file:
                logging.info("End of video file reached")
                return None

            if self._consecutive_failures > 3:
                # Give up on this read only; the next one starts a fresh reconnect cycle
                logging.error("Too many consecutive read failures")
                self._consecutive_failures = 0
                return None

            logging.warning(
                f"Failed to read frame (failures: {self._consecutive_failures}), reinitializing..."
            )
            try:
                self._initialize()
            except RuntimeError:
                logging.error("Reinitialization failed")
                return None
            ret, frame = self._cap.read()
            if not ret or frame is None:
                return None

        self._consecutive_failures = 0
        frame = self._apply_flip(frame)
        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _apply_flip(self, frame: np.ndarray) -> np.ndarray:
        cfg = self._opencv_config
        if cfg.flip_horizontal and cfg.flip_vertical:
            return cv2.flip(frame, -1)
        if cfg.flip_horizontal:
            return cv2.flip(frame, 1)
        if cfg.flip_vertical:
            return cv2.flip(frame, 0)
        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False

    def get_fps(self) -> float:
        """Frame rate reported by the device; 0.0 when unknown."""
        if self._cap is None:
            return float(self._opencv_config.fps or 0.0)
        return float(self._cap.get(cv2.CAP_PROP_FPS) or 0.0)
