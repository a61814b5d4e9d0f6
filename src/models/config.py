"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class DetectorConfig:
    """Detector backend configuration."""
    backend: str = "darknet"
    config_file: str = ""
    weights_file: str = ""
    names_file: str = ""
    threshold: float = 0.5
    nms_threshold: float = 0.45
    input_size: int = 416
    classes: Optional[List[int]] = None
    # Ultralytics only: run the model tracker so detections carry track ids
    track: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            backend=d.get("backend", "darknet"),
            config_file=d.get("config_file", ""),
            weights_file=d.get("weights_file", ""),
            names_file=d.get("names_file", ""),
            threshold=float(d.get("threshold", 0.5)),
            nms_threshold=float(d.get("nms_threshold", 0.45)),
            input_size=int(d.get("input_size", 416)),
            classes=d.get("classes"),
            track=bool(d.get("track", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "config_file": self.config_file,
            "weights_file": self.weights_file,
            "names_file": self.names_file,
            "threshold": self.threshold,
            "nms_threshold": self.nms_threshold,
            "input_size": self.input_size,
            "track": self.track,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        return d


@dataclass
class AnnotationConfig:
    """How predictions are drawn and labelled."""
    font_scale: float = 0.5
    font_thickness: int = 1
    include_duration: bool = True
    include_timestamp: bool = False
    names_include_percentage: bool = True
    include_all_names: bool = True
    # BGR triples; None means the built-in palette
    colours: Optional[List[Tuple[int, int, int]]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnnotationConfig":
        colours = d.get("colours")
        if colours is not None:
            colours = [tuple(int(c) for c in colour) for colour in colours]
        return cls(
            font_scale=float(d.get("font_scale", 0.5)),
            font_thickness=int(d.get("font_thickness", 1)),
            include_duration=d.get("include_duration", True),
            include_timestamp=d.get("include_timestamp", False),
            names_include_percentage=d.get("names_include_percentage", True),
            include_all_names=d.get("include_all_names", True),
            colours=colours,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "font_scale": self.font_scale,
            "font_thickness": self.font_thickness,
            "include_duration": self.include_duration,
            "include_timestamp": self.include_timestamp,
            "names_include_percentage": self.names_include_percentage,
            "include_all_names": self.include_all_names,
        }
        if self.colours is not None:
            d["colours"] = [list(c) for c in self.colours]
        return d


@dataclass
class SourceConfig:
    """Video source configuration (stream mode)."""
    device_id: Union[int, str] = 0
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None
    rtsp_transport: str = "tcp"
    max_retries: int = 3
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution"),
            fps=d.get("fps"),
            rtsp_transport=d.get("rtsp_transport", "tcp"),
            max_retries=d.get("max_retries", 3),
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "device_id": self.device_id,
            "rtsp_transport": self.rtsp_transport,
            "max_retries": self.max_retries,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }
        if self.resolution is not None:
            d["resolution"] = self.resolution
        if self.fps is not None:
            d["fps"] = self.fps
        return d


@dataclass
class StreamConfig:
    """
    Stream pipeline configuration.

    blocking_frames=False lets capture overwrite frames the detector has not
    picked up yet; blocking_results=True makes the detector wait until the
    consumer has taken the previous result.
    """
    blocking_frames: bool = False
    blocking_results: bool = True
    receive_timeout: float = 0.1
    display: bool = False
    record_path: Optional[str] = None
    print_results: bool = False
    max_consecutive_failures: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StreamConfig":
        return cls(
            blocking_frames=d.get("blocking_frames", False),
            blocking_results=d.get("blocking_results", True),
            receive_timeout=float(d.get("receive_timeout", 0.1)),
            display=d.get("display", False),
            record_path=d.get("record_path"),
            print_results=d.get("print_results", False),
            max_consecutive_failures=d.get("max_consecutive_failures", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "blocking_frames": self.blocking_frames,
            "blocking_results": self.blocking_results,
            "receive_timeout": self.receive_timeout,
            "display": self.display,
            "print_results": self.print_results,
            "max_consecutive_failures": self.max_consecutive_failures,
        }
        if self.record_path is not None:
            d["record_path"] = self.record_path
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    annotation: AnnotationConfig = field(default_factory=AnnotationConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    log_path: str = "logs/yolo_annotator.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            detector=DetectorConfig.from_dict(d.get("detector", {}) or {}),
            annotation=AnnotationConfig.from_dict(d.get("annotation", {}) or {}),
            source=SourceConfig.from_dict(d.get("source", {}) or {}),
            stream=StreamConfig.from_dict(d.get("stream", {}) or {}),
            log_path=d.get("log_path", "logs/yolo_annotator.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detector": self.detector.to_dict(),
            "annotation": self.annotation.to_dict(),
            "source": self.source.to_dict(),
            "stream": self.stream.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
