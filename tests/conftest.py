"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
detector:
  backend: "darknet"
  config_file: "models/yolov4-tiny.cfg"
  weights_file: "models/yolov4-tiny.weights"
  names_file: "models/coco.names"
  threshold: 0.5
  nms_threshold: 0.45
  input_size: 416

annotation:
  font_scale: 0.5
  font_thickness: 1

source:
  device_id: 0
  resolution: [640, 480]
  fps: 30

stream:
  blocking_frames: false
  blocking_results: true

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "detector": {
            "backend": "darknet",
            "config_file": "models/yolov4-tiny.cfg",
            "weights_file": "models/yolov4-tiny.weights",
            "names_file": "models/coco.names",
            "threshold": 0.5,
            "nms_threshold": 0.45,
            "input_size": 416,
        },
        "annotation": {
            "font_scale": 0.5,
            "font_thickness": 1,
        },
        "source": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "stream": {
            "blocking_frames": False,
            "blocking_results": True,
            "receive_timeout": 0.1,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def names():
    return ["car", "person", "truck", "bus"]


@pytest.fixture
def names_file(tmp_path, names):
    path = tmp_path / "test.names"
    path.write_text("\n".join(names) + "\n\n")
    return str(path)


@pytest.fixture
def blank_image():
    """640x480 black BGR image."""
    return np.zeros((480, 640, 3), dtype=np.uint8)
