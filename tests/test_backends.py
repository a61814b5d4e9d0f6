"""
Tests for detector backends and the backend factory.
"""

import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from inference import DarknetConfig, DarknetDnnBackend, create_backend
from models.config import DetectorConfig


@pytest.fixture
def darknet_files(tmp_path):
    cfg = tmp_path / "net.cfg"
    weights = tmp_path / "net.weights"
    cfg.write_text("[net]\n")
    weights.write_bytes(b"\x00" * 16)
    return str(cfg), str(weights)


def yolo_output():
    """Rows of [cx, cy, w, h, objectness, car, person, truck, bus]."""
    return np.array([
        # truck with a weaker bus score
        [0.50, 0.50, 0.20, 0.20, 0.9, 0.0, 0.0, 0.9, 0.6],
        # almost the same box, lower score: removed by NMS
        [0.51, 0.50, 0.20, 0.20, 0.8, 0.0, 0.0, 0.8, 0.0],
        # separate car
        [0.10, 0.10, 0.10, 0.10, 0.7, 0.7, 0.0, 0.0, 0.0],
        # below threshold
        [0.80, 0.80, 0.10, 0.10, 0.3, 0.3, 0.0, 0.0, 0.0],
    ], dtype=np.float32)


def make_darknet(darknet_files, rows=None, **kwargs):
    net = MagicMock()
    net.getUnconnectedOutLayersNames.return_value = ("yolo_16", "yolo_23")
    net.forward.return_value = [yolo_output() if rows is None else np.array(rows, dtype=np.float32)]
    config_file, weights_file = darknet_files
    cfg = DarknetConfig(config_file=config_file, weights_file=weights_file, **kwargs)
    with patch("inference.darknet_backend.cv2.dnn.readNetFromDarknet", return_value=net) as read:
        backend = DarknetDnnBackend(cfg)
    read.assert_called_once_with(config_file, weights_file)
    return backend, net


class TestDarknetBackend:
    def test_missing_files(self, tmp_path):
        cfg = DarknetConfig(config_file=str(tmp_path / "a.cfg"), weights_file=str(tmp_path / "a.weights"))
        with pytest.raises(FileNotFoundError):
            DarknetDnnBackend(cfg)

    def test_detect_threshold_and_nms(self, darknet_files, blank_image):
        backend, net = make_darknet(darknet_files)
        results = backend.detect(blank_image)

        net.forward.assert_called_once_with(["yolo_16", "yolo_23"])
        assert [d.class_id for d in results] == [2, 0]

        truck = results[0]
        assert truck.confidence == pytest.approx(0.9)
        assert set(truck.all_probabilities) == {2, 3}
        assert truck.all_probabilities[3] == pytest.approx(0.6)
        assert truck.bbox.as_tuple() == (256, 192, 128, 96)
        assert truck.mid_x == pytest.approx(0.5)

    def test_detect_threshold_override(self, darknet_files, blank_image):
        backend, _ = make_darknet(darknet_files)
        assert backend.detect(blank_image, threshold=0.95) == []

    def test_low_threshold_keeps_more(self, darknet_files, blank_image):
        backend, _ = make_darknet(darknet_files)
        results = backend.detect(blank_image, threshold=0.2)
        assert len(results) == 3

    def test_class_filter(self, darknet_files, blank_image):
        backend, _ = make_darknet(darknet_files, classes=[0])
        results = backend.detect(blank_image)
        assert [d.class_id for d in results] == [0]

    def test_names_empty(self, darknet_files):
        backend, _ = make_darknet(darknet_files)
        assert backend.names == []

    def test_overlapping_boxes_of_different_classes_both_kept(self, darknet_files, blank_image):
        rows = [
            # car
            [0.50, 0.50, 0.30, 0.40, 0.8, 0.8, 0.0, 0.0, 0.0],
            # person in nearly the same place
            [0.51, 0.50, 0.30, 0.40, 0.9, 0.0, 0.9, 0.0, 0.0],
        ]
        backend, _ = make_darknet(darknet_files, rows=rows)

        results = backend.detect(blank_image)

        assert [d.class_id for d in results] == [0, 1]
        assert [d.confidence for d in results] == pytest.approx([0.8, 0.9])

    def test_unreadable_network_raises_runtime_error(self, darknet_files):
        config_file, weights_file = darknet_files
        cfg = DarknetConfig(config_file=config_file, weights_file=weights_file)
        with patch(
            "inference.darknet_backend.cv2.dnn.readNetFromDarknet",
            side_effect=cv2.error("Failed to parse NetParameter file"),
        ):
            with pytest.raises(RuntimeError, match="Failed to load Darknet network"):
                DarknetDnnBackend(cfg)


class TestOpenCVDependency:
    def test_darknet_importer_available(self):
        # Darknet .cfg/.weights loading is only in the OpenCV 4.x dnn module
        assert hasattr(cv2.dnn, "readNetFromDarknet")
        assert cv2.__version__.split(".")[0] == "4"


def fake_ultralytics(names=None, boxes=None):
    model = MagicMock()
    model.names = names if names is not None else {0: "car", 1: "person"}
    model.predict.return_value = [SimpleNamespace(boxes=boxes)]
    model.track.return_value = [SimpleNamespace(boxes=boxes)]
    module = MagicMock()
    module.YOLO.return_value = model
    return module, model


class TestUltralyticsBackend:
    def test_detect(self, blank_image):
        boxes = SimpleNamespace(
            xyxy=np.array([[10.0, 20.0, 110.0, 70.0]]),
            conf=np.array([0.8]),
            cls=np.array([1.0]),
            id=np.array([7.0]),
        )
        module, model = fake_ultralytics(boxes=boxes)
        with patch.dict(sys.modules, {"ultralytics": module}):
            from inference.ultralytics_backend import UltralyticsBackend, UltralyticsConfig

            backend = UltralyticsBackend(UltralyticsConfig(model="yolov8n.pt", nms_threshold=0.5, classes=[1]))

        module.YOLO.assert_called_once_with("yolov8n.pt")
        assert backend.names == ["car", "person"]

        results = backend.detect(blank_image, threshold=0.4)
        _, kwargs = model.predict.call_args
        assert kwargs["conf"] == 0.4
        assert kwargs["iou"] == 0.5
        assert kwargs["classes"] == [1]

        assert len(results) == 1
        det = results[0]
        assert det.class_id == 1
        assert det.confidence == pytest.approx(0.8)
        assert det.bbox.as_tuple() == (10, 20, 100, 50)
        assert det.track_id == 7
        assert det.mid_x == pytest.approx(60 / 640)

    def test_no_boxes(self, blank_image):
        module, _ = fake_ultralytics(boxes=None)
        with patch.dict(sys.modules, {"ultralytics": module}):
            from inference.ultralytics_backend import UltralyticsBackend, UltralyticsConfig

            backend = UltralyticsBackend(UltralyticsConfig(model="m.pt"))
        assert backend.detect(blank_image) == []

    def test_untracked_boxes(self, blank_image):
        boxes = SimpleNamespace(
            xyxy=np.array([[0.0, 0.0, 10.0, 10.0]]),
            conf=np.array([0.9]),
            cls=np.array([0.0]),
            id=None,
        )
        module, _ = fake_ultralytics(boxes=boxes)
        with patch.dict(sys.modules, {"ultralytics": module}):
            from inference.ultralytics_backend import UltralyticsBackend, UltralyticsConfig

            backend = UltralyticsBackend(UltralyticsConfig(model="m.pt"))
        det = backend.detect(blank_image)[0]
        assert det.track_id is None
        assert det.is_tracked is False

    def test_track_mode_assigns_ids(self, blank_image):
        boxes = SimpleNamespace(
            xyxy=np.array([[0.0, 0.0, 10.0, 10.0], [50.0, 50.0, 90.0, 80.0]]),
            conf=np.array([0.9, 0.7]),
            cls=np.array([0.0, 1.0]),
            id=np.array([3.0, 4.0]),
        )
        module, model = fake_ultralytics(boxes=boxes)
        with patch.dict(sys.modules, {"ultralytics": module}):
            from inference.ultralytics_backend import UltralyticsBackend, UltralyticsConfig

            backend = UltralyticsBackend(UltralyticsConfig(model="m.pt", track=True))
        results = backend.detect(blank_image)

        model.predict.assert_not_called()
        _, kwargs = model.track.call_args
        assert kwargs["persist"] is True
        assert kwargs["source"] is blank_image
        assert [d.track_id for d in results] == [3, 4]
        assert all(d.is_tracked for d in results)

    def test_predict_mode_does_not_track(self, blank_image):
        module, model = fake_ultralytics(boxes=None)
        with patch.dict(sys.modules, {"ultralytics": module}):
            from inference.ultralytics_backend import UltralyticsBackend, UltralyticsConfig

            backend = UltralyticsBackend(UltralyticsConfig(model="m.pt"))
        backend.detect(blank_image)

        model.track.assert_not_called()
        assert "persist" not in model.predict.call_args[1]

    def test_list_names(self):
        module, _ = fake_ultralytics(names=["a", "b", "c"])
        with patch.dict(sys.modules, {"ultralytics": module}):
            from inference.ultralytics_backend import UltralyticsBackend, UltralyticsConfig

            backend = UltralyticsBackend(UltralyticsConfig(model="m.pt"))
        assert backend.names == ["a", "b", "c"]


class TestCreateBackend:
    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_backend(DetectorConfig(backend="magic"))

    def test_darknet_missing_files(self, tmp_path):
        cfg = DetectorConfig(config_file=str(tmp_path / "x.cfg"), weights_file=str(tmp_path / "x.weights"))
        with pytest.raises(FileNotFoundError):
            create_backend(cfg)

    def test_darknet(self, darknet_files):
        config_file, weights_file = darknet_files
        cfg = DetectorConfig(config_file=config_file, weights_file=weights_file, input_size=320, classes=[0, 2])
        with patch("inference.darknet_backend.cv2.dnn.readNetFromDarknet", return_value=MagicMock()):
            backend = create_backend(cfg)
        assert isinstance(backend, DarknetDnnBackend)
        assert backend.cfg.input_size == 320
        assert backend.cfg.classes == [0, 2]

    def test_ultralytics_uses_weights_file(self):
        module, _ = fake_ultralytics()
        with patch.dict(sys.modules, {"ultralytics": module}):
            create_backend(DetectorConfig(backend="ultralytics", weights_file="yolov8s.pt", threshold=0.3))
        module.YOLO.assert_called_once_with("yolov8s.pt")

    def test_ultralytics_track_option(self):
        module, _ = fake_ultralytics()
        with patch.dict(sys.modules, {"ultralytics": module}):
            backend = create_backend(DetectorConfig(backend="ultralytics", weights_file="yolov8s.pt", track=True))
        assert backend.cfg.track is True
