"""
DetectionHelper: predict/annotate facade over a detector backend.

Example:
    helper = DetectionHelper.from_config(DetectorConfig(
        config_file="yolov3-tiny.cfg",
        weights_file="yolov3-tiny.weights",
        names_file="coco.names",
    ))
    for filename in ("image_0.jpg", "image_1.jpg"):
        results = helper.predict(filename)
        print(format_results(results))
        cv2.imshow("prediction", helper.annotate())
        cv2.waitKey()
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Union

import cv2
import numpy as np

from inference import DetectorBackend, create_backend
from models.config import AnnotationConfig, DetectorConfig
from models.detection import Detection, filter_by_threshold
from .annotate import annotate_image
from .labels import default_annotation_colours, format_label
from .names import load_names


class DetectionHelper:
    """
    Runs a detector backend on images and keeps the most recent image,
    results and timing so they can be annotated or reported.

    Attributes:
        names: Class names used for labels.
        threshold: Prediction threshold (0-1).
        prediction_results: Results of the latest predict().
        original_image: Image handled by the latest predict().
        annotated_image: Output of the latest annotate().
        duration: Seconds the latest predict() spent in the backend.
    """

    def __init__(
        self,
        backend: DetectorBackend,
        names: Optional[Sequence[str]] = None,
        threshold: float = 0.5,
        annotation: Optional[AnnotationConfig] = None,
    ):
        self.backend = backend
        self.names: List[str] = list(names) if names else list(getattr(backend, "names", []) or [])
        self.threshold = 0.5
        self._set_threshold(threshold)
        self.annotation = annotation or AnnotationConfig()
        self.annotation_colours = list(self.annotation.colours or default_annotation_colours())

        self.prediction_results: List[Detection] = []
        self.original_image: Optional[np.ndarray] = None
        self.annotated_image: Optional[np.ndarray] = None
        self.duration: float = 0.0

    @classmethod
    def from_config(
        cls, detector_cfg: DetectorConfig, annotation_cfg: Optional[AnnotationConfig] = None
    ) -> "DetectionHelper":
        backend = create_backend(detector_cfg)
        names = load_names(detector_cfg.names_file) if detector_cfg.names_file else None
        return cls(backend, names=names, threshold=detector_cfg.threshold, annotation=annotation_cfg)

    def _set_threshold(self, new_threshold: float) -> None:
        """Negative keeps the current threshold; otherwise it must be within [0, 1]."""
        if new_threshold < 0:
            return
        if new_threshold > 1.0:
            raise ValueError(f"threshold must be -1 or between 0.0 and 1.0, got {new_threshold}")
        self.threshold = float(new_threshold)

    def predict(self, image: Union[str, np.ndarray], new_threshold: float = -1.0) -> List[Detection]:
        """
        Run the detector on an image array or an image file.

        Raises:
            FileNotFoundError: image is a path OpenCV cannot read.
            ValueError: new_threshold is above 1.0.
        """
        self._set_threshold(new_threshold)

        if isinstance(image, str):
            mat = cv2.imread(image)
            if mat is None:
                raise FileNotFoundError(f"Failed to load image: {image}")
        else:
            mat = image
        if mat is None or mat.size == 0:
            raise ValueError("Cannot predict on an empty image")

        self.original_image = mat
        self.annotated_image = None

        start = time.perf_counter()
        detections = self.backend.detect(mat, threshold=self.threshold)
        self.duration = time.perf_counter() - start

        self.prediction_results = [self._relabel(d) for d in detections]
        logging.debug(
            f"Predicted {len(self.prediction_results)} objects in {self.duration_string()}"
        )
        return self.prediction_results

    def _relabel(self, det: Detection) -> Detection:
        label = format_label(
            det.probabilities(),
            self.names,
            include_percentage=self.annotation.names_include_percentage,
            include_all=self.annotation.include_all_names,
        )
        return det.with_name(label)

    def annotate(self, new_threshold: float = -1.0) -> np.ndarray:
        """
        Draw the latest results onto a copy of the latest image.

        Lowering the threshold here cannot bring back predictions that
        predict() already dropped.

        Raises:
            RuntimeError: predict() has not been called yet.
        """
        if self.original_image is None:
            raise RuntimeError("annotate() called before predict()")
        self._set_threshold(new_threshold)

        cfg = self.annotation
        self.annotated_image = annotate_image(
            self.original_image.copy(),
            filter_by_threshold(self.prediction_results, self.threshold),
            names=self.names,
            colours=self.annotation_colours,
            font_scale=cfg.font_scale,
            font_thickness=cfg.font_thickness,
            duration_text=self.duration_string() if cfg.include_duration else None,
            include_timestamp=cfg.include_timestamp,
        )
        return self.annotated_image

    def duration_string(self) -> str:
        micros = int(self.duration * 1_000_000)
        if micros < 1000:
            return f"{micros} microseconds"
        if micros < 1_000_000:
            return f"{micros // 1000} milliseconds"
        return f"{self.duration:.3f} seconds"
