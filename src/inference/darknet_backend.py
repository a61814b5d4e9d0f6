"""
Darknet inference backend using OpenCV's DNN module.

Loads a network from a Darknet .cfg/.weights pair with
cv2.dnn.readNetFromDarknet and decodes the YOLO output layers into
Detection objects.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import cv2
import numpy as np

from models.detection import BoundingBox, Detection
from .backend import DetectorBackend


@dataclass(frozen=True)
class DarknetConfig:
    config_file: str
    weights_file: str
    threshold: float = 0.5
    nms_threshold: float = 0.45
    input_size: int = 416
    classes: Optional[Sequence[int]] = None


class DarknetDnnBackend(DetectorBackend):
    def __init__(self, cfg: DarknetConfig):
        for path in (cfg.config_file, cfg.weights_file):
            if not path or not os.path.exists(path):
                raise FileNotFoundError(f"Darknet file not found: {path!r}")

        self.cfg = cfg
        start = time.time()
        try:
            self._net = cv2.dnn.readNetFromDarknet(cfg.config_file, cfg.weights_file)
        except cv2.error as e:
            raise RuntimeError(f"Failed to load Darknet network from {cfg.config_file}: {e}") from e
        self._net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        self._net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)
        self._output_names = list(self._net.getUnconnectedOutLayersNames())
        self.load_duration = time.time() - start
        logging.info(
            f"Darknet network loaded: cfg={cfg.config_file}, weights={cfg.weights_file}, "
            f"outputs={self._output_names} ({self.load_duration:.2f}s)"
        )

    @property
    def names(self) -> List[str]:
        # Darknet keeps class names in a separate .names file
        return []

    def detect(self, frame: np.ndarray, threshold: Optional[float] = None) -> List[Detection]:
        thresh = self.cfg.threshold if threshold is None else threshold
        image_h, image_w = frame.shape[:2]
        size = self.cfg.input_size

        blob = cv2.dnn.blobFromImage(frame, 1 / 255.0, (size, size), swapRB=True, crop=False)
        self._net.setInput(blob)
        outputs = self._net.forward(self._output_names)

        candidates: List[Detection] = []
        for output in outputs:
            output = np.asarray(output)
            for row in output.reshape(-1, output.shape[-1]):
                det = self._decode_row(row, thresh, image_w, image_h)
                if det is not None:
                    candidates.append(det)

        if not candidates:
            return []

        return [candidates[i] for i in self._suppress(candidates, thresh)]

    def _suppress(self, candidates: List[Detection], threshold: float) -> List[int]:
        """Non-maximum suppression per best class; overlapping boxes of different classes both survive."""
        by_class: Dict[int, List[int]] = {}
        for i, det in enumerate(candidates):
            by_class.setdefault(det.class_id, []).append(i)

        keep: List[int] = []
        for indices in by_class.values():
            boxes = [list(candidates[i].bbox.as_tuple()) for i in indices]
            scores = [candidates[i].confidence for i in indices]
            kept = cv2.dnn.NMSBoxes(boxes, scores, threshold, self.cfg.nms_threshold)
            keep.extend(indices[k] for k in np.array(kept).flatten().tolist())
        return sorted(keep)

    def _decode_row(
        self, row: np.ndarray, threshold: float, image_w: int, image_h: int
    ) -> Optional[Detection]:
        """Turn one [cx, cy, w, h, objectness, class scores...] row into a Detection."""
        scores = row[5:]
        probs: Dict[int, float] = {}
        for class_id in np.nonzero(scores >= threshold)[0]:
            prob = float(scores[class_id])
            if prob <= 0.0:
                continue
            if self.cfg.classes is not None and int(class_id) not in self.cfg.classes:
                continue
            probs[int(class_id)] = prob
        if not probs:
            return None

        best = max(probs, key=probs.get)
        mid_x, mid_y, w, h = (float(v) for v in row[:4])
        return Detection(
            bbox=BoundingBox.from_normalized(mid_x, mid_y, w, h, image_w, image_h),
            class_id=best,
            confidence=probs[best],
            all_probabilities=probs,
            mid_x=mid_x,
            mid_y=mid_y,
            width=w,
            height=h,
        )
