"""
Ultralytics inference backend.

Uses Ultralytics if installed. Any model file the YOLO class accepts works
here (.pt, .onnx, exported engines). With `track` set, frames go through
the model tracker and each detection carries its track id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from models.detection import BoundingBox, Detection
from .backend import DetectorBackend


@dataclass(frozen=True)
class UltralyticsConfig:
    model: str
    threshold: float = 0.5
    nms_threshold: float = 0.45
    classes: Optional[Sequence[int]] = None
    track: bool = False


def _to_numpy(value) -> np.ndarray:
    return value.cpu().numpy() if hasattr(value, "cpu") else np.asarray(value)


class UltralyticsBackend(DetectorBackend):
    def __init__(self, cfg: UltralyticsConfig):
        self.cfg = cfg
        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or switch detector.backend to 'darknet'."
            ) from e

        self._model = YOLO(cfg.model)
        logging.info(f"Ultralytics model loaded: {cfg.model}")

    @property
    def names(self) -> List[str]:
        names = getattr(self._model, "names", None) or {}
        if isinstance(names, dict):
            return [str(names[k]) for k in sorted(names)]
        return [str(n) for n in names]

    def detect(self, frame: np.ndarray, threshold: Optional[float] = None) -> List[Detection]:
        conf = self.cfg.threshold if threshold is None else threshold
        # track() keeps tracker state between calls; predict() never assigns ids
        run = self._model.track if self.cfg.track else self._model.predict
        extra = {"persist": True} if self.cfg.track else {}
        results = run(
            source=frame,
            conf=conf,
            iou=self.cfg.nms_threshold,
            classes=list(self.cfg.classes) if self.cfg.classes is not None else None,
            verbose=False,
            **extra,
        )
        if not results:
            return []

        boxes = getattr(results[0], "boxes", None)
        if boxes is None:
            return []

        xyxy = _to_numpy(boxes.xyxy)
        scores = _to_numpy(boxes.conf)
        cls = _to_numpy(boxes.cls)
        ids = getattr(boxes, "id", None)
        track_ids = _to_numpy(ids) if ids is not None else [None] * len(xyxy)

        image_h, image_w = frame.shape[:2]
        out: List[Detection] = []
        for (x1, y1, x2, y2), score, k, tid in zip(xyxy, scores, cls, track_ids):
            class_id = int(k)
            bbox = BoundingBox.from_xyxy(float(x1), float(y1), float(x2), float(y2))
            out.append(
                Detection(
                    bbox=bbox,
                    class_id=class_id,
                    confidence=float(score),
                    all_probabilities={class_id: float(score)},
                    mid_x=bbox.center[0] / image_w,
                    mid_y=bbox.center[1] / image_h,
                    width=bbox.width / image_w,
                    height=bbox.height / image_h,
                    track_id=int(tid) if tid is not None else None,
                )
            )

        return out
