"""
Drawing predictions onto images.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

import cv2
import numpy as np

from models.detection import Detection
from .labels import Colour, class_name, colour_for_class

FONT = cv2.FONT_HERSHEY_SIMPLEX
TEXT_COLOUR = (0, 0, 0)
INFO_BG = (0, 0, 0)
INFO_FG = (255, 255, 255)


def detection_label(det: Detection, names: Sequence[str] = ()) -> str:
    """Label drawn above a box: the detection name plus track id when tracked."""
    label = det.name or class_name(det.class_id, names)
    if det.is_tracked:
        label += f" - {det.track_id}"
    return label


def position_label(det: Detection) -> Optional[str]:
    if det.position_3d is None:
        return None
    x, y, z = det.position_3d
    if any(np.isnan(v) for v in (x, y, z)):
        return None
    return f"x:{x:.2f}m y:{y:.2f}m z:{z:.2f}m"


def annotate_image(
    image: np.ndarray,
    detections: Iterable[Detection],
    names: Sequence[str] = (),
    colours: Sequence[Colour] = (),
    font_scale: float = 0.5,
    font_thickness: int = 1,
    duration_text: Optional[str] = None,
    include_timestamp: bool = False,
) -> np.ndarray:
    """
    Draw boxes and labels for each detection. The image is modified in place
    and returned.

    Args:
        image: BGR image to draw on.
        detections: Predictions in image pixel coordinates.
        names: Class names used when a detection has no label of its own.
        colours: Palette indexed by class id; empty uses class_id_to_colour().
        font_scale, font_thickness: OpenCV text parameters.
        duration_text: Drawn at the top-left when given.
        include_timestamp: Draw the current time at the bottom-left.
    """
    img_h, img_w = image.shape[:2]

    for det in detections:
        colour = colour_for_class(det.class_id, colours)
        x1, y1, x2, y2 = det.bbox.as_xyxy()
        cv2.rectangle(image, (x1, y1), (x2, y2), colour, 2)

        lines = [detection_label(det, names)]
        coords = position_label(det)
        if coords:
            lines.append(coords)

        sizes = [cv2.getTextSize(t, FONT, font_scale, font_thickness) for t in lines]
        line_h = max(th + bl for (_, th), bl in sizes) + 4
        bar_w = max(max(tw for (tw, _), _ in sizes) + 4, det.bbox.width + 2)
        bar_h = line_h * len(lines)

        top = max(y1 - bar_h, 0)
        left = max(x1 - 1, 0)
        right = min(x1 + bar_w, img_w - 1)
        bottom = min(top + bar_h, img_h - 1)
        cv2.rectangle(image, (left, top), (right, bottom), colour, -1)

        for i, (text, ((_, th), _)) in enumerate(zip(lines, sizes)):
            baseline_y = top + i * line_h + th + 2
            cv2.putText(image, text, (x1 + 2, baseline_y), FONT, font_scale,
                        TEXT_COLOUR, font_thickness, cv2.LINE_AA)

    if duration_text:
        _draw_info(image, duration_text, font_scale, font_thickness, at_top=True)
    if include_timestamp:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        _draw_info(image, stamp, font_scale, font_thickness, at_top=False)

    return image


def _draw_info(image: np.ndarray, text: str, font_scale: float, thickness: int, at_top: bool) -> None:
    """White text on a black box in the top-left or bottom-left corner."""
    img_h = image.shape[0]
    (tw, th), bl = cv2.getTextSize(text, FONT, font_scale, thickness)
    box_h = th + bl + 6
    top = 0 if at_top else max(img_h - box_h, 0)
    cv2.rectangle(image, (0, top), (tw + 6, top + box_h), INFO_BG, -1)
    cv2.putText(image, text, (3, top + th + 3), FONT, font_scale, INFO_FG, thickness, cv2.LINE_AA)


def draw_fps(image: np.ndarray, detect_fps: float, capture_fps: float) -> np.ndarray:
    """Overlay detection and capture rates; skipped when either is negative."""
    if detect_fps < 0 or capture_fps < 0:
        return image
    text = f"FPS detection: {int(detect_fps)}   FPS capture: {int(capture_fps)}"
    cv2.putText(image, text, (10, 20), cv2.FONT_HERSHEY_COMPLEX_SMALL, 1.2, (50, 255, 0), 2)
    return image
