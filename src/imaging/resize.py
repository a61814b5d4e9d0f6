"""
Aspect-ratio preserving resize.
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np


def resize_keeping_aspect_ratio(image: np.ndarray, desired_size: Tuple[int, int]) -> np.ndarray:
    """
    Resize image to fit within desired_size (width, height) without changing
    its aspect ratio.

    No resizing is done if the image is empty or already the desired size.
    For example a 640x480 image with a desired size of 400x400 becomes 400x300.

    Raises:
        ValueError: desired_size has a non-positive dimension.
    """
    desired_w, desired_h = int(desired_size[0]), int(desired_size[1])
    if desired_w <= 0 or desired_h <= 0:
        raise ValueError(f"desired size must be positive, got {desired_size}")

    if image is None or image.size == 0:
        return image

    h, w = image.shape[:2]
    if w == desired_w and h == desired_h:
        return image

    ratio = min(desired_w / w, desired_h / h)
    new_w = min(desired_w, max(1, int(round(w * ratio))))
    new_h = min(desired_h, max(1, int(round(h * ratio))))
    if new_w == w and new_h == h:
        return image

    interpolation = cv2.INTER_CUBIC if ratio > 1.0 else cv2.INTER_AREA
    return cv2.resize(image, (new_w, new_h), interpolation=interpolation)
