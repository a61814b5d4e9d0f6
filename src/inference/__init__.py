"""
Detector backends and the factory that picks one from configuration.
"""

from __future__ import annotations

from models.config import DetectorConfig
from .backend import DetectorBackend
from .darknet_backend import DarknetConfig, DarknetDnnBackend


def create_backend(cfg: DetectorConfig) -> DetectorBackend:
    """
    Build the backend named by cfg.backend.

    Raises:
        ValueError: Unknown backend name.
    """
    backend = (cfg.backend or "darknet").lower()
    if backend == "darknet":
        return DarknetDnnBackend(
            DarknetConfig(
                config_file=cfg.config_file,
                weights_file=cfg.weights_file,
                threshold=cfg.threshold,
                nms_threshold=cfg.nms_threshold,
                input_size=cfg.input_size,
                classes=cfg.classes,
            )
        )
    if backend == "ultralytics":
        # Imported here so the darknet path works without ultralytics installed
        from .ultralytics_backend import UltralyticsBackend, UltralyticsConfig

        return UltralyticsBackend(
            UltralyticsConfig(
                model=cfg.weights_file or cfg.config_file,
                threshold=cfg.threshold,
                nms_threshold=cfg.nms_threshold,
                classes=cfg.classes,
                track=cfg.track,
            )
        )
    raise ValueError(f"Unknown detector backend: {cfg.backend}")


__all__ = [
    "DetectorBackend",
    "DarknetConfig",
    "DarknetDnnBackend",
    "create_backend",
]
