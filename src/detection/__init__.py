"""
Detection helpers: running a backend, labelling, drawing and reporting results.
"""

from .helper import DetectionHelper
from .names import load_names
from .labels import format_label, default_annotation_colours, class_id_to_colour
from .annotate import annotate_image, draw_fps
from .report import format_results, format_console_result, print_results

__all__ = [
    "DetectionHelper",
    "load_names",
    "format_label",
    "default_annotation_colours",
    "class_id_to_colour",
    "annotate_image",
    "draw_fps",
    "format_results",
    "format_console_result",
    "print_results",
]
