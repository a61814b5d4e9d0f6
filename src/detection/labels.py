"""
Label text and colour rules for predictions.
"""

from __future__ import annotations

from typing import List, Mapping, Sequence, Tuple

Colour = Tuple[int, int, int]

# Base colours for class_id_to_colour(), scaled per class
_BASE_COLOURS = ((1, 0, 1), (0, 0, 1), (0, 1, 1), (0, 1, 0), (1, 1, 0), (1, 0, 0))


def default_annotation_colours() -> List[Colour]:
    """Bright BGR colours for annotate(); remember pure red is (0, 0, 255)."""
    return [
        (255, 0, 255),  # magenta
        (255, 0, 0),    # blue
        (0, 255, 0),    # green
        (0, 255, 255),  # yellow
        (0, 0, 255),    # red
        (255, 255, 0),  # cyan
        (0, 128, 255),  # orange
        (255, 0, 128),  # purple
        (128, 255, 0),  # spring green
        (0, 0, 128),    # maroon
        (128, 0, 0),    # navy
        (0, 128, 0),    # dark green
    ]


def colour_for_class(class_id: int, colours: Sequence[Colour]) -> Colour:
    if not colours:
        return class_id_to_colour(class_id)
    return tuple(colours[class_id % len(colours)])  # type: ignore[return-value]


def class_id_to_colour(class_id: int) -> Colour:
    """Deterministic colour derived from the class index alone."""
    offset = class_id * 123457 % 6
    scale = 150 + (class_id * 123457) % 100
    b, g, r = _BASE_COLOURS[offset]
    return (b * scale, g * scale, r * scale)


def class_name(class_id: int, names: Sequence[str]) -> str:
    if 0 <= class_id < len(names) and names[class_id]:
        return names[class_id]
    return f"#{class_id}"


def format_label(
    probabilities: Mapping[int, float],
    names: Sequence[str],
    include_percentage: bool = True,
    include_all: bool = True,
) -> str:
    """
    Build a label such as "truck 96%, bus 60%".

    Classes are listed from most to least probable; with include_all=False
    only the best one is used.
    """
    ranked = sorted(probabilities.items(), key=lambda kv: (-kv[1], kv[0]))
    if not include_all:
        ranked = ranked[:1]

    parts = []
    for class_id, prob in ranked:
        text = class_name(class_id, names)
        if include_percentage:
            text += f" {int(100.0 * prob + 0.5)}%"
        parts.append(text)
    return ", ".join(parts)

