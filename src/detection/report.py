"""
Readable text output for prediction results.

format_results() gives a log-friendly block, e.g.:

    prediction results: 2
    -> 1/2: "Barcode 94%" #43 prob=0.939646 x=430 y=646 w=173 h=17 entries=1
    -> 2/2: "G 85%, 2 12%" #19 prob=0.846418 x=509 y=600 w=28 h=37 entries=2 [ 2=0.122151 19=0.846418 ]

format_console_result() gives the compact per-object console layout.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence, TextIO

from models.detection import Detection


def format_result(det: Detection, index: int, total: int) -> str:
    """One result line; index is 1-based."""
    probs = det.probabilities()
    b = det.bbox
    line = (
        f'-> {index}/{total}: "{det.name}" #{det.class_id} prob={det.confidence:g} '
        f"x={b.x} y={b.y} w={b.width} h={b.height} entries={len(probs)}"
    )
    if len(probs) > 1:
        entries = " ".join(f"{k}={v:g}" for k, v in sorted(probs.items()))
        line += f" [ {entries} ]"
    return line


def format_results(results: Sequence[Detection]) -> str:
    total = len(results)
    lines = [f"prediction results: {total}"]
    lines.extend(format_result(det, i + 1, total) for i, det in enumerate(results))
    return "\n".join(lines)


def format_console_result(results: Sequence[Detection], names: Sequence[str] = ()) -> str:
    lines = []
    for det in results:
        prefix = f"{names[det.class_id]} - " if 0 <= det.class_id < len(names) else ""
        b = det.bbox
        lines.append(
            f"{prefix}obj_id = {det.class_id},  x = {b.x}, y = {b.y}, "
            f"w = {b.width}, h = {b.height}, prob = {det.confidence:.3g}"
        )
    return "\n".join(lines)


def print_results(results: Sequence[Detection], names: Sequence[str] = (), stream: Optional[TextIO] = None) -> None:
    """Write the console layout, preceded by a blank line, to stream (stdout by default)."""
    stream = stream or sys.stdout
    stream.write("\n")
    text = format_console_result(results, names)
    if text:
        stream.write(text + "\n")
    stream.flush()
