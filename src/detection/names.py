"""
Class-name list loading.
"""

from __future__ import annotations

import logging
import os
from typing import List


def load_names(path: str) -> List[str]:
    """
    Read class names, one per line, from a .names file.

    Line order is the class index, so blank lines in the middle are kept as
    empty names; trailing blank lines are dropped. A missing or unreadable
    file yields an empty list.
    """
    if not path or not os.path.exists(path):
        logging.warning(f"Names file not found: {path!r}")
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            names = [line.strip() for line in f]
    except OSError as e:
        logging.warning(f"Failed to read names file {path!r}: {e}")
        return []

    while names and not names[-1]:
        names.pop()

    logging.info(f"object names loaded: {len(names)} from {path}")
    return names
