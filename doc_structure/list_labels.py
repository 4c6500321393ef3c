"""
List Labels — Detects list item runs from label text (bullets, ordinals) and
from visually similar images, and splits runs whose items are not aligned.
"""

import logging
import re
from typing import Optional

import numpy as np

from .models import BoundingBox, ListInterval

logger = logging.getLogger(__name__)

BULLET_LABELS = frozenset("•◦▪‣-–*○■□►✓")
IMAGE_SIZE_TOLERANCE = 0.1
MIN_LIST_ITEMS = 2

_NUMBERED_LABEL_RE = re.compile(r"^(?P<open>\(?)(?P<token>\d{1,3}|[A-Za-z]{1,4})(?P<close>[.)])(?=\s|$)")
_ROMAN_RE = re.compile(r"^m{0,3}(cm|cd|d?c{0,3})(xc|xl|l?x{0,3})(ix|iv|v?i{0,3})$")
_ROMAN_VALUES = {"i": 1, "v": 5, "x": 10, "l": 50, "c": 100, "d": 500, "m": 1000}


def is_list_label(char: str) -> bool:
    return char in BULLET_LABELS


def _roman_value(token: str) -> int:
    total = 0
    previous = 0
    for char in reversed(token.lower()):
        value = _ROMAN_VALUES[char]
        if value < previous:
            total -= value
        else:
            total += value
            previous = value
    return total


def _label_candidates(label: str) -> list[tuple[str, Optional[int]]]:
    """Possible (label kind, ordinal value) readings of the start of `label`."""
    if not label:
        return []
    if is_list_label(label[0]):
        return [(f"bullet{label[0]}", None)]
    match = _NUMBERED_LABEL_RE.match(label)
    if match is None:
        return []
    token = match.group("token")
    style = match.group("open") + match.group("close")
    if token.isdigit():
        return [(f"arabic{style}", int(token))]
    case = "upper" if token.isupper() else "lower"
    candidates = []
    if len(token) == 1:
        candidates.append((f"latin_{case}{style}", ord(token.lower()) - ord("a") + 1))
    if token.isupper() or token.islower():
        if _ROMAN_RE.match(token.lower()):
            candidates.append((f"roman_{case}{style}", _roman_value(token)))
    # a run usually starts at 1, so "i." opens a roman list rather than a latin one
    candidates.sort(key=lambda candidate: candidate[1] != 1)
    return candidates


def get_list_items_intervals(labels: list[str]) -> list[ListInterval]:
    """
    Find runs of consecutive labels that continue one another.

    Bullets continue a run when the glyph repeats; ordinals when the value
    increments by one in the same style.
    """
    intervals = []
    start = None
    current = None
    for i, label in enumerate(labels):
        candidates = _label_candidates(label)
        if current is not None:
            kind, value = current
            continued = next((c for c in candidates
                              if c[0] == kind and (value is None or c[1] == value + 1)), None)
            if continued is not None:
                current = continued
                continue
            if i - start >= MIN_LIST_ITEMS:
                intervals.append(ListInterval(start, i - 1))
        start, current = (i, candidates[0]) if candidates else (None, None)
    if current is not None and len(labels) - start >= MIN_LIST_ITEMS:
        intervals.append(ListInterval(start, len(labels) - 1))
    return intervals


def get_image_list_items_intervals(boxes: list[BoundingBox]) -> list[ListInterval]:
    """Runs of consecutive images whose widths and heights differ by at most 10%."""
    if len(boxes) < MIN_LIST_ITEMS:
        return []
    sizes = np.array([[box.width, box.height] for box in boxes], dtype=float)
    limits = IMAGE_SIZE_TOLERANCE * np.maximum(sizes[1:], sizes[:-1])
    similar = np.all(np.abs(sizes[1:] - sizes[:-1]) <= limits, axis=1)

    intervals = []
    start = 0
    for i, is_similar in enumerate(similar, start=1):
        if is_similar:
            continue
        if i - start >= MIN_LIST_ITEMS:
            intervals.append(ListInterval(start, i - 1))
        start = i
    if len(boxes) - start >= MIN_LIST_ITEMS:
        intervals.append(ListInterval(start, len(boxes) - 1))
    return intervals


def split_misaligned_intervals(intervals: list[ListInterval], lefts: list[float],
                               tolerances: list[float]) -> list[ListInterval]:
    """Split intervals wherever an item's left edge strays from the run's first item."""
    result = []
    for interval in intervals:
        start = interval.start
        for i in range(interval.start + 1, interval.end + 2):
            if i <= interval.end and abs(lefts[i] - lefts[start]) <= tolerances[i]:
                continue
            if i - start >= MIN_LIST_ITEMS:
                result.append(ListInterval(start, i - 1))
            start = i
    if len(result) != len(intervals):
        logger.debug(f"  Split {len(intervals)} list intervals into {len(result)} aligned runs")
    return result
