"""Splitting of slash-separated paths into segments."""

from __future__ import annotations

import re
from typing import Iterator, Optional


def _span_pattern(reject: str) -> re.Pattern[str]:
    if not reject:
        return re.compile(r".+", re.DOTALL)
    return re.compile(f"[^{re.escape(reject)}]+")


def _iter_spans(text: str, reject: str) -> Iterator[tuple[int, int]]:
    start = 0
    if text.startswith("/"):
        yield (0, 1)
        start = 1
    for match in _span_pattern(reject).finditer(text, start):
        yield (match.start(), match.end() - match.start())


def count_spans(text: str, reject: str = "/") -> tuple[int, int]:
    """Return the number of segments and the characters needed to hold them.

    A leading slash is a segment of its own; every other run of ``reject``
    characters separates segments.  The character count includes one
    terminator per segment.
    """
    spans = list(_iter_spans(text, reject))
    return len(spans), sum(length + 1 for _, length in spans)


def split_spans(text: str, reject: str = "/") -> list[str]:
    """Split ``text`` into its segments."""
    return [text[start:start + length] for start, length in _iter_spans(text, reject)]


def find_path_segment(path: str, segment: int) -> Optional[tuple[int, int]]:
    """Locate a segment of ``path``; negative indices count from the end.

    Returns ``(start, length)``, or ``None`` when the path has no segments.
    Raises IndexError when the segment does not exist.
    """
    spans = list(_iter_spans(path, "/"))
    if not spans:
        return None
    index = segment + len(spans) if segment < 0 else segment
    if not 0 <= index < len(spans):
        raise IndexError(f"path {path!r} has no segment {segment}")
    return spans[index]


def pathseg(path: str, segment: int) -> Optional[str]:
    """Return a segment of ``path`` as a string, or None if it does not exist."""
    try:
        found = find_path_segment(path, segment)
    except IndexError:
        return None
    if found is None:
        return ""
    start, length = found
    return path[start:start + length]