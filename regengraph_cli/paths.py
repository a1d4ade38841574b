"""Block-path parsing and soft resolution against nested course records.

A block path addresses one value inside an analysis or structure record::

    topic_analysis.determined_topic
    sections[0].lessons[1].lesson_title
    sections.0.lessons.1.lesson_title     # equivalent dotted form

Resolution never raises. Anything that does not resolve (a missing key, an
out-of-range index, a step into a scalar) yields ``None``: during generation
many fields legitimately do not exist yet.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple, Union

Segment = Union[str, int]

_TOKEN_RE = re.compile(r"[^.\[\]]+|\[(\d+)\]")
_SECTION_RE = re.compile(r"(?:^|\.)sections(?:\[(\d+)\]|\.(\d+))")
_LESSON_RE = re.compile(r"(?:^|\.)lessons(?:\[(\d+)\]|\.(\d+))")


def parse_path(path: str) -> List[Segment]:
    """Split a block path into keys (``str``) and list indices (``int``)."""
    segments: List[Segment] = []
    for match in _TOKEN_RE.finditer(path or ""):
        if match.group(1) is not None:
            segments.append(int(match.group(1)))
            continue
        token = match.group(0)
        segments.append(int(token) if token.isdigit() else token)
    return segments


def format_path(segments: List[Segment]) -> str:
    """Render segments back into bracketed form (``a.b[0].c``)."""
    out = ""
    for segment in segments:
        if isinstance(segment, int):
            out += f"[{segment}]"
        else:
            out += f".{segment}" if out else segment
    return out


def resolve_segments(data: Any, segments: List[Segment]) -> Any:
    current = data
    for segment in segments:
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(str(segment))
        elif isinstance(current, (list, tuple)):
            if not isinstance(segment, int) or not 0 <= segment < len(current):
                return None
            current = current[segment]
        else:
            return None
    return current


def get_field_value(data: Any, path: str) -> Any:
    """Resolve *path* inside *data*, returning ``None`` when it does not resolve."""
    if not isinstance(data, (dict, list, tuple)):
        return None
    return resolve_segments(data, parse_path(path))


def split_owner(path: str) -> Tuple[List[Segment], Optional[str]]:
    """Split *path* into the segments of its owning object and the owning key.

    The owner is the object holding the last *named* key, so a list element
    like ``sections[0].learning_objectives[1]`` is owned by ``sections[0]``
    under the key ``learning_objectives``.
    """
    segments = parse_path(path)
    for idx in range(len(segments) - 1, -1, -1):
        if isinstance(segments[idx], str):
            return segments[:idx], segments[idx]  # type: ignore[return-value]
    return [], None


def parse_indices(path: str) -> Tuple[Optional[int], Optional[int]]:
    """Extract ``(section_idx, lesson_idx)`` from a structure path."""
    section = _SECTION_RE.search(path or "")
    lesson = _LESSON_RE.search(path or "")
    section_idx = int(section.group(1) or section.group(2)) if section else None
    lesson_idx = int(lesson.group(1) or lesson.group(2)) if lesson else None
    return section_idx, lesson_idx
