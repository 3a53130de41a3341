"""
Splits plain text into text and equation segments.

Two marker forms are recognised, scanning left to right:

- block:  $$ ... $$   (content may be empty)
- inline: $ ... $     (content must not start with $)

At every position the block form is tried before the inline form. A marker
that is never closed stays part of the surrounding literal text. An inline
equation never spans a line break; a block equation may.
"""
from enum import Enum
from typing import Iterable, List

from transform.models import EquationRun, Segment, TextRun

BLOCK_MARKER = "$$"
INLINE_MARKER = "$"


class _State(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


def _open_marker(text: str, i: int) -> str:
    """Return the marker opening at `i`, or "" if none opens there."""
    if text.startswith(BLOCK_MARKER, i):
        return BLOCK_MARKER
    if text.startswith(INLINE_MARKER, i) and i + 1 < len(text):
        return INLINE_MARKER
    return ""


def tokenize(text: str) -> List[Segment]:
    segments: List[Segment] = []
    n = len(text)

    state = _State.OUTSIDE
    marker = ""
    marker_start = 0
    literal_start = 0
    i = 0

    while True:
        if i >= n and state == _State.OUTSIDE:
            break

        if state == _State.INSIDE and (i >= n or (marker == INLINE_MARKER and text[i] == "\n")):
            # Unclosed marker: its characters are literal, resume right after it.
            state = _State.OUTSIDE
            i = marker_start + len(marker)
            continue

        if state == _State.OUTSIDE:
            marker = _open_marker(text, i)
            if marker:
                state = _State.INSIDE
                marker_start = i
                i += len(marker)
            else:
                i += 1
            continue

        if text.startswith(marker, i):
            if marker_start > literal_start:
                segments.append(TextRun(content=text[literal_start:marker_start]))

            end = i + len(marker)
            segments.append(EquationRun(
                expression=text[marker_start + len(marker):i].strip(),
                source=text[marker_start:end],
            ))
            state = _State.OUTSIDE
            i = literal_start = end
        else:
            i += 1

    if literal_start < n:
        segments.append(TextRun(content=text[literal_start:]))

    return segments


def has_equations(segments: Iterable[Segment]) -> bool:
    return any(isinstance(segment, EquationRun) for segment in segments)
