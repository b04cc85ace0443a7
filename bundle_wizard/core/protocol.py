"""Classification of converter stream lines.

The converter writes human readable progress lines first, then the sentinel
line, then the JSON result.  Before the sentinel every line is matched
against an ordered list of patterns; the first match wins.  After it every
line belongs to the payload.

Wire format::

    Processing 3 chunks
    chunk 1/3
    chunk 2/3
    chunk 3/3
    ---JSON RESULT---
    {"resourceType": "Bundle", ...}
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

SENTINEL = "---JSON RESULT---"

TOTAL_PATTERN = re.compile(r"\b(\d+)\s+chunks?\b", re.IGNORECASE)
# also covers the older "Processing chunk 2/3" form
STEP_PATTERN = re.compile(r"\bchunk\s+(\d+)\s*(?:/|of)\s*(\d+)\b", re.IGNORECASE)


class StreamMode(Enum):
    PROGRESS = "progress"
    JSON_PAYLOAD = "json_payload"


class LineKind(Enum):
    SECTION_MARKER = "section_marker"
    PROGRESS_TOTAL = "progress_total"
    PROGRESS_STEP = "progress_step"
    PROGRESS_NOTE = "progress_note"
    BLANK = "blank"
    JSON_LINE = "json_line"


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    kind: LineKind
    text: str
    current: int | None = None
    total: int | None = None

    @property
    def is_progress(self) -> bool:
        return self.kind in {LineKind.PROGRESS_TOTAL, LineKind.PROGRESS_STEP, LineKind.PROGRESS_NOTE}


def _match_marker(line: str) -> ClassifiedLine | None:
    if line.strip() == SENTINEL:
        return ClassifiedLine(LineKind.SECTION_MARKER, line)
    return None


def _match_step(line: str) -> ClassifiedLine | None:
    match = STEP_PATTERN.search(line)
    if match is None:
        return None
    return ClassifiedLine(
        LineKind.PROGRESS_STEP,
        line.strip(),
        current=int(match.group(1)),
        total=int(match.group(2)),
    )


def _match_total(line: str) -> ClassifiedLine | None:
    match = TOTAL_PATTERN.search(line)
    if match is None:
        return None
    return ClassifiedLine(LineKind.PROGRESS_TOTAL, line.strip(), total=int(match.group(1)))


def _match_blank(line: str) -> ClassifiedLine | None:
    if line.strip():
        return None
    return ClassifiedLine(LineKind.BLANK, line)


def _match_note(line: str) -> ClassifiedLine | None:
    return ClassifiedLine(LineKind.PROGRESS_NOTE, line.strip())


# A line carrying both a step and a count is a step.
PROGRESS_MATCHERS: tuple[Callable[[str], ClassifiedLine | None], ...] = (
    _match_marker,
    _match_step,
    _match_total,
    _match_blank,
    _match_note,
)


def classify(line: str, mode: StreamMode) -> ClassifiedLine:
    """Classify one terminator-free line for the given stream mode."""

    if mode is StreamMode.JSON_PAYLOAD:
        return ClassifiedLine(LineKind.JSON_LINE, line)

    for matcher in PROGRESS_MATCHERS:
        result = matcher(line)
        if result is not None:
            return result
    raise AssertionError("note matcher accepts every line")  # pragma: no cover


__all__ = [
    "ClassifiedLine",
    "LineKind",
    "PROGRESS_MATCHERS",
    "SENTINEL",
    "StreamMode",
    "classify",
]
