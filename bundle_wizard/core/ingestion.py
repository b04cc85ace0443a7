"""Ingestion of one converter response stream."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from bundle_wizard.core.errors import EMPTY_PAYLOAD, MALFORMED_JSON, ProtocolParseError
from bundle_wizard.core.protocol import ClassifiedLine, LineKind, StreamMode, classify
from bundle_wizard.core.stream import LineSplitter
from bundle_wizard.domain import ProgressSnapshot

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressSnapshot], None]


@dataclass(slots=True)
class IngestionOk:
    document: dict[str, Any]
    progress: ProgressSnapshot = field(default_factory=ProgressSnapshot)


@dataclass(slots=True)
class IngestionFailed:
    error: ProtocolParseError
    progress: ProgressSnapshot = field(default_factory=ProgressSnapshot)


IngestionResult = IngestionOk | IngestionFailed


class IngestionSession:
    """State for a single upload: progress log plus the trailing JSON payload.

    A session is created per upload and thrown away afterwards.  Once
    ``finish`` or ``cancel`` has been called it refuses further input.
    """

    def __init__(self, on_progress: ProgressListener | None = None) -> None:
        self._splitter = LineSplitter()
        self._on_progress = on_progress
        self.mode = StreamMode.PROGRESS
        self.progress_log: list[str] = []
        self.json_lines: list[str] = []
        self.current_step = 0
        self.total_steps = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            current_step=self.current_step,
            total_steps=self.total_steps,
            messages=list(self.progress_log),
        )

    def feed(self, chunk: str | bytes) -> None:
        self._ensure_open()
        for line in self._splitter.feed(chunk):
            self._consume(line)

    def finish(self) -> IngestionResult:
        self._ensure_open()
        for line in self._splitter.flush():
            self._consume(line)
        self._closed = True

        progress = self.snapshot()
        payload = "\n".join(self.json_lines)
        if not payload.strip():
            logger.warning("Converter stream ended without a JSON payload")
            return IngestionFailed(ProtocolParseError(EMPTY_PAYLOAD), progress)

        try:
            document = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.warning("Converter payload is not valid JSON: %s", exc)
            return IngestionFailed(ProtocolParseError(MALFORMED_JSON, detail=str(exc)), progress)

        if not isinstance(document, dict):
            return IngestionFailed(
                ProtocolParseError(MALFORMED_JSON, detail="payload is not a JSON object"),
                progress,
            )
        return IngestionOk(document=document, progress=progress)

    def cancel(self) -> None:
        self._closed = True
        self.json_lines.clear()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("ingestion session is closed")

    def _consume(self, line: str) -> None:
        classified = classify(line, self.mode)
        kind = classified.kind

        if kind is LineKind.SECTION_MARKER:
            self.mode = StreamMode.JSON_PAYLOAD
            return
        if kind is LineKind.JSON_LINE:
            self.json_lines.append(classified.text)
            return
        if kind is LineKind.BLANK:
            return

        self._apply_progress(classified)
        self.progress_log.append(classified.text)
        if self._on_progress is not None:
            self._on_progress(self.snapshot())

    def _apply_progress(self, classified: ClassifiedLine) -> None:
        # out of order lines must never move progress backwards
        if classified.current is not None:
            self.current_step = max(self.current_step, classified.current)
        if classified.total is not None:
            self.total_steps = max(self.total_steps, classified.total)


__all__ = [
    "IngestionFailed",
    "IngestionOk",
    "IngestionResult",
    "IngestionSession",
    "ProgressListener",
]
