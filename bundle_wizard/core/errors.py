"""Error values returned by the ingestion and review layers.

None of these are raised.  They are handed back as results so that the HTTP
layer can decide how to present them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MALFORMED_JSON = "malformed JSON"
EMPTY_PAYLOAD = "empty payload"


@dataclass(frozen=True, slots=True)
class TransportError:
    """Network or HTTP failure talking to the converter. Always retryable."""

    message: str
    status: int | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "transport", "message": self.message, "status": self.status}


@dataclass(frozen=True, slots=True)
class ProtocolParseError:
    """The stream completed but did not carry a usable JSON payload."""

    reason: str
    detail: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "protocol", "reason": self.reason, "detail": self.detail}


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    """Fatal validator error, with any warnings reported alongside it."""

    error: str
    warnings: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "validation", "error": self.error, "warnings": list(self.warnings)}


@dataclass(frozen=True, slots=True)
class ReconciliationConflict:
    """Raw JSON edit that could not be parsed; the last good document is kept."""

    message: str

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "reconciliation", "message": self.message}
