"""Domain entities for the conversion wizard."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class Stage(IntEnum):
    """Ordered wizard steps."""

    UPLOAD = 0
    REVIEW = 1
    VALIDATE = 2
    DOWNLOAD = 3


@dataclass(frozen=True, slots=True)
class StageDefinition:
    stage: Stage
    title: str
    console_label: str


STAGE_DEFINITIONS: tuple[StageDefinition, ...] = (
    StageDefinition(Stage.UPLOAD, "Upload PDF", "Waiting"),
    StageDefinition(Stage.REVIEW, "Structured Review", "Reviewing"),
    StageDefinition(Stage.VALIDATE, "Generate & Validate", "Validating"),
    StageDefinition(Stage.DOWNLOAD, "Download Bundle", "Ready"),
)


@dataclass(slots=True)
class ProgressSnapshot:
    """Progress of one ingestion, as reported to the caller."""

    current_step: int = 0
    total_steps: int = 0
    messages: list[str] = field(default_factory=list)

    @property
    def percentage(self) -> float | None:
        if self.total_steps <= 0:
            return None
        return round(min(self.current_step, self.total_steps) / self.total_steps * 100, 2)

    def as_dict(self) -> dict[str, Any]:
        return {
            "current_step": self.current_step,
            "total_steps": self.total_steps,
            "percentage": self.percentage,
            "messages": list(self.messages),
        }


@dataclass(slots=True)
class TableRow:
    """Flat projection of one bundle entry shown in the review table."""

    resource_type: str = ""
    id: str = ""
    status: str = ""
    name: str = ""

    def as_dict(self) -> dict[str, str]:
        return {
            "resourceType": self.resource_type,
            "id": self.id,
            "status": self.status,
            "name": self.name,
        }
