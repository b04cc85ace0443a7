"""Domain layer definitions."""

from .workflow import STAGE_DEFINITIONS, ProgressSnapshot, Stage, StageDefinition, TableRow

__all__ = [
    "ProgressSnapshot",
    "STAGE_DEFINITIONS",
    "Stage",
    "StageDefinition",
    "TableRow",
]
