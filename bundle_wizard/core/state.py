from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from bundle_wizard.core.schema import ValidationReport
from bundle_wizard.domain import STAGE_DEFINITIONS, Stage

logger = logging.getLogger(__name__)


@dataclass
class WorkflowState:
    """Position in the four step wizard plus the payload each step produced.

    Forward moves only happen through the ``complete_*`` events of the current
    step.  ``navigate`` can only go back to a step that was already reached.
    Every transition checks first and assigns afterwards, so a rejected call
    leaves the state untouched.
    """

    stage: Stage = Stage.UPLOAD
    highest_reached: Stage = Stage.UPLOAD
    extracted_document: dict[str, Any] | None = None
    reviewed_document: dict[str, Any] | None = None
    validation_result: ValidationReport | None = None
    reviewed_at: str | None = None

    # ------------------------------------------------------------------
    # forward transitions
    # ------------------------------------------------------------------
    def complete_upload(self, document: dict[str, Any]) -> bool:
        if not self._expect(Stage.UPLOAD, "upload"):
            return False
        self.extracted_document = document
        self.reviewed_document = None
        self.validation_result = None
        self.reviewed_at = None
        self.stage = self.highest_reached = Stage.REVIEW
        return True

    def complete_review(self, document: dict[str, Any]) -> bool:
        if not self._expect(Stage.REVIEW, "review"):
            return False
        self.reviewed_document = document
        self.reviewed_at = datetime.now(timezone.utc).isoformat()
        self.validation_result = None
        self.stage = self.highest_reached = Stage.VALIDATE
        return True

    def complete_validation(self, result: ValidationReport) -> bool:
        if not self._expect(Stage.VALIDATE, "validation"):
            return False
        if not result.passed:
            logger.info("Validation reported a fatal error; staying on validate step")
            return False
        self.validation_result = result
        self.stage = self.highest_reached = Stage.DOWNLOAD
        return True

    # ------------------------------------------------------------------
    # navigation
    # ------------------------------------------------------------------
    def can_navigate(self, stage: Stage | int) -> bool:
        try:
            target = Stage(stage)
        except ValueError:
            return False
        return target <= self.highest_reached

    def navigate(self, stage: Stage | int) -> bool:
        if not self.can_navigate(stage):
            logger.info("Navigation to step %s rejected (highest reached %s)", stage, int(self.highest_reached))
            return False
        self.stage = Stage(stage)
        return True

    def reset(self) -> None:
        self.stage = Stage.UPLOAD
        self.highest_reached = Stage.UPLOAD
        self.extracted_document = None
        self.reviewed_document = None
        self.validation_result = None
        self.reviewed_at = None

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def steps(self) -> list[dict[str, Any]]:
        return [
            {
                "id": int(definition.stage),
                "title": definition.title,
                "completed": self.stage > definition.stage,
                "current": self.stage == definition.stage,
                "reachable": definition.stage <= self.highest_reached,
            }
            for definition in STAGE_DEFINITIONS
        ]

    def snapshot(self) -> dict[str, Any]:
        last = len(STAGE_DEFINITIONS) - 1
        return {
            "stage": int(self.stage),
            "stage_name": self.stage.name.lower(),
            "highest_reached": int(self.highest_reached),
            "console_state": STAGE_DEFINITIONS[self.stage].console_label,
            "progress": round(int(self.stage) / last * 100, 2),
            "steps": self.steps(),
            "has_extracted_document": self.extracted_document is not None,
            "has_reviewed_document": self.reviewed_document is not None,
            "has_validation_result": self.validation_result is not None,
            "reviewed_at": self.reviewed_at,
        }

    def _expect(self, stage: Stage, event: str) -> bool:
        if self.stage != stage:
            logger.info("Ignoring %s completion while on step %s", event, int(self.stage))
            return False
        return True
