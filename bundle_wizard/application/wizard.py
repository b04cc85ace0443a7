"""Application service driving the conversion wizard."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from bundle_wizard.core.errors import ProtocolParseError, TransportError, ValidationFailure
from bundle_wizard.core.ingestion import IngestionFailed
from bundle_wizard.core.reconcile import ReviewSession
from bundle_wizard.core.schema import ConversionProgress, HealthStatus, ValidationReport
from bundle_wizard.core.state import WorkflowState
from bundle_wizard.domain import ProgressSnapshot, Stage
from bundle_wizard.exporters.review_table import export_rows
from bundle_wizard.infrastructure import ConverterClient, ConverterError
from bundle_wizard.workers.ingestion import IngestionRequest, IngestionWorker

logger = logging.getLogger(__name__)


class WizardError(Exception):
    """Raised when an action is not allowed in the current wizard state."""


@dataclass
class UploadOutcome:
    accepted: bool
    progress: ProgressSnapshot = field(default_factory=ProgressSnapshot)
    error: TransportError | ProtocolParseError | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "accepted": self.accepted,
            "progress": self.progress.as_dict(),
            "error": self.error.as_dict() if self.error is not None else None,
        }


class WizardService:
    """Owns the workflow position, the review session and the running upload.

    One instance per application; routes receive it through a dependency
    rather than a module level singleton.
    """

    def __init__(self, client: ConverterClient, *, timeout: float = 300.0) -> None:
        self._client = client
        self._worker = IngestionWorker(client, timeout=timeout)
        self.workflow = WorkflowState()
        self.review: ReviewSession | None = None
        self.last_report: ValidationReport | None = None
        self._progress = ProgressSnapshot()

    # ------------------------------------------------------------------
    # upload
    # ------------------------------------------------------------------
    async def upload(self, filename: str, content: bytes, content_type: str | None = None) -> UploadOutcome:
        if self.workflow.stage != Stage.UPLOAD:
            raise WizardError("uploads are only accepted on the upload step")

        self._progress = ProgressSnapshot()
        request = IngestionRequest(filename=filename, content=content, content_type=content_type)
        result = await self._worker.run(request, on_progress=self._record_progress)

        if isinstance(result, TransportError):
            return UploadOutcome(accepted=False, progress=self._progress, error=result)
        if isinstance(result, IngestionFailed):
            return UploadOutcome(accepted=False, progress=result.progress, error=result.error)

        self._progress = result.progress
        if not self.workflow.complete_upload(result.document):
            # the wizard moved on (navigation or reset) while the stream was open
            return UploadOutcome(accepted=False, progress=result.progress, error=TransportError("cancelled"))
        if self.review is None:
            self.review = ReviewSession(result.document)
        else:
            # deferred while the raw editor of the earlier review is open
            self.review.replace_document(result.document)
        self.last_report = None
        return UploadOutcome(accepted=True, progress=result.progress)

    def progress(self) -> ProgressSnapshot:
        return self._progress

    @property
    def upload_in_flight(self) -> bool:
        return self._worker.in_flight

    def cancel_upload(self) -> bool:
        return self._worker.cancel()

    def _record_progress(self, snapshot: ProgressSnapshot) -> None:
        self._progress = snapshot

    async def converter_progress(self) -> ConversionProgress:
        return await self._client.get_progress()

    async def converter_health(self) -> HealthStatus:
        return await self._client.health()

    # ------------------------------------------------------------------
    # navigation
    # ------------------------------------------------------------------
    def navigate(self, stage: int) -> bool:
        return self.workflow.navigate(stage)

    def reset(self) -> None:
        self._worker.cancel()
        self.workflow.reset()
        self.review = None
        self.last_report = None
        self._progress = ProgressSnapshot()
        logger.info("Wizard reset")

    # ------------------------------------------------------------------
    # review
    # ------------------------------------------------------------------
    def require_review(self) -> ReviewSession:
        if self.review is None:
            raise WizardError("no document has been extracted yet")
        return self.review

    def proceed_review(self) -> bool:
        review = self.require_review()
        if review.editing:
            raise WizardError("save or cancel the raw JSON edit before proceeding")
        return self.workflow.complete_review(review.document())

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------
    async def validate(self) -> ValidationReport:
        document = self.workflow.reviewed_document
        if self.workflow.stage != Stage.VALIDATE or document is None:
            raise WizardError("nothing to validate; finish the review step first")

        try:
            report = await self._client.validate(document)
        except ConverterError as exc:
            logger.warning("Validation call failed: %s", exc.message)
            report = ValidationReport(error=exc.message)
        self.last_report = report.model_copy(update={"document": document})
        return self.last_report

    def validation_failure(self) -> ValidationFailure | None:
        report = self.last_report
        if report is None or report.passed:
            return None
        return ValidationFailure(
            error=report.error or "",
            warnings=[issue.model_dump() for issue in report.warnings],
        )

    def accept_validation(self) -> bool:
        if self.last_report is None:
            raise WizardError("run validation first")
        return self.workflow.complete_validation(self.last_report)

    def discard_validation(self) -> None:
        self.last_report = None

    # ------------------------------------------------------------------
    # download
    # ------------------------------------------------------------------
    def final_document(self) -> dict[str, Any]:
        result = self.workflow.validation_result
        if self.workflow.highest_reached < Stage.DOWNLOAD or result is None or result.document is None:
            raise WizardError("the bundle is not ready for download")
        return result.document

    def download(self) -> tuple[str, bytes]:
        document = self.final_document()
        filename = f"nhcx-bundle-{int(time.time() * 1000)}.json"
        return filename, json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")

    async def export_excel(self) -> tuple[str, bytes] | TransportError:
        document = self.final_document()
        try:
            content = await self._client.json_to_excel(document)
        except ConverterError as exc:
            return TransportError(exc.message, status=exc.status)
        return f"nhcx-bundle-{int(time.time() * 1000)}.xlsx", content

    def export_review_rows(self, fmt: str) -> tuple[str, bytes]:
        review = self.require_review()
        return export_rows(review.table_rows, fmt)

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def context(self) -> dict[str, Any]:
        """Payload of the JSON console for the current step."""

        stage = self.workflow.stage
        if stage == Stage.UPLOAD:
            return {"status": "Awaiting PDF file..."}
        if stage == Stage.REVIEW:
            data = self.review.document() if self.review is not None else self.workflow.extracted_document
            return {"status": "Extracted elements", "data": data}
        if stage == Stage.VALIDATE:
            return {
                "status": "Pending generation",
                "reviewedPayload": self.workflow.reviewed_document,
                "validationResult": self.last_report.summary() if self.last_report else None,
            }
        result = self.workflow.validation_result
        return {
            "status": "Ready for export",
            "resourceType": "Bundle",
            "payload": result.document if result is not None else None,
        }

    def snapshot(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow.snapshot(),
            "upload_in_flight": self.upload_in_flight,
            "progress": self._progress.as_dict(),
            "context": self.context(),
        }


__all__ = ["UploadOutcome", "WizardError", "WizardService"]
