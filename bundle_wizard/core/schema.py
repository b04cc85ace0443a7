from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ValidationIssue(BaseModel):
    model_config = ConfigDict(extra="allow")

    resource: str | None = None
    field: str | None = None
    message: str = ""
    remediation: str | None = None


class ValidationReport(BaseModel):
    """Response of the converter ``/validate`` endpoint.

    ``error`` is the only fatal signal.  ``errors`` and ``warnings`` are
    findings shown to the user; they never block the download step.
    """

    model_config = ConfigDict(extra="allow")

    error: str | None = None
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    valid_percentage: float | None = None
    completion_percentage: float | None = None
    compliance_percentage: float | None = None
    passed_checks: int | None = None
    total_checks: int | None = None
    error_count: int | None = None
    warning_count: int | None = None
    detailed_report: str | None = None
    document: dict[str, Any] | None = None

    @property
    def passed(self) -> bool:
        return not self.error

    def summary(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "error": self.error,
            "valid_percentage": self.valid_percentage
            if self.valid_percentage is not None
            else (self.completion_percentage or 0),
            "compliance_percentage": self.compliance_percentage or 0,
            "passed_checks": self.passed_checks or 0,
            "total_checks": self.total_checks or 0,
            "error_count": self.error_count if self.error_count is not None else len(self.errors),
            "warning_count": self.warning_count if self.warning_count is not None else len(self.warnings),
        }


class ConversionProgress(BaseModel):
    model_config = ConfigDict(extra="allow")

    current_step: int = 0
    message: str = ""


class HealthStatus(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: str = "unknown"
