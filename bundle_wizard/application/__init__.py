"""Application services."""

from .wizard import UploadOutcome, WizardError, WizardService

__all__ = [
    "UploadOutcome",
    "WizardError",
    "WizardService",
]
