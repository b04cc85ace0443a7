from __future__ import annotations

from fastapi import HTTPException, Request

from bundle_wizard.application import WizardError, WizardService


def get_wizard(request: Request) -> WizardService:
    """Return the wizard state owned by the running application."""

    return request.app.state.wizard


def conflict(exc: WizardError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(exc))
