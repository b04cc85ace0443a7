from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from bundle_wizard.application import WizardError, WizardService
from bundle_wizard.core.errors import TransportError
from bundle_wizard.dependencies import conflict, get_wizard

router = APIRouter(prefix="/wizard", tags=["upload"])


@router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    wizard: WizardService = Depends(get_wizard),
) -> dict:
    """Send a source document to the converter and open the review step."""
    try:
        if not file.filename:
            raise HTTPException(status_code=400, detail="Uploaded file must have a filename")
        safe_name = Path(file.filename).name
        content = await file.read()
    finally:
        await file.close()

    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        outcome = await wizard.upload(safe_name, content, file.content_type)
    except WizardError as exc:
        raise conflict(exc) from exc

    if outcome.error is not None:
        status = 502 if isinstance(outcome.error, TransportError) else 422
        raise HTTPException(status_code=status, detail=outcome.as_dict())

    return {**outcome.as_dict(), "state": wizard.snapshot()}


@router.get("/progress")
async def get_upload_progress(wizard: WizardService = Depends(get_wizard)) -> dict:
    return {"in_flight": wizard.upload_in_flight, **wizard.progress().as_dict()}


@router.post("/upload/cancel")
async def cancel_upload(wizard: WizardService = Depends(get_wizard)) -> dict:
    return {"cancelled": wizard.cancel_upload()}
