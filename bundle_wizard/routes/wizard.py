from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from bundle_wizard.application import WizardError, WizardService
from bundle_wizard.core.errors import TransportError
from bundle_wizard.dependencies import conflict, get_wizard
from bundle_wizard.infrastructure import ConverterError

router = APIRouter(prefix="/wizard", tags=["wizard"])


@router.get("")
async def get_wizard_state(wizard: WizardService = Depends(get_wizard)) -> dict:
    return wizard.snapshot()


@router.post("/navigate")
async def navigate(payload: dict, wizard: WizardService = Depends(get_wizard)) -> dict:
    stage = payload.get("stage")
    if not isinstance(stage, int) or isinstance(stage, bool):
        raise HTTPException(status_code=400, detail="stage must be an integer")
    if not wizard.navigate(stage):
        raise HTTPException(status_code=409, detail="step has not been reached yet")
    return wizard.snapshot()


@router.post("/reset")
async def reset_wizard(wizard: WizardService = Depends(get_wizard)) -> dict:
    wizard.reset()
    return wizard.snapshot()


@router.get("/health")
async def converter_health(wizard: WizardService = Depends(get_wizard)) -> dict:
    try:
        health = await wizard.converter_health()
    except ConverterError as exc:
        return {"status": "unavailable", "detail": exc.message}
    return health.model_dump()


@router.get("/progress/remote")
async def converter_progress(wizard: WizardService = Depends(get_wizard)) -> dict:
    """Poll the converter's own progress endpoint."""
    try:
        progress = await wizard.converter_progress()
    except ConverterError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc
    return progress.model_dump()


@router.post("/validate")
async def run_validation(wizard: WizardService = Depends(get_wizard)) -> dict:
    try:
        report = await wizard.validate()
    except WizardError as exc:
        raise conflict(exc) from exc
    failure = wizard.validation_failure()
    return {
        "summary": report.summary(),
        "errors": [issue.model_dump() for issue in report.errors],
        "warnings": [issue.model_dump() for issue in report.warnings],
        "failure": failure.as_dict() if failure is not None else None,
        "can_proceed": report.passed,
    }


@router.post("/validate/accept")
async def accept_validation(wizard: WizardService = Depends(get_wizard)) -> dict:
    try:
        accepted = wizard.accept_validation()
    except WizardError as exc:
        raise conflict(exc) from exc
    if not accepted:
        raise HTTPException(status_code=409, detail="validation did not pass")
    return wizard.snapshot()


@router.post("/validate/discard")
async def discard_validation(wizard: WizardService = Depends(get_wizard)) -> dict:
    wizard.discard_validation()
    return wizard.snapshot()


@router.get("/download")
async def download_bundle(wizard: WizardService = Depends(get_wizard)) -> Response:
    try:
        filename, content = wizard.download()
    except WizardError as exc:
        raise conflict(exc) from exc
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/download/excel")
async def download_excel(wizard: WizardService = Depends(get_wizard)) -> Response:
    try:
        result = await wizard.export_excel()
    except WizardError as exc:
        raise conflict(exc) from exc
    if isinstance(result, TransportError):
        raise HTTPException(status_code=502, detail=result.as_dict())
    filename, content = result
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/context")
async def get_console_context(wizard: WizardService = Depends(get_wizard)) -> dict:
    """JSON console payload for the current step."""
    return wizard.context()
