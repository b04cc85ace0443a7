from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from bundle_wizard.application import WizardError, WizardService
from bundle_wizard.core.reconcile import ReviewSession
from bundle_wizard.dependencies import conflict, get_wizard
from bundle_wizard.exporters.review_table import MEDIA_TYPES

router = APIRouter(prefix="/wizard/review", tags=["review"])


def _session(wizard: WizardService) -> ReviewSession:
    try:
        return wizard.require_review()
    except WizardError as exc:
        raise conflict(exc) from exc


def _row_update(payload: dict[str, Any]) -> tuple[str, str]:
    field = payload.get("field")
    if not field:
        raise HTTPException(status_code=400, detail="field is required")
    value = payload.get("value")
    return str(field), "" if value is None else str(value)


@router.get("")
async def get_review(wizard: WizardService = Depends(get_wizard)) -> dict:
    return _session(wizard).as_dict()


@router.patch("/rows/{index}")
async def update_cell(index: int, payload: dict, wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    field, value = _row_update(payload)
    try:
        session.update_cell(index, field, value)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="row not found") from exc
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=f"unknown column: {field}") from exc
    return session.as_dict()


@router.post("/rows")
async def add_row(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    try:
        index = session.add_row()
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"index": index, **session.as_dict()}


@router.delete("/rows/{index}")
async def delete_row(index: int, wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    try:
        session.delete_row(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="row not found") from exc
    return session.as_dict()


@router.post("/rows/undo")
async def undo_delete(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    if not session.undo_delete():
        raise HTTPException(status_code=409, detail="nothing to undo")
    return session.as_dict()


@router.post("/rows/{index}/edit")
async def begin_row_edit(index: int, wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    try:
        session.begin_row_edit(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="row not found") from exc
    return session.as_dict()


@router.patch("/draft")
async def update_draft(payload: dict, wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    field, value = _row_update(payload)
    try:
        session.set_draft(field, value)
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=f"unknown column: {field}") from exc
    return session.as_dict()


@router.post("/draft/commit")
async def commit_row_edit(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    session.commit_row_edit()
    return session.as_dict()


@router.post("/draft/cancel")
async def cancel_row_edit(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    session.cancel_row_edit()
    return session.as_dict()


@router.post("/raw/edit")
async def begin_raw_edit(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    session.begin_raw_edit()
    return session.as_dict()


@router.put("/raw")
async def type_raw(payload: dict, wizard: WizardService = Depends(get_wizard)) -> dict:
    text = payload.get("text")
    if not isinstance(text, str):
        raise HTTPException(status_code=400, detail="text must be a string")
    session = _session(wizard)
    session.type_raw(text)
    return {"raw_mode": session.raw_mode.value}


@router.post("/raw/save")
async def save_raw(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    if not session.editing:
        raise HTTPException(status_code=409, detail="the raw JSON editor is not open")
    result = session.save_raw()
    return {"saved": result is None, **session.as_dict()}


@router.post("/raw/cancel")
async def cancel_raw_edit(wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    session.cancel_raw_edit()
    return session.as_dict()


@router.put("/document")
async def replace_document(payload: dict, wizard: WizardService = Depends(get_wizard)) -> dict:
    session = _session(wizard)
    applied = session.replace_document(payload)
    return {"applied": applied, **session.as_dict()}


@router.get("/export")
async def export_review_rows(
    fmt: str = Query(default="csv"),
    wizard: WizardService = Depends(get_wizard),
) -> Response:
    if fmt.lower() not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="fmt must be csv or xlsx")
    try:
        filename, content = wizard.export_review_rows(fmt)
    except WizardError as exc:
        raise conflict(exc) from exc
    return Response(
        content=content,
        media_type=MEDIA_TYPES[fmt.lower()],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/proceed")
async def proceed_review(wizard: WizardService = Depends(get_wizard)) -> dict:
    try:
        accepted = wizard.proceed_review()
    except WizardError as exc:
        raise conflict(exc) from exc
    if not accepted:
        raise HTTPException(status_code=409, detail="review can only be confirmed on the review step")
    return wizard.snapshot()
