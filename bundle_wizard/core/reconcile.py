"""Keeps the review document, its table projection and its raw JSON text in sync.

Three surfaces can change the reviewed document:

* the table (cell edits, added and deleted rows),
* the raw JSON editor (free text, committed by an explicit save),
* external replacements (a new upload, the JSON console).

The canonical document is the single source of truth; rows and raw text are
derived from it.  Each editable surface is a small VIEW/EDIT machine.  While
the raw editor is in EDIT its text is never regenerated, and external
replacements are queued until the editor is closed.  Conflicting commits are
resolved last-writer-wins; nothing is merged.
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from bundle_wizard.core.errors import ReconciliationConflict
from bundle_wizard.domain import TableRow

logger = logging.getLogger(__name__)

# table column -> resource key
ROW_FIELDS: dict[str, str] = {
    "resource_type": "resourceType",
    "id": "id",
    "status": "status",
    "name": "name",
}
FIELD_ALIASES: dict[str, str] = {
    **{key: key for key in ROW_FIELDS},
    **{resource_key: attr for attr, resource_key in ROW_FIELDS.items()},
}


class EditMode(Enum):
    VIEW = "view"
    EDIT = "edit"


@dataclass(slots=True)
class DeletedEntry:
    index: int
    entry: Any


def serialise_document(document: dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def entry_list(document: dict[str, Any], *, create: bool = False) -> list[Any] | None:
    """Locate the bundle entry list (``entry`` or ``bundle.entry``).

    With ``create`` a missing list is added, but an existing non-list
    ``entry`` value is never overwritten: ``ValueError`` is raised instead.
    """

    entries = document.get("entry")
    if isinstance(entries, list):
        return entries
    bundle = document.get("bundle")
    if isinstance(bundle, dict) and isinstance(bundle.get("entry"), list):
        return bundle["entry"]
    if not create:
        return None
    if entries is not None or (isinstance(bundle, dict) and bundle.get("entry") is not None):
        raise ValueError("the document's entry value is not a list; fix it in the raw JSON editor")

    container = bundle if isinstance(bundle, dict) else document
    container["entry"] = []
    return container["entry"]


def _resource_of(entry: Any) -> dict[str, Any] | None:
    if not isinstance(entry, dict):
        return None
    resource = entry.get("resource")
    if isinstance(resource, dict):
        return resource
    return entry


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def project_row(entry: Any) -> TableRow:
    resource = _resource_of(entry)
    if resource is None:
        return TableRow()
    return TableRow(**{attr: _cell_text(resource.get(key)) for attr, key in ROW_FIELDS.items()})


def project_rows(document: dict[str, Any]) -> list[TableRow]:
    return [project_row(entry) for entry in entry_list(document) or []]


def empty_entry() -> dict[str, Any]:
    return {"resource": {key: "" for key in ROW_FIELDS.values()}}


def normalise_field(name: str) -> str:
    if name not in FIELD_ALIASES:
        raise KeyError(f"unknown table column: {name}")
    return FIELD_ALIASES[name]


class ReviewSession:
    """Reconciliation state for one review of one extracted document."""

    def __init__(self, document: dict[str, Any]) -> None:
        self.canonical_document: dict[str, Any] = {}
        self.table_rows: list[TableRow] = []
        self.raw_text = ""
        self.raw_mode = EditMode.VIEW
        self.table_mode = EditMode.VIEW
        self.last_conflict: ReconciliationConflict | None = None
        self.superseded_replacement = False
        self._draft: TableRow | None = None
        self._draft_index: int | None = None
        self._pending_replacement: dict[str, Any] | None = None
        self._last_deleted: DeletedEntry | None = None
        self._install(document)

    @property
    def editing(self) -> bool:
        return self.raw_mode is EditMode.EDIT

    @property
    def has_pending_replacement(self) -> bool:
        return self._pending_replacement is not None

    @property
    def can_undo_delete(self) -> bool:
        return self._last_deleted is not None

    def document(self) -> dict[str, Any]:
        return copy.deepcopy(self.canonical_document)

    # ------------------------------------------------------------------
    # table surface
    # ------------------------------------------------------------------
    def update_cell(self, index: int, field: str, value: str) -> TableRow:
        attr = normalise_field(field)
        entries = entry_list(self.canonical_document) or []
        self._check_index(index, entries)

        value = "" if value is None else str(value)
        row = replace(self.table_rows[index], **{attr: value})

        entry = entries[index]
        resource = _resource_of(entry)
        if resource is None:
            entry = {"resource": {key: getattr(row, name) for name, key in ROW_FIELDS.items()}}
            resource = entry["resource"]
        resource[ROW_FIELDS[attr]] = value

        entries[index] = entry
        self.table_rows[index] = row
        self._after_table_edit()
        return row

    def add_row(self) -> int:
        entries = entry_list(self.canonical_document, create=True)
        entries.append(empty_entry())
        self.table_rows.append(TableRow())
        self._after_table_edit()
        return len(self.table_rows) - 1

    def delete_row(self, index: int) -> None:
        entries = entry_list(self.canonical_document) or []
        self._check_index(index, entries)
        self._discard_draft()
        removed = entries.pop(index)
        del self.table_rows[index]
        self._last_deleted = DeletedEntry(index=index, entry=removed)
        self._after_table_edit()

    def undo_delete(self) -> bool:
        if self._last_deleted is None:
            return False
        deleted = self._last_deleted
        entries = entry_list(self.canonical_document, create=True)
        index = min(deleted.index, len(entries))
        self._discard_draft()
        entries.insert(index, deleted.entry)
        self.table_rows.insert(index, project_row(deleted.entry))
        self._last_deleted = None
        self._after_table_edit()
        return True

    def begin_row_edit(self, index: int) -> TableRow:
        self._check_index(index, self.table_rows)
        self._draft = replace(self.table_rows[index])
        self._draft_index = index
        self.table_mode = EditMode.EDIT
        return self._draft

    def set_draft(self, field: str, value: str) -> TableRow:
        if self._draft is None:
            raise RuntimeError("no row is being edited")
        setattr(self._draft, normalise_field(field), "" if value is None else str(value))
        return self._draft

    def commit_row_edit(self) -> TableRow | None:
        if self._draft is None or self._draft_index is None:
            return None
        draft, index = self._draft, self._draft_index
        self._discard_draft()
        row = self.table_rows[index]
        for attr in ROW_FIELDS:
            if getattr(draft, attr) != getattr(row, attr):
                row = self.update_cell(index, attr, getattr(draft, attr))
        return row

    def cancel_row_edit(self) -> None:
        self._discard_draft()

    # ------------------------------------------------------------------
    # raw text surface
    # ------------------------------------------------------------------
    def begin_raw_edit(self) -> str:
        self.raw_mode = EditMode.EDIT
        return self.raw_text

    def type_raw(self, text: str) -> None:
        # a keystroke opens the editor; nothing propagates until save
        self.raw_mode = EditMode.EDIT
        self.raw_text = text

    def save_raw(self) -> ReconciliationConflict | None:
        if not self.editing:
            return None
        try:
            parsed = json.loads(self.raw_text)
        except json.JSONDecodeError as exc:
            return self._conflict(f"Invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})")
        if not isinstance(parsed, dict):
            return self._conflict("Invalid JSON: the document must be a JSON object")

        superseded = self._pending_replacement is not None
        if superseded:
            logger.info("Raw save supersedes a queued document replacement")
        self._pending_replacement = None
        self._install(parsed)
        self.superseded_replacement = superseded
        return None

    def cancel_raw_edit(self) -> None:
        if not self.editing:
            return
        pending = self._pending_replacement
        self._pending_replacement = None
        if pending is not None:
            self._install(pending)
        else:
            self.raw_text = serialise_document(self.canonical_document)
            self.raw_mode = EditMode.VIEW
            self.last_conflict = None

    # ------------------------------------------------------------------
    # external replacement
    # ------------------------------------------------------------------
    def replace_document(self, document: dict[str, Any]) -> bool:
        """Replace the canonical document; deferred while raw text is edited."""

        if self.editing:
            self._pending_replacement = copy.deepcopy(document)
            logger.info("Deferring document replacement until the raw editor closes")
            return False
        self._install(document)
        return True

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def as_dict(self) -> dict[str, Any]:
        return {
            "rows": [row.as_dict() for row in self.table_rows],
            "raw_text": self.raw_text,
            "raw_mode": self.raw_mode.value,
            "table_mode": self.table_mode.value,
            "draft": self._draft.as_dict() if self._draft is not None else None,
            "draft_index": self._draft_index,
            "pending_replacement": self.has_pending_replacement,
            "can_undo_delete": self.can_undo_delete,
            "conflict": self.last_conflict.message if self.last_conflict else None,
            "superseded_replacement": self.superseded_replacement,
        }

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _install(self, document: dict[str, Any]) -> None:
        canonical = copy.deepcopy(document)
        rows = project_rows(canonical)
        text = serialise_document(canonical)

        self.canonical_document = canonical
        self.table_rows = rows
        self.raw_text = text
        self.raw_mode = EditMode.VIEW
        self.last_conflict = None
        self._last_deleted = None
        self.superseded_replacement = False
        self._discard_draft()

    def _after_table_edit(self) -> None:
        if not self.editing:
            self.raw_text = serialise_document(self.canonical_document)

    def _discard_draft(self) -> None:
        self._draft = None
        self._draft_index = None
        self.table_mode = EditMode.VIEW

    def _conflict(self, message: str) -> ReconciliationConflict:
        logger.info("Raw JSON save rejected: %s", message)
        self.last_conflict = ReconciliationConflict(message)
        return self.last_conflict

    @staticmethod
    def _check_index(index: int, items: list[Any]) -> None:
        if not 0 <= index < len(items):
            raise IndexError(f"row {index} does not exist")
