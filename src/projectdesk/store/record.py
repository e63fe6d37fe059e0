"""Project record with typed accessors and dirty tracking."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from projectdesk.constants import (
    COL_ASSIGNEE,
    COL_AUTOMATION_ERROR,
    COL_AUTOMATION_STATUS,
    COL_CALENDAR_EVENT_ID,
    COL_CATEGORY,
    COL_COMPLETED_AT,
    COL_CREATED_AT,
    COL_DESCRIPTION,
    COL_DUE_DATE,
    COL_FILE_ID,
    COL_FOLDER_ID,
    COL_NOTES,
    COL_PROJECT_ID,
    COL_PROJECT_NAME,
    COL_PROJECT_STATUS,
    COL_REMINDER_OFFSETS,
    COL_REQUESTED_BY,
    COL_SCHOOL_YEAR,
    TERMINAL_PROJECT_STATUS,
    AutomationStatus,
)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d")


def parse_date(value: str | None) -> date | None:
    """Parse a date cell (ISO first, then US formats); None if blank or invalid."""
    text = (value or "").strip()
    if not text:
        return None
    # Datetime cells keep only their date part
    text = text.split("T")[0].split(" ")[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated cell into trimmed, non-empty, de-duplicated tokens."""
    seen: list[str] = []
    for part in (value or "").split(","):
        token = part.strip()
        if token and token.lower() not in (s.lower() for s in seen):
            seen.append(token)
    return seen


class ProjectRecord:
    """One row of the projects table.

    Values are stored as strings keyed by the internal column key. Setters
    mark only the keys that actually changed so flushing rewrites just
    those cells.
    """

    def __init__(self, row_number: int, values: dict[str, str] | None = None):
        self.row_number = row_number
        self._values: dict[str, str] = dict(values or {})
        self._dirty: set[str] = set()

    def __repr__(self) -> str:
        return f"ProjectRecord(row={self.row_number}, id={self.project_id!r}, status={self.raw_automation_status!r})"

    # -- raw access -------------------------------------------------------

    def get(self, key: str) -> str:
        return self._values.get(key, "") or ""

    def set(self, key: str, value: Any) -> None:
        """Set a cell value, marking it dirty only when it changes."""
        if value is None:
            text = ""
        elif isinstance(value, (date, datetime)):
            text = value.isoformat()
        elif isinstance(value, (list, tuple)):
            text = ", ".join(str(v) for v in value)
        else:
            text = str(value)
        if self._values.get(key, "") != text:
            self._values[key] = text
            self._dirty.add(key)

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty)

    @property
    def dirty_keys(self) -> set[str]:
        return set(self._dirty)

    def mark_clean(self) -> None:
        self._dirty.clear()

    def to_dict(self) -> dict[str, str]:
        return dict(self._values)

    # -- typed fields -----------------------------------------------------

    @property
    def project_id(self) -> str:
        return self.get(COL_PROJECT_ID).strip()

    @project_id.setter
    def project_id(self, value: str) -> None:
        self.set(COL_PROJECT_ID, value)

    @property
    def created_at(self) -> str:
        return self.get(COL_CREATED_AT)

    @property
    def school_year(self) -> str:
        return self.get(COL_SCHOOL_YEAR).strip()

    @property
    def category(self) -> str:
        return self.get(COL_CATEGORY).strip()

    @property
    def name(self) -> str:
        return self.get(COL_PROJECT_NAME).strip()

    @property
    def description(self) -> str:
        return self.get(COL_DESCRIPTION).strip()

    @property
    def assignee(self) -> str:
        return self.get(COL_ASSIGNEE).strip()

    @property
    def assignees(self) -> list[str]:
        """Ordered, de-duplicated name-or-address tokens."""
        return split_list(self.get(COL_ASSIGNEE))

    @property
    def requested_by(self) -> str:
        return self.get(COL_REQUESTED_BY).strip()

    @property
    def due_date(self) -> date | None:
        return parse_date(self.get(COL_DUE_DATE))

    @property
    def project_status(self) -> str:
        return self.get(COL_PROJECT_STATUS).strip()

    @project_status.setter
    def project_status(self, value: str) -> None:
        self.set(COL_PROJECT_STATUS, value)

    @property
    def completed_at(self) -> str:
        return self.get(COL_COMPLETED_AT).strip()

    @property
    def reminder_offsets_raw(self) -> str:
        return self.get(COL_REMINDER_OFFSETS).strip()

    @property
    def raw_automation_status(self) -> str:
        return self.get(COL_AUTOMATION_STATUS).strip()

    @property
    def automation_status(self) -> AutomationStatus | None:
        """Parsed state, or None when the cell holds an unknown value."""
        return AutomationStatus.parse(self.get(COL_AUTOMATION_STATUS))

    @automation_status.setter
    def automation_status(self, value: AutomationStatus) -> None:
        self.set(COL_AUTOMATION_STATUS, value.value)

    @property
    def calendar_event_id(self) -> str:
        return self.get(COL_CALENDAR_EVENT_ID).strip()

    @property
    def folder_id(self) -> str:
        return self.get(COL_FOLDER_ID).strip()

    @property
    def file_id(self) -> str:
        return self.get(COL_FILE_ID).strip()

    @property
    def notes(self) -> str:
        return self.get(COL_NOTES).strip()

    @property
    def automation_error(self) -> str:
        return self.get(COL_AUTOMATION_ERROR).strip()

    # -- derived ----------------------------------------------------------

    @property
    def display_title(self) -> str:
        """Title used for the folder and calendar event."""
        if self.project_id:
            return f"{self.name} [{self.project_id}]"
        return self.name

    @property
    def is_complete(self) -> bool:
        return self.project_status.lower() == TERMINAL_PROJECT_STATUS.lower()

    @property
    def is_blank(self) -> bool:
        return not any(v.strip() for v in self._values.values())

    def days_until_due(self, today: date) -> int | None:
        due = self.due_date
        if due is None:
            return None
        return (due - today).days

    def label(self) -> str:
        """Short human label used in logs and diagnostics."""
        ident = self.project_id or "(no id)"
        return f"row {self.row_number} {ident} '{self.name or 'Untitled'}'"
