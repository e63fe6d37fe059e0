"""District configuration read from the flat key/value config table."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from projectdesk.constants import (
    CFG_BACKUPS_FOLDER_ID,
    CFG_DEBUG_MODE,
    CFG_DISTRICT_ID,
    CFG_ERROR_EMAILS,
    CFG_FORM_ID,
    CFG_MAIN_SPREADSHEET_ID,
    CFG_PARENT_FOLDER_ID,
    CFG_PROJECT_TEMPLATE_ID,
    CFG_ROOT_FOLDER_ID,
    CFG_SCHOOL_YEAR_START_MONTH,
    CFG_TEMPLATE_CANCELLATION,
    CFG_TEMPLATE_NEW_PROJECT,
    CFG_TEMPLATE_REMINDER,
    CFG_TEMPLATE_STATUS_CHANGE,
    CFG_TEMPLATE_UPDATE,
    DEFAULT_SCHOOL_YEAR_START_MONTH,
)

_TRUTHY = {"true", "yes", "y", "1", "on"}


def _split_addresses(value: str) -> list[str]:
    return [part.strip() for part in re.split(r"[,;\n]", value or "") if part.strip()]


@dataclass(frozen=True)
class DistrictConfig:
    """Immutable view of the config table for one execution.

    The raw table is kept so the startup validator can report missing keys;
    typed properties read from it with defaults.
    """

    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_table(cls, rows: dict[str, Any]) -> DistrictConfig:
        """Create from a key -> value mapping, stringifying cells."""
        return cls(
            values={
                str(k).strip(): "" if v is None else str(v).strip()
                for k, v in rows.items()
                if str(k).strip()
            }
        )

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(key, default) or default

    def has(self, key: str) -> bool:
        return bool(self.values.get(key, "").strip())

    @property
    def district_id(self) -> str:
        return self.get(CFG_DISTRICT_ID).upper()

    @property
    def parent_folder_id(self) -> str:
        return self.get(CFG_PARENT_FOLDER_ID)

    @property
    def root_folder_id(self) -> str:
        return self.get(CFG_ROOT_FOLDER_ID)

    @property
    def main_spreadsheet_id(self) -> str:
        return self.get(CFG_MAIN_SPREADSHEET_ID)

    @property
    def project_template_id(self) -> str:
        return self.get(CFG_PROJECT_TEMPLATE_ID)

    @property
    def form_id(self) -> str:
        return self.get(CFG_FORM_ID)

    @property
    def backups_folder_id(self) -> str:
        return self.get(CFG_BACKUPS_FOLDER_ID)

    @property
    def error_email_addresses(self) -> list[str]:
        return _split_addresses(self.get(CFG_ERROR_EMAILS))

    @property
    def template_new_project(self) -> str:
        return self.get(CFG_TEMPLATE_NEW_PROJECT)

    @property
    def template_reminder(self) -> str:
        return self.get(CFG_TEMPLATE_REMINDER)

    @property
    def template_status_change(self) -> str:
        return self.get(CFG_TEMPLATE_STATUS_CHANGE)

    @property
    def template_update(self) -> str:
        return self.get(CFG_TEMPLATE_UPDATE)

    @property
    def template_cancellation(self) -> str:
        return self.get(CFG_TEMPLATE_CANCELLATION)

    @property
    def debug_mode(self) -> bool:
        return self.get(CFG_DEBUG_MODE).lower() in _TRUTHY

    @property
    def school_year_start_month(self) -> int:
        """Fiscal year start month (1-12); invalid values fall back to July."""
        raw = self.get(CFG_SCHOOL_YEAR_START_MONTH)
        try:
            month = int(float(raw))
        except ValueError:
            return DEFAULT_SCHOOL_YEAR_START_MONTH
        if 1 <= month <= 12:
            return month
        return DEFAULT_SCHOOL_YEAR_START_MONTH
