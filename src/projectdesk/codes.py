"""Lookup codes: categories, project statuses and reminder offsets."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from projectdesk.constants import (
    CODES_CATEGORY,
    CODES_REMINDER_DAYS,
    CODES_REMINDER_LABEL,
    CODES_STATUS,
    DEFAULT_CATEGORY,
    DEFAULT_PROJECT_STATUSES,
    DEFAULT_REMINDER_OFFSETS,
)
from projectdesk.store.tables import read_dict_rows

logger = logging.getLogger(__name__)

_OFFSET_TOKEN = re.compile(r"(\d+)\s*(days?|weeks?|d|w)?\b", re.IGNORECASE)


def parse_offset_token(token: str) -> int | None:
    """Parse ``"7"``, ``"7 days"``, ``"2 weeks"`` or ``"1 week before"`` into days."""
    match = _OFFSET_TOKEN.search(token or "")
    if not match:
        return None
    number = int(match.group(1))
    unit = (match.group(2) or "").lower()
    if unit.startswith("w"):
        return number * 7
    return number


def parse_reminder_offsets(value: str | list[int] | None) -> list[int] | None:
    """Parse a reminder cell into sorted unique day counts.

    Returns:
        Offsets, or None when the cell is blank or holds nothing parseable.
    """
    if value is None:
        return None
    if isinstance(value, list):
        tokens = [str(v) for v in value]
    else:
        tokens = str(value).split(",")
    offsets = set()
    for token in tokens:
        offset = parse_offset_token(token)
        if offset is not None and offset >= 0:
            offsets.add(offset)
    return sorted(offsets) or None


def generated_label(offset: int) -> str:
    """Deterministic label for offsets without a configured one."""
    if offset > 0 and offset % 7 == 0 and offset <= 21:
        weeks = offset // 7
        return f"{weeks} week{'s' if weeks > 1 else ''} before"
    return f"{offset} day{'' if offset == 1 else 's'} before"


@dataclass
class Codes:
    """Contents of the codes table with built-in defaults."""

    categories: list[str] = field(default_factory=lambda: [DEFAULT_CATEGORY])
    statuses: list[str] = field(default_factory=lambda: list(DEFAULT_PROJECT_STATUSES))
    offset_labels: dict[int, str] = field(default_factory=dict)
    default_offsets: list[int] = field(default_factory=lambda: list(DEFAULT_REMINDER_OFFSETS))

    @classmethod
    def load(cls, path: Path) -> Codes:
        rows = read_dict_rows(Path(path))
        categories = [r[CODES_CATEGORY] for r in rows if r.get(CODES_CATEGORY)]
        statuses = [r[CODES_STATUS] for r in rows if r.get(CODES_STATUS)]
        labels: dict[int, str] = {}
        for row in rows:
            days = parse_offset_token(row.get(CODES_REMINDER_DAYS, ""))
            label = row.get(CODES_REMINDER_LABEL, "")
            if days is not None:
                labels[days] = label or generated_label(days)
        codes = cls(offset_labels=labels)
        if categories:
            codes.categories = categories
        if statuses:
            codes.statuses = statuses
        return codes

    @property
    def default_category(self) -> str:
        return self.categories[0] if self.categories else DEFAULT_CATEGORY

    def offset_to_label(self, offset: int) -> str:
        return self.offset_labels.get(offset) or generated_label(offset)

    def label_to_offset(self, label: str) -> int | None:
        """Configured label lookup (case-insensitive), then integer parse."""
        text = (label or "").strip().lower()
        if not text:
            return None
        for offset, configured in self.offset_labels.items():
            if configured.strip().lower() == text:
                return offset
        return parse_offset_token(text)

    def offsets_for(self, raw: str) -> list[int]:
        """Offsets from a record's reminder cell, defaulting when unset."""
        parsed = parse_reminder_offsets(raw)
        return parsed if parsed is not None else list(self.default_offsets)

    def format_offsets(self, offsets: list[int]) -> str:
        return ", ".join(str(o) for o in sorted(set(offsets)))
