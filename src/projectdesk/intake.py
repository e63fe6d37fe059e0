"""Form intake: map a submission onto a new Ready project record."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from projectdesk.codes import Codes
from projectdesk.constants import (
    COL_AUTOMATION_STATUS,
    COL_DUE_DATE,
    COL_REMINDER_OFFSETS,
    COL_REQUESTED_BY,
    DEFAULT_INTAKE_FIELD_MAP,
    INTAKE_FORM_FIELD,
    INTAKE_INTERNAL_KEY,
    SUBMITTER_EMAIL_FIELDS,
    SUBMITTER_EMAIL_POSITION,
    AutomationStatus,
)
from projectdesk.directory import Directory
from projectdesk.providers.base import FormSubmission
from projectdesk.store.record import parse_date
from projectdesk.store.tables import read_dict_rows

logger = logging.getLogger(__name__)


def load_field_map(path: Path) -> dict[str, str]:
    """Form field -> internal key map; the built-in aliases when no table exists."""
    rows = read_dict_rows(Path(path))
    mapping = {
        row[INTAKE_FORM_FIELD]: row[INTAKE_INTERNAL_KEY]
        for row in rows
        if row.get(INTAKE_FORM_FIELD) and row.get(INTAKE_INTERNAL_KEY)
    }
    return mapping or dict(DEFAULT_INTAKE_FIELD_MAP)


class SubmitterStrategy(ABC):
    """One way of recovering the submitter's address from a submission."""

    name: str = "strategy"

    @abstractmethod
    def resolve(self, submission: FormSubmission) -> str | None:
        pass


class NamedFieldStrategy(SubmitterStrategy):
    """Look for an address in well-known named fields."""

    name = "named field"

    def __init__(self, field_names: list[str] | None = None):
        self.field_names = field_names or list(SUBMITTER_EMAIL_FIELDS)

    def resolve(self, submission: FormSubmission) -> str | None:
        for field_name in self.field_names:
            for value in submission.named_values.get(field_name, []):
                if "@" in value:
                    return value.strip().lower()
        return None


class PositionalStrategy(SubmitterStrategy):
    """Take the address from a fixed slot of the raw values."""

    name = "positional slot"

    def __init__(self, index: int = SUBMITTER_EMAIL_POSITION):
        self.index = index

    def resolve(self, submission: FormSubmission) -> str | None:
        if len(submission.values) > self.index:
            value = submission.values[self.index].strip()
            if "@" in value:
                return value.lower()
        return None


DEFAULT_STRATEGIES: list[SubmitterStrategy] = [NamedFieldStrategy(), PositionalStrategy()]


@dataclass
class NormalizedSubmission:
    """Fields ready to append, plus how the submitter was found."""

    fields: dict[str, Any] = field(default_factory=dict)
    submitter: str | None = None
    strategy: str | None = None
    unmapped: list[str] = field(default_factory=list)


class IntakeNormalizer:
    """Turns form submissions into project record fields.

    Args:
        field_map: Raw form field name -> internal key (aliases allowed).
        directory: Used to turn the submitter address into a name.
        codes: Source of default reminder offsets.
        strategies: Submitter resolution strategies, tried in order.
    """

    def __init__(
        self,
        field_map: dict[str, str],
        directory: Directory,
        codes: Codes,
        strategies: list[SubmitterStrategy] | None = None,
    ):
        self.field_map = field_map
        self.directory = directory
        self.codes = codes
        self.strategies = strategies if strategies is not None else list(DEFAULT_STRATEGIES)

    def resolve_submitter(self, submission: FormSubmission) -> tuple[str | None, str | None]:
        """Try each strategy in order.

        Returns:
            (address, strategy name), or (None, None) when all fail.
        """
        for strategy in self.strategies:
            address = strategy.resolve(submission)
            if address:
                logger.debug(f"Submitter resolved by {strategy.name}: {address}")
                return address, strategy.name
        return None, None

    def normalize(self, submission: FormSubmission) -> NormalizedSubmission:
        result = NormalizedSubmission()
        for raw_name, values in submission.named_values.items():
            key = self.field_map.get(raw_name) or self.field_map.get(raw_name.strip())
            joined = ", ".join(v.strip() for v in values if v and v.strip())
            if key is None:
                result.unmapped.append(raw_name)
                continue
            if not joined:
                continue
            if key in result.fields and result.fields[key]:
                # Several aliases of one key answered; keep both answers
                result.fields[key] = f"{result.fields[key]}, {joined}"
            else:
                result.fields[key] = joined

        due = parse_date(result.fields.get(COL_DUE_DATE))
        if due is not None:
            result.fields[COL_DUE_DATE] = due.isoformat()

        submitter, strategy = self.resolve_submitter(submission)
        result.submitter = submitter
        result.strategy = strategy
        if submitter:
            result.fields[COL_REQUESTED_BY] = self.directory.name_for(submitter)

        result.fields[COL_REMINDER_OFFSETS] = self.codes.format_offsets(self.codes.default_offsets)
        result.fields[COL_AUTOMATION_STATUS] = AutomationStatus.READY.value
        if result.unmapped:
            logger.debug(f"Unmapped form fields ignored: {result.unmapped}")
        return result
