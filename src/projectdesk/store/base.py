"""Base class for project record stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from projectdesk.exceptions import RecordNotFoundError
from projectdesk.store.record import ProjectRecord


class RecordStore(ABC):
    """Typed, dirty-tracked access to project records.

    Records are addressed by stable internal column keys, never by
    position, so relabeling or reordering columns doesn't break callers.
    """

    @abstractmethod
    def load_all(self) -> list[ProjectRecord]:
        """Load every record and rebuild the key -> column index map.

        Returns:
            Records in table order.
        """
        pass

    @abstractmethod
    def column_index(self, key: str) -> int | None:
        """Get the 0-based column index for an internal key.

        Returns:
            Index, or None if the key row doesn't contain the key.
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All identifiers of the key row, in order and including duplicates."""
        pass

    @abstractmethod
    def append_record(self, fields: dict[str, Any]) -> ProjectRecord:
        """Append a new record built from a key -> value map.

        Returns:
            The appended record (clean).
        """
        pass

    @abstractmethod
    def flush_dirty(self, records: list[ProjectRecord]) -> int:
        """Write only the mutated fields of dirty records.

        Returns:
            Number of records written.
        """
        pass

    @abstractmethod
    def hide_record(self, record: ProjectRecord) -> None:
        """Hide a record from the default view."""
        pass

    @abstractmethod
    def is_hidden(self, record: ProjectRecord) -> bool:
        pass

    @abstractmethod
    def set_allowed_values(self, record: ProjectRecord, values: list[str]) -> None:
        """Constrain the automation status values a user may enter for a record."""
        pass

    @abstractmethod
    def allowed_values(self, record: ProjectRecord) -> list[str] | None:
        """Currently stored constraint for a record, if any."""
        pass

    def set_all_allowed_values(self, allowed: dict[int, list[str]]) -> None:
        """Replace constraints for many rows, keyed by row number."""
        for row_number, values in allowed.items():
            self.set_allowed_values(ProjectRecord(row_number), values)

    def find(self, records: list[ProjectRecord], reference: str) -> ProjectRecord:
        """Find a record by project id or row number.

        Raises:
            RecordNotFoundError: If nothing matches.
        """
        ref = str(reference).strip()
        for record in records:
            if record.project_id and record.project_id.lower() == ref.lower():
                return record
        if ref.isdigit():
            for record in records:
                if record.row_number == int(ref):
                    return record
        raise RecordNotFoundError(
            f"No project matches '{ref}'",
            hint="Use a project id (e.g. SUSD-25_26-0001) or a row number from 'projectdesk status'",
        )
