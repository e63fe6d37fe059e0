"""CSV-backed record store.

Layout of ``projects.csv``:
    row 1    user-facing labels (free to edit)
    row 2    stable internal keys (``project_id``, ``due_date``, ...)
    row 3+   one project per row

Hidden rows and per-row allowed automation values live in a JSON sidecar
next to the table.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from projectdesk.constants import PROJECT_COLUMN_LABELS
from projectdesk.exceptions import ConfigError
from projectdesk.store.base import RecordStore
from projectdesk.store.record import ProjectRecord
from projectdesk.store.tables import atomic_write_json, read_json, read_rows, write_rows

logger = logging.getLogger(__name__)

LABEL_ROW = 1
KEY_ROW = 2
FIRST_DATA_ROW = 3


class CsvRecordStore(RecordStore):
    """Record store over a label-row + key-row CSV file."""

    def __init__(self, path: Path, meta_path: Path | None = None):
        self.path = Path(path)
        self.meta_path = Path(meta_path) if meta_path else self.path.with_suffix(".meta.json")
        self._keys: list[str] = []
        self._index: dict[str, int] = {}

    @classmethod
    def create(cls, path: Path, keys: list[str]) -> CsvRecordStore:
        """Create an empty table with label and key rows."""
        labels = [PROJECT_COLUMN_LABELS.get(k, k) for k in keys]
        write_rows(Path(path), [labels, list(keys)])
        return cls(path)

    # -- key row ----------------------------------------------------------

    def _read(self) -> list[list[str]]:
        if not self.path.exists():
            raise ConfigError(f"Projects table not found: {self.path}")
        rows = read_rows(self.path)
        if len(rows) < KEY_ROW:
            raise ConfigError(
                f"Projects table {self.path.name} has no key row",
                hint="Row 2 must list the internal column keys",
            )
        self._keys = [k.strip() for k in rows[KEY_ROW - 1]]
        self._index = {}
        for i, key in enumerate(self._keys):
            if key and key not in self._index:
                self._index[key] = i
        return rows

    def keys(self) -> list[str]:
        if not self._keys:
            self._read()
        return [k for k in self._keys if k]

    def column_index(self, key: str) -> int | None:
        if not self._index:
            self._read()
        return self._index.get(key)

    # -- records ----------------------------------------------------------

    def load_all(self) -> list[ProjectRecord]:
        rows = self._read()
        records = []
        for offset, row in enumerate(rows[KEY_ROW:]):
            row_number = FIRST_DATA_ROW + offset
            values = {key: row[i] if i < len(row) else "" for key, i in self._index.items()}
            record = ProjectRecord(row_number, values)
            if record.is_blank:
                continue
            records.append(record)
        logger.debug(f"Loaded {len(records)} project record(s) from {self.path.name}")
        return records

    def append_record(self, fields: dict[str, Any]) -> ProjectRecord:
        rows = self._read()
        row = [""] * len(self._keys)
        record = ProjectRecord(len(rows) + 1)
        for key, value in fields.items():
            record.set(key, value)
            idx = self._index.get(key)
            if idx is None:
                logger.warning(f"Ignoring unknown column key '{key}' on append")
                continue
            row[idx] = record.get(key)
        rows.append(row)
        write_rows(self.path, rows)
        record.mark_clean()
        logger.info(f"Appended project record at row {record.row_number}")
        return record

    def flush_dirty(self, records: list[ProjectRecord]) -> int:
        dirty = [r for r in records if r.is_dirty]
        if not dirty:
            return 0
        rows = self._read()
        for record in dirty:
            while len(rows) < record.row_number:
                rows.append([])
            row = rows[record.row_number - 1]
            for key in sorted(record.dirty_keys):
                idx = self._index.get(key)
                if idx is None:
                    logger.debug(f"Column '{key}' not in key row; not persisted for row {record.row_number}")
                    continue
                while len(row) <= idx:
                    row.append("")
                row[idx] = record.get(key)
        write_rows(self.path, rows)
        for record in dirty:
            record.mark_clean()
        logger.debug(f"Flushed {len(dirty)} dirty record(s)")
        return len(dirty)
    # -- sidecar metadata -------------------------------------------------

    def _load_meta(self) -> dict[str, Any]:
        data = read_json(self.meta_path, default={}) or {}
        return {
            "hidden": sorted(set(data.get("hidden", []))),
            "allowed": dict(data.get("allowed", {})),
        }

    def _update_meta(self, change: Callable[[dict[str, Any]], None]) -> None:
        """Re-read the sidecar, apply one change and write it back."""
        meta = self._load_meta()
        change(meta)
        atomic_write_json(self.meta_path, meta)

    def hide_record(self, record: ProjectRecord) -> None:
        def add(meta: dict[str, Any]) -> None:
            meta["hidden"] = sorted(set(meta["hidden"]) | {record.row_number})

        self._update_meta(add)
        logger.debug(f"Hid row {record.row_number}")

    def is_hidden(self, record: ProjectRecord) -> bool:
        return record.row_number in self._load_meta()["hidden"]

    def set_allowed_values(self, record: ProjectRecord, values: list[str]) -> None:
        def put(meta: dict[str, Any]) -> None:
            meta["allowed"][str(record.row_number)] = list(values)

        self._update_meta(put)

    def allowed_values(self, record: ProjectRecord) -> list[str] | None:
        values = self._load_meta()["allowed"].get(str(record.row_number))
        return list(values) if values is not None else None

    def set_all_allowed_values(self, allowed: dict[int, list[str]]) -> None:
        """Replace every stored constraint in one write."""
        def replace(meta: dict[str, Any]) -> None:
            meta["allowed"] = {str(row): list(values) for row, values in allowed.items()}

        self._update_meta(replace)
