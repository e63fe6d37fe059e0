"""CSV table files backing the workspace.

Every write goes through a temp file + rename so an interrupted run never
leaves a half-written table behind.
"""

from __future__ import annotations

import csv
import io
import json
import os
from pathlib import Path
from typing import Any


def atomic_write_text(path: Path, text: str) -> None:
    """Write text atomically using temp file + rename.

    Args:
        path: Target file path.
        text: Full file contents.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", newline="", encoding="utf-8") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)  # Atomic on POSIX systems


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON data atomically."""
    atomic_write_text(path, json.dumps(data, indent=2, sort_keys=True))


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file, returning ``default`` when it doesn't exist."""
    if not path.exists():
        return default
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def read_rows(path: Path) -> list[list[str]]:
    """Read every row of a CSV file as lists of strings."""
    if not path.exists():
        return []
    with open(path, newline="", encoding="utf-8") as f:
        return [list(row) for row in csv.reader(f)]


def write_rows(path: Path, rows: list[list[Any]]) -> None:
    """Replace a CSV file with the given rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    atomic_write_text(path, buffer.getvalue())


def read_dict_rows(path: Path) -> list[dict[str, str]]:
    """Read a header + data CSV into dicts keyed by the stripped header.

    Blank rows are skipped.
    """
    rows = read_rows(path)
    if not rows:
        return []
    header = [h.strip() for h in rows[0]]
    result = []
    for row in rows[1:]:
        if not any(cell.strip() for cell in row):
            continue
        padded = row + [""] * (len(header) - len(row))
        result.append({h: padded[i].strip() for i, h in enumerate(header) if h})
    return result


def write_dict_rows(path: Path, columns: list[str], rows: list[dict[str, Any]]) -> None:
    """Write dicts under a fixed header."""
    write_rows(path, [columns] + [[row.get(c, "") for c in columns] for row in rows])


class KeyValueTable:
    """Two-column ``key,value`` table such as the district config.

    Reads are always from disk so a caller holding the workspace lock sees
    the latest committed values; ``set`` writes through immediately.
    """

    HEADER = ["Key", "Value"]

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> dict[str, str]:
        values: dict[str, str] = {}
        for row in read_rows(self.path)[1:]:
            if not row or not row[0].strip():
                continue
            values[row[0].strip()] = row[1].strip() if len(row) > 1 else ""
        return values

    def keys(self) -> list[str]:
        """All keys in table order, including duplicates."""
        return [row[0].strip() for row in read_rows(self.path)[1:] if row and row[0].strip()]

    def set(self, key: str, value: Any) -> None:
        """Set a single value and flush it to disk before returning."""
        rows = read_rows(self.path) or [list(self.HEADER)]
        for row in rows[1:]:
            if row and row[0].strip() == key:
                while len(row) < 2:
                    row.append("")
                row[1] = str(value)
                break
        else:
            rows.append([key, str(value)])
        write_rows(self.path, rows)

    def write_all(self, values: dict[str, Any]) -> None:
        write_rows(self.path, [list(self.HEADER)] + [[k, v] for k, v in values.items()])
