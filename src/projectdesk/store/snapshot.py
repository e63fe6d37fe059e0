"""Status snapshot used for daily change detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from projectdesk.constants import COL_PROJECT_ID, COL_PROJECT_STATUS, SNAPSHOT_COLUMNS
from projectdesk.store.tables import read_dict_rows, write_dict_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChange:
    """A project whose status differs from the last snapshot."""

    project_id: str
    old_status: str
    new_status: str


def diff_statuses(previous: dict[str, str], current: dict[str, str]) -> list[StatusChange]:
    """Compare two id -> status maps.

    Only ids present in both maps with a different status are changes.
    Newly seen ids and dropped ids are not reported.
    """
    changes = []
    for project_id, new_status in current.items():
        if project_id not in previous:
            continue
        old_status = previous[project_id]
        if old_status != new_status:
            changes.append(StatusChange(project_id, old_status, new_status))
    return changes


class SnapshotTable:
    """Two-column ``(project_id, project_status)`` table replaced wholesale each sweep."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> dict[str, str]:
        snapshot = {}
        for row in read_dict_rows(self.path):
            project_id = row.get(COL_PROJECT_ID, "")
            if project_id:
                snapshot[project_id] = row.get(COL_PROJECT_STATUS, "")
        return snapshot

    def overwrite(self, statuses: dict[str, str]) -> None:
        rows = [{COL_PROJECT_ID: k, COL_PROJECT_STATUS: v} for k, v in sorted(statuses.items())]
        write_dict_rows(self.path, SNAPSHOT_COLUMNS, rows)
        logger.debug(f"Snapshot replaced with {len(rows)} entries")
