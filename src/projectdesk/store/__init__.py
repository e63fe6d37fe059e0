"""Record storage: projects table, snapshot and workspace tables."""

from projectdesk.store.base import RecordStore
from projectdesk.store.csv_store import CsvRecordStore
from projectdesk.store.record import ProjectRecord
from projectdesk.store.snapshot import SnapshotTable, StatusChange, diff_statuses
from projectdesk.store.tables import KeyValueTable

__all__ = [
    "CsvRecordStore",
    "KeyValueTable",
    "ProjectRecord",
    "RecordStore",
    "SnapshotTable",
    "StatusChange",
    "diff_statuses",
]
