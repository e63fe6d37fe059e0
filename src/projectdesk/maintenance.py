"""Daily maintenance sweep.

Runs, in order: reminders, late marking, status-change digests, calendar
reconciliation and the weekly backup. Each step is isolated: a failing
step is logged and reported without preventing the next one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime

from projectdesk.codes import Codes
from projectdesk.config.district import DistrictConfig
from projectdesk.constants import (
    BACKUP_NAME_PREFIX,
    COL_COMPLETED_AT,
    STATUS_LATE,
    AutomationStatus,
)
from projectdesk.exceptions import ProjectDeskError
from projectdesk.lifecycle.calendar_sync import CalendarSync
from projectdesk.notifications.dispatcher import NotificationDispatcher
from projectdesk.providers.base import DocumentStore, FolderStore
from projectdesk.store.base import RecordStore
from projectdesk.store.record import ProjectRecord
from projectdesk.store.snapshot import SnapshotTable, StatusChange, diff_statuses

logger = logging.getLogger(__name__)

SUNDAY = 6


@dataclass
class MaintenanceResult:
    """What one daily sweep did."""

    reminders_sent: int = 0
    marked_late: list[str] = field(default_factory=list)
    status_changes: list[StatusChange] = field(default_factory=list)
    snapshot_initialized: bool = False
    calendar_resynced: list[str] = field(default_factory=list)
    backup_name: str | None = None
    errors: list[tuple[str, str]] = field(default_factory=list)
    """Failures: (step or item, error message)."""


def is_active_project(record: ProjectRecord) -> bool:
    """Created, with an id, and not complete."""
    return (
        record.automation_status == AutomationStatus.CREATED
        and bool(record.project_id)
        and not record.is_complete
    )


class MaintenanceScheduler:
    """Daily sweep over the project records."""

    def __init__(
        self,
        config: DistrictConfig,
        store: RecordStore,
        codes: Codes,
        snapshot: SnapshotTable,
        calendar: CalendarSync,
        dispatcher: NotificationDispatcher,
        folders: FolderStore,
        documents: DocumentStore,
        archive: Callable[[], bytes],
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.store = store
        self.codes = codes
        self.snapshot = snapshot
        self.calendar = calendar
        self.dispatcher = dispatcher
        self.folders = folders
        self.documents = documents
        self.archive = archive
        self.now = now

    # -- reminders --------------------------------------------------------

    def find_reminders(
        self, records: list[ProjectRecord], today: date
    ) -> dict[str, list[tuple[ProjectRecord, int]]]:
        """Group due reminders by assignee address.

        A project is due for a reminder when the days until its due date
        equal one of its reminder offsets.
        """
        grouped: dict[str, list[tuple[ProjectRecord, int]]] = {}
        for record in records:
            if not is_active_project(record):
                continue
            days = record.days_until_due(today)
            if days is None or days not in self.codes.offsets_for(record.reminder_offsets_raw):
                continue
            for address in self.dispatcher.assignee_addresses(record):
                grouped.setdefault(address, []).append((record, days))
        return grouped

    def send_reminders(self, records: list[ProjectRecord], today: date, result: MaintenanceResult) -> None:
        for address, reminders in self.find_reminders(records, today).items():
            try:
                if self.dispatcher.send_reminder_digest(address, reminders):
                    result.reminders_sent += 1
            except ProjectDeskError as e:
                result.errors.append((f"Reminder to {address}", e.message))
        logger.info(f"Sent {result.reminders_sent} reminder email(s)")

    # -- lateness ---------------------------------------------------------

    def mark_late(self, records: list[ProjectRecord], today: date) -> list[ProjectRecord]:
        """Set status Late on active projects due today or earlier."""
        late = []
        for record in records:
            if not is_active_project(record) or record.due_date is None:
                continue
            if record.due_date <= today and record.project_status != STATUS_LATE:
                record.project_status = STATUS_LATE
                late.append(record)
        if late:
            logger.info(f"Marked {len(late)} project(s) late")
        return late

    # -- status changes ---------------------------------------------------

    @staticmethod
    def current_statuses(records: list[ProjectRecord]) -> dict[str, str]:
        """Id -> status for every record with an id that isn't Deleted."""
        return {
            r.project_id: r.project_status
            for r in records
            if r.project_id and r.automation_status != AutomationStatus.DELETED
        }

    def detect_status_changes(
        self, records: list[ProjectRecord], today: date, result: MaintenanceResult
    ) -> list[StatusChange]:
        """Diff against the snapshot, notify, then replace the snapshot."""
        current = self.current_statuses(records)
        previous = self.snapshot.load()
        if not previous:
            self.snapshot.overwrite(current)
            result.snapshot_initialized = True
            logger.info("Status snapshot initialized; no changes reported this run")
            return []

        changes = diff_statuses(previous, current)
        by_id = {r.project_id: r for r in records if r.project_id}
        digests: dict[str, list[tuple[ProjectRecord, str, str]]] = {}
        for change in changes:
            record = by_id[change.project_id]
            if record.is_complete and not record.completed_at:
                record.set(COL_COMPLETED_AT, self.now().isoformat(timespec="seconds"))
            try:
                self.calendar.refresh_status(record)
            except ProjectDeskError as e:
                result.errors.append((f"Calendar color for {record.display_title}", e.message))
            for address in self.dispatcher.recipients(record):
                digests.setdefault(address, []).append((record, change.old_status, change.new_status))

        for address, items in digests.items():
            try:
                self.dispatcher.send_status_change_digest(address, items, today)
            except ProjectDeskError as e:
                result.errors.append((f"Status digest to {address}", e.message))

        self.snapshot.overwrite(current)
        logger.info(f"Detected {len(changes)} status change(s)")
        return changes

    # -- calendar reconciliation ------------------------------------------

    def reconcile_calendar(self, records: list[ProjectRecord], result: MaintenanceResult) -> None:
        """Re-sync events whose date or guests drifted from the record."""
        for record in records:
            if record.automation_status != AutomationStatus.CREATED or not record.calendar_event_id:
                continue
            recipients = self.dispatcher.recipients(record)
            try:
                problems = self.calendar.mismatches(record, recipients)
                if not problems:
                    continue
                logger.info(f"Re-syncing calendar for {record.display_title}: {', '.join(problems)}")
                self.calendar.sync(record, recipients)
                result.calendar_resynced.append(record.project_id)
                self.dispatcher.send_update(record, ["Calendar event re-synced: " + ", ".join(problems)])
            except ProjectDeskError as e:
                result.errors.append((f"Calendar sync for {record.display_title}", e.message))

    # -- backup -----------------------------------------------------------

    def backup(self, today: date, force: bool = False) -> str | None:
        """Upload a weekly archive of the tables on Sundays.

        Returns:
            Backup name when one was written, else None.
        """
        if today.weekday() != SUNDAY and not force:
            return None
        folder_id = self.config.backups_folder_id
        if not folder_id:
            logger.info("No Backups Folder ID configured; skipping backup")
            return None
        name = f"{BACKUP_NAME_PREFIX} {today.isoformat()}"
        if name in self.folders.list_names(folder_id):
            logger.info(f"Backup '{name}' already exists")
            return None
        self.documents.upload(folder_id, name, self.archive())
        logger.info(f"Wrote backup '{name}'")
        return name

    # -- sweep ------------------------------------------------------------

    def run_daily(self, records: list[ProjectRecord], today: date | None = None) -> MaintenanceResult:
        """Run every maintenance step, flush once, and report failures once."""
        today = today or self.now().date()
        result = MaintenanceResult()

        steps: list[tuple[str, Callable[[], None]]] = [
            ("Reminders", lambda: self.send_reminders(records, today, result)),
            ("Mark late", lambda: result.marked_late.extend(r.project_id for r in self.mark_late(records, today))),
            ("Status changes", lambda: result.status_changes.extend(self.detect_status_changes(records, today, result))),
            ("Calendar sync", lambda: self.reconcile_calendar(records, result)),
        ]
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.error(f"Maintenance step '{name}' failed: {e}")
                result.errors.append((name, f"{type(e).__name__}: {e}"))

        self.store.flush_dirty(records)

        try:
            result.backup_name = self.backup(today)
        except Exception as e:
            logger.error(f"Backup failed: {e}")
            result.errors.append(("Backup", f"{type(e).__name__}: {e}"))

        if result.errors:
            self.dispatcher.send_error(
                "Daily Maintenance Issues",
                "\n".join(f"{where}: {message}" for where, message in result.errors),
            )
        return result
