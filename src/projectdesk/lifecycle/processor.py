"""Lifecycle processor: turns flagged records into provisioned projects.

For every record in ``Ready``, ``Updated`` or a delete state the processor
runs the side effects that state calls for and moves the record along the
lifecycle graph. Each step checks for the artifact it would create, so a
record can be re-processed after any partial failure without duplicating
folders, files or events.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from projectdesk.allocator import IdAllocator, is_valid_project_id, school_year_bucket, school_year_label
from projectdesk.codes import Codes
from projectdesk.config.district import DistrictConfig
from projectdesk.constants import (
    COL_ACTION_NUMBER,
    COL_AUTOMATION_ERROR,
    COL_CALENDAR_EVENT_ID,
    COL_CATEGORY,
    COL_CREATED_AT,
    COL_DUE_DATE,
    COL_FILE_ID,
    COL_FOLDER_ID,
    COL_GOAL_NUMBER,
    COL_REMINDER_OFFSETS,
    COL_SCHOOL_YEAR,
    INITIAL_PROJECT_STATUS,
    AutomationStatus,
)
from projectdesk.directory import Directory
from projectdesk.exceptions import ProjectDeskError, RecordValidationError, TransitionError
from projectdesk.guard import refresh_row_guard, transition
from projectdesk.lifecycle.calendar_sync import CalendarSync, diff_snapshots
from projectdesk.notifications.dispatcher import NotificationDispatcher, format_date
from projectdesk.providers.base import ROLE_EDITOR, DocumentStore, FolderStore
from projectdesk.store.base import RecordStore
from projectdesk.store.record import ProjectRecord

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Result of one processing batch."""

    created: list[str] = field(default_factory=list)
    """Project ids moved from Ready to Created."""

    resumed: list[str] = field(default_factory=list)
    """Subset of ``created`` whose artifacts all pre-existed (no email sent)."""

    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    errors: list[tuple[str, str]] = field(default_factory=list)
    """Failed rows: (record label, error message)."""

    @property
    def processed(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted) + len(self.errors)


@dataclass
class _Artifacts:
    """Which artifacts a record carried before processing started."""

    project_id: bool
    folder: bool
    file: bool
    event: bool

    @classmethod
    def of(cls, record: ProjectRecord) -> _Artifacts:
        return cls(
            project_id=bool(record.project_id),
            folder=bool(record.folder_id),
            file=bool(record.file_id),
            event=bool(record.calendar_event_id),
        )

    @property
    def complete(self) -> bool:
        return self.project_id and self.folder and self.file and self.event


class LifecycleProcessor:
    """Processes Ready, Updated and delete-flagged records.

    Args:
        config: District configuration.
        store: Record store (used to checkpoint artifacts and refresh guards).
        allocator: Project id allocator; the caller holds the workspace lock.
        directory: Name/address resolution.
        codes: Defaults for category and reminder offsets.
        folders: Folder provider.
        documents: Template/file provider.
        calendar: Calendar sync helper.
        dispatcher: Notification dispatcher.
        now: Clock, replaceable in tests.
    """

    def __init__(
        self,
        config: DistrictConfig,
        store: RecordStore,
        allocator: IdAllocator,
        directory: Directory,
        codes: Codes,
        folders: FolderStore,
        documents: DocumentStore,
        calendar: CalendarSync,
        dispatcher: NotificationDispatcher,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.store = store
        self.allocator = allocator
        self.directory = directory
        self.codes = codes
        self.folders = folders
        self.documents = documents
        self.calendar = calendar
        self.dispatcher = dispatcher
        self.now = now

    # -- validation -------------------------------------------------------

    def validate(self, record: ProjectRecord) -> list[str]:
        """Every problem that blocks provisioning, in one pass."""
        problems = []
        if not record.name:
            problems.append("Project name is missing")
        if record.project_id and not is_valid_project_id(record.project_id):
            problems.append(f"Project ID '{record.project_id}' is not a DISTRICT-YY_YY-NNNN id")

        raw_due = record.get(COL_DUE_DATE).strip()
        if not raw_due:
            problems.append("Due date is missing")
        elif record.due_date is None:
            problems.append(f"Due date '{raw_due}' is not a valid date")

        if not record.requested_by:
            problems.append("Requested by is missing")
        elif self.directory.resolve_to_address(record.requested_by) is None:
            problems.append(
                f"Requested by '{record.requested_by}' does not match a directory name or email address"
            )

        if not record.assignees:
            problems.append("Assigned to is missing")
        else:
            resolved = self.directory.resolve_all(record.assignees)
            if not resolved:
                problems.append(
                    "No assignee could be resolved to an email address: " + ", ".join(record.assignees)
                )
            else:
                unresolved = [a for a in record.assignees if self.directory.resolve_to_address(a) is None]
                if unresolved:
                    logger.warning(f"{record.label()}: ignoring unresolvable assignee(s) {unresolved}")
        return problems

    # -- shared steps -----------------------------------------------------

    def _checkpoint(self, record: ProjectRecord) -> None:
        """Persist artifact ids as soon as they exist."""
        self.store.flush_dirty([record])

    def template_field_map(self, record: ProjectRecord) -> dict[str, str]:
        return {
            "School Year": record.school_year,
            "Goal #": record.get(COL_GOAL_NUMBER),
            "Action #": record.get(COL_ACTION_NUMBER),
            "Category": record.category or self.codes.default_category,
            "Title": record.name,
            "Description": record.description,
            "Assigned to": ", ".join(self.directory.name_for(a) for a in record.assignees),
            "Requested by": self.directory.name_for(record.requested_by),
            "Deadline": format_date(record.due_date),
        }

    def share_project_folder(self, record: ProjectRecord) -> list[str]:
        """Grant editor access on the project folder to assignees and requester.

        Returns:
            One message per address that could not be shared with.
        """
        failures = []
        for address in self.dispatcher.recipients(record):
            try:
                self.folders.share(record.folder_id, address, ROLE_EDITOR, suppress_notification=True)
            except ProjectDeskError as e:
                failures.append(f"{address}: {e.message}")
        return failures

    def _provision(self, record: ProjectRecord) -> None:
        """Create missing artifacts and refresh existing ones."""
        if not record.folder_id:
            folder_id = self.folders.create(self.config.parent_folder_id, record.display_title)
            record.set(COL_FOLDER_ID, folder_id)
            self._checkpoint(record)
            logger.info(f"Created folder for {record.display_title}")

        if not record.file_id:
            file_id = self.documents.copy(
                self.config.project_template_id,
                f"{record.display_title} Project File",
                record.folder_id,
            )
            record.set(COL_FILE_ID, file_id)
            self._checkpoint(record)
            logger.info(f"Copied project template for {record.display_title}")
        self.documents.write_fields(record.file_id, self.template_field_map(record))

        failures = self.share_project_folder(record)
        if failures:
            logger.warning(f"{record.label()}: {len(failures)} folder share(s) failed")
            self.dispatcher.send_error(
                f"Folder sharing incomplete: {record.display_title}",
                "Could not share the project folder with:\n" + "\n".join(failures),
            )

        recipients = self.dispatcher.recipients(record)
        if not record.calendar_event_id:
            event_id = self.calendar.create(record, recipients)
            record.set(COL_CALENDAR_EVENT_ID, event_id)
            self._checkpoint(record)
            self.calendar.apply_color(record)
        else:
            self.calendar.sync(record, recipients)

    def _notify(self, send: Callable[[], bool], record: ProjectRecord, kind: str) -> None:
        """Send a post-transition notification; a failure is reported, not fatal."""
        try:
            send()
        except ProjectDeskError as e:
            logger.error(f"{kind} notification failed for {record.label()}: {e.message}")
            self.dispatcher.send_error(
                f"{kind} notification failed: {record.display_title}",
                f"{record.label()}\nError: {e.message}",
            )

    # -- state handlers ---------------------------------------------------

    def process_ready(self, record: ProjectRecord) -> bool:
        """Provision a Ready record and move it to Created.

        Returns:
            True if this was a silent resume (no new-project email sent).

        Raises:
            RecordValidationError: With every failing field.
        """
        before = _Artifacts.of(record)
        problems = self.validate(record)
        if problems:
            raise RecordValidationError(problems, record.label())

        if not record.project_id:
            bucket = school_year_bucket(record.due_date, self.config.school_year_start_month)
            record.project_id = self.allocator.next(bucket)
            record.set(COL_CREATED_AT, self.now().isoformat(timespec="seconds"))
            if not record.school_year:
                record.set(COL_SCHOOL_YEAR, school_year_label(bucket))
            if not record.category:
                record.set(COL_CATEGORY, self.codes.default_category)
            if not record.reminder_offsets_raw:
                record.set(COL_REMINDER_OFFSETS, self.codes.format_offsets(self.codes.default_offsets))
            self._checkpoint(record)
        else:
            logger.info(f"Resuming {record.label()} with existing id")

        if not record.project_status:
            record.project_status = INITIAL_PROJECT_STATUS
        self._provision(record)

        transition(record, AutomationStatus.CREATED)
        record.set(COL_AUTOMATION_ERROR, "")

        if before.complete:
            logger.info(f"Silent resume for {record.display_title}; new project email suppressed")
            return True
        self._notify(lambda: self.dispatcher.send_new_project(record), record, "New project")
        return False

    def process_updated(self, record: ProjectRecord) -> list[str]:
        """Re-sync an Updated record and move it back to Created.

        Returns:
            Change lines sent in the update notification.
        """
        problems = self.validate(record)
        if not record.project_id:
            problems.insert(0, "Project ID is missing; set the row to Ready instead of Updated")
        if problems:
            raise RecordValidationError(problems, record.label())

        before = self.calendar.snapshot(record.calendar_event_id)
        self._provision(record)
        after = self.calendar.snapshot(record.calendar_event_id)
        lines = diff_snapshots(before, after).lines(self.directory.name_for)

        transition(record, AutomationStatus.CREATED)
        record.set(COL_AUTOMATION_ERROR, "")
        self._notify(lambda: self.dispatcher.send_update(record, lines), record, "Update")
        return lines

    def process_delete(self, record: ProjectRecord) -> None:
        """Cancel the event, optionally notify, and move to Deleted."""
        notify = record.automation_status == AutomationStatus.DELETE_NOTIFY
        if record.calendar_event_id:
            self.calendar.cancel(record.calendar_event_id)
        if notify:
            self.dispatcher.send_cancellation(record)
        transition(record, AutomationStatus.DELETED)
        record.set(COL_AUTOMATION_ERROR, "")

    # -- batch ------------------------------------------------------------

    def _fail(self, record: ProjectRecord, error: Exception) -> str:
        """Move a record to Error and report it to the admins."""
        if isinstance(error, ProjectDeskError):
            message = error.message
            if isinstance(error, RecordValidationError):
                message = "; ".join(error.problems)
        else:
            message = f"{type(error).__name__}: {error}"
        logger.error(f"Processing failed for {record.label()}: {message}")
        logger.debug("".join(traceback.format_exception(type(error), error, error.__traceback__)))

        if record.automation_status != AutomationStatus.ERROR:
            try:
                transition(record, AutomationStatus.ERROR)
            except TransitionError as e:
                logger.error(e.message)
        record.set(COL_AUTOMATION_ERROR, message)
        try:
            self.store.flush_dirty([record])
        except OSError as e:
            logger.error(f"Could not save error state for {record.label()}: {e}")

        diagnostic = "\n".join(
            [
                f"Project ID: {record.project_id or '(not assigned)'}",
                f"Row: {record.row_number}",
                f"Title: {record.name or '(no name)'}",
                f"Requested by: {record.requested_by or '(blank)'}",
                f"Assigned to: {record.assignee or '(blank)'}",
                f"Due date: {record.get(COL_DUE_DATE) or '(blank)'}",
                "",
                f"Error: {message}",
            ]
        )
        self.dispatcher.send_error(
            f"Project Processing Failed: {record.name or f'row {record.row_number}'}",
            diagnostic,
            cc=self.directory.resolve_to_address(record.requested_by),
        )
        return message

    def process_batch(self, records: list[ProjectRecord]) -> BatchResult:
        """Process every actionable record; one row's failure never stops the rest.

        Rows are handled in phases (Ready, then Updated, then deletes).
        Deleted rows are hidden after all data writes are flushed.
        """
        result = BatchResult()
        to_hide: list[ProjectRecord] = []

        def run(state_filter, handler) -> None:
            for record in [r for r in records if state_filter(r.automation_status)]:
                try:
                    outcome = handler(record)
                except Exception as e:
                    result.errors.append((record.label(), self._fail(record, e)))
                else:
                    if handler == self.process_ready:
                        result.created.append(record.project_id)
                        if outcome:
                            result.resumed.append(record.project_id)
                    elif handler == self.process_updated:
                        result.updated.append(record.project_id)
                    else:
                        result.deleted.append(record.project_id or record.label())
                        to_hide.append(record)
                refresh_row_guard(self.store, record)

        run(lambda s: s == AutomationStatus.READY, self.process_ready)
        run(lambda s: s == AutomationStatus.UPDATED, self.process_updated)
        run(lambda s: s is not None and s.is_delete_request, self.process_delete)

        self.store.flush_dirty(records)
        for record in to_hide:
            self.store.hide_record(record)

        logger.info(
            f"Batch complete: {len(result.created)} created, {len(result.updated)} updated, "
            f"{len(result.deleted)} deleted, {len(result.errors)} error(s)"
        )
        return result
