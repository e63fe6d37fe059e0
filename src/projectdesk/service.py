"""Entry points: one function per trigger.

Each function takes an ``ExecutionContext`` built for this invocation.
Every entry point that writes the projects table holds the workspace lock;
the interactive edits wait only briefly and flush just the row they touched.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from projectdesk.config.settings import load_settings
from projectdesk.constants import (
    COL_COMPLETED_AT,
    FORM_ASSIGNEE_QUESTION,
    FORM_CATEGORY_QUESTION,
    TERMINAL_PROJECT_STATUS,
    AutomationStatus,
)
from projectdesk.context import ExecutionContext
from projectdesk.exceptions import ConfigValidationError, LockTimeoutError, RecordError, TransitionError
from projectdesk.guard import check_user_transition, refresh_all_guards, refresh_row_guard
from projectdesk.guard import validate_configuration as check_configuration
from projectdesk.lifecycle.processor import BatchResult
from projectdesk.maintenance import MaintenanceResult
from projectdesk.permissions import PermissionSyncResult
from projectdesk.store.record import ProjectRecord
from projectdesk.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """Outcome of one form submission."""

    record: ProjectRecord
    submitter: str | None
    batch: BatchResult


@dataclass
class StatusSummary:
    """Counts of records by automation and project status."""

    total: int = 0
    by_automation: dict[str, int] = field(default_factory=dict)
    by_project: dict[str, int] = field(default_factory=dict)
    hidden: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)
    """(record label, last automation error) for rows in Error."""


def validate_configuration(context: ExecutionContext, include_file_access: bool = False) -> None:
    """Check required config keys and project columns.

    Raises:
        ConfigValidationError: Listing every problem found.
    """
    providers = context.providers
    check_configuration(
        context.config_table.read(),
        context.config_table.keys(),
        context.store.keys() if context.store.path.exists() else [],
        folder_store=providers.folders if include_file_access else None,
        document_store=providers.documents if include_file_access else None,
    )


def _validate_or_notify(context: ExecutionContext) -> None:
    try:
        validate_configuration(context)
    except ConfigValidationError as e:
        context.dispatcher.send_error("Configuration Error", f"{e.message}\n\n{e.details}")
        raise


def process_projects(context: ExecutionContext) -> BatchResult | None:
    """Process every Ready, Updated and delete-requested row.

    Returns:
        The batch result, or None when another run holds the lock.
    """
    try:
        with context.lock.hold(context.settings.lock.wait_seconds):
            _validate_or_notify(context)
            records = context.store.load_all()
            return context.processor.process_batch(records)
    except LockTimeoutError as e:
        logger.warning(f"Skipping run: {e.message}")
        return None


def run_daily_maintenance(context: ExecutionContext, today: date | None = None) -> MaintenanceResult | None:
    """Run reminders, late marking, status digests, calendar sync and backup.

    Returns:
        The sweep result, or None when another run holds the lock.
    """
    try:
        with context.lock.hold(context.settings.lock.wait_seconds):
            _validate_or_notify(context)
            records = context.store.load_all()
            return context.scheduler.run_daily(records, today)
    except LockTimeoutError as e:
        logger.warning(f"Skipping daily maintenance: {e.message}")
        return None


def handle_submission(context: ExecutionContext, source: Any) -> SubmissionResult:
    """Append a form submission as a Ready row and process it.

    Args:
        source: Submission JSON file path or an already-parsed dict.

    Raises:
        LockTimeoutError: If the lock stays busy for the whole intake wait.
            Admins are notified first so the submission isn't lost silently.
    """
    submission = context.providers.form.read_submission(source)
    try:
        context.lock.acquire(context.settings.lock.intake_wait_seconds)
    except LockTimeoutError as e:
        context.dispatcher.send_error(
            "Form Submission Not Processed",
            f"A form submission could not be recorded because the workspace stayed locked.\n\n"
            f"{e.message}\n\nSubmitted values:\n"
            + "\n".join(f"{k}: {', '.join(v)}" for k, v in submission.named_values.items()),
        )
        raise
    try:
        _validate_or_notify(context)
        normalized = context.intake.normalize(submission)
        record = context.store.append_record(normalized.fields)
        logger.info(f"Appended form submission as {record.label()}")
        if normalized.submitter is None:
            logger.warning("Could not determine the submitter's email address")
            context.dispatcher.send_error(
                "Form Submitter Unknown",
                f"No submitter email address could be found for {record.label()}. "
                "Fill in Requested By and set the automation status to Ready.",
            )
        batch = context.processor.process_batch([record])
        return SubmissionResult(record=record, submitter=normalized.submitter, batch=batch)
    finally:
        context.lock.release()


def record_status_edit(context: ExecutionContext, reference: str, new_status: str) -> ProjectRecord:
    """Apply a person's project status edit to one row.

    Stamps the completion time the first time a project becomes Complete;
    it is never cleared afterwards.

    Raises:
        RecordNotFoundError: If ``reference`` matches no row.
        RecordError: If the status is not one of the configured statuses.
        LockTimeoutError: If a batch run holds the workspace lock.
    """
    matches = [s for s in context.codes.statuses if s.lower() == new_status.strip().lower()]
    if not matches:
        raise RecordError(
            f"Unknown project status '{new_status}'",
            hint="Choose one of: " + ", ".join(context.codes.statuses),
        )
    status = matches[0]

    with context.lock.hold(context.settings.lock.edit_wait_seconds):
        records = context.store.load_all()
        record = context.store.find(records, reference)
        record.project_status = status
        if status == TERMINAL_PROJECT_STATUS and not record.completed_at:
            record.set(COL_COMPLETED_AT, context.now().isoformat(timespec="seconds"))
            logger.info(f"{record.label()} completed")
        context.store.flush_dirty([record])
    return record


def set_automation_status(context: ExecutionContext, reference: str, value: str) -> ProjectRecord:
    """Apply a person's automation status edit, enforcing the allowed values.

    Raises:
        RecordNotFoundError: If ``reference`` matches no row.
        TransitionError: If the value isn't allowed from the current one.
        LockTimeoutError: If a batch run holds the workspace lock.
    """
    new = AutomationStatus.parse(value)
    if new is None:
        raise TransitionError(
            f"'{value}' is not an automation status",
            hint="Valid values: " + ", ".join(repr(s.value) for s in AutomationStatus if s.value),
        )
    with context.lock.hold(context.settings.lock.edit_wait_seconds):
        records = context.store.load_all()
        record = context.store.find(records, reference)
        check_user_transition(record.automation_status, new)
        record.automation_status = new
        context.store.flush_dirty([record])
        refresh_row_guard(context.store, record)
    logger.info(f"{record.label()} automation status set to {new.value!r}")
    return record


def refresh_all_permissions(context: ExecutionContext) -> PermissionSyncResult:
    records = context.store.load_all()
    return context.permissions.refresh_all(records)


def sync_form_dropdowns(context: ExecutionContext) -> dict[str, list[str]]:
    """Push active staff names and categories to the intake form."""
    choices = {
        FORM_ASSIGNEE_QUESTION: sorted(context.directory.active_names(), key=str.lower),
        FORM_CATEGORY_QUESTION: list(context.codes.categories),
    }
    for question, values in choices.items():
        context.providers.form.set_choices(question, values)
        logger.info(f"Form question '{question}' now has {len(values)} choice(s)")
    return choices


def refresh_guards(context: ExecutionContext) -> int:
    return refresh_all_guards(context.store, context.store.load_all())


def status_summary(context: ExecutionContext) -> StatusSummary:
    records = context.store.load_all()
    summary = StatusSummary(total=len(records))
    summary.by_automation = dict(Counter(r.raw_automation_status or "(blank)" for r in records))
    summary.by_project = dict(Counter(r.project_status or "(blank)" for r in records))
    summary.hidden = sum(1 for r in records if context.store.is_hidden(r))
    summary.errors = [
        (r.label(), r.automation_error)
        for r in records
        if r.automation_status == AutomationStatus.ERROR
    ]
    return summary


def init_workspace(
    path: Path,
    district_id: str,
    owner_address: str | None = None,
    admin_addresses: list[str] | None = None,
    force: bool = False,
) -> Workspace:
    """Create a workspace with default tables, templates and folders."""
    workspace = Workspace(path)
    owner = owner_address or load_settings().owner_address
    workspace.init(district_id, owner, admin_addresses=admin_addresses, force=force)
    return workspace
