"""Tests for the lifecycle processor and batch entry point."""

from datetime import date

import pytest

from projectdesk.constants import AutomationStatus
from projectdesk.exceptions import ConfigValidationError, LockTimeoutError, ProviderError
from projectdesk.lifecycle.calendar_sync import EventSnapshot, diff_snapshots
from projectdesk.locking import WorkspaceLock
from projectdesk.service import process_projects, record_status_edit, set_automation_status


def _reload(context, row_number=3):
    return next(r for r in context.store.load_all() if r.row_number == row_number)


def _set_status(context, status, row_number=3, **fields):
    """Change a row the way an operator's spreadsheet edit would."""
    record = _reload(context, row_number)
    for key, value in fields.items():
        record.set(key, value)
    record.automation_status = status
    context.store.flush_dirty([record])


class TestProcessReady:
    """Tests for provisioning Ready rows."""

    def test_provisions_new_project(self, context, add_project, outbox):
        """A valid Ready row gets an id, folder, file, event and an email."""
        add_project(assignee="Dana Reyes, sam@district.org")

        result = process_projects(context)

        assert result.created == ["SUSD-26_27-0001"]
        assert result.errors == []
        record = _reload(context)
        assert record.automation_status == AutomationStatus.CREATED
        assert record.project_status == "Project Assigned"
        assert record.school_year == "2026-2027"
        assert record.category == "LCAP"
        assert record.reminder_offsets_raw == "3, 7, 14"
        assert record.created_at == "2026-10-19T08:30:00"
        assert context.config_table.read()["Next Serial"] == "2"

    def test_creates_artifacts(self, context, add_project):
        add_project(assignee="Dana Reyes, sam@district.org")
        process_projects(context)
        record = _reload(context)
        drive = context.providers.folders

        assert drive.list_names(context.config.parent_folder_id) == ["Budget Review [SUSD-26_27-0001]"]
        grants = {g.address: g.role for g in drive.list_grants(record.folder_id)}
        assert grants == {
            "automation@district.org": "owner",
            "dana@district.org": "editor",
            "sam@district.org": "editor",
            "pat@district.org": "editor",
        }

        fields = drive.read_fields(record.file_id)
        assert fields["Title"] == "Budget Review"
        assert fields["Assigned to"] == "Dana Reyes, Sam Lee"
        assert fields["Requested by"] == "Pat Kim"
        assert fields["Deadline"] == "November 2, 2026"

        event = context.providers.calendar.get_event(record.calendar_event_id)
        assert event.title == "Budget Review [SUSD-26_27-0001]"
        assert event.date == date(2026, 11, 2)
        assert event.guests == ["dana@district.org", "pat@district.org", "sam@district.org"]
        assert event.color == "gray"

    def test_new_project_email(self, context, add_project, outbox):
        add_project(assignee="Dana Reyes, sam@district.org")
        process_projects(context)

        messages = outbox.with_subject("New project assigned")
        assert len(messages) == 1
        message = messages[0]
        assert outbox.subject(message) == "New project assigned: Budget Review (SUSD-26_27-0001)"
        assert outbox.recipients(message) == ["dana@district.org", "sam@district.org"]
        assert outbox.recipients(message, "Cc") == ["pat@district.org"]
        assert "Hello All" in outbox.body(message)

    def test_guard_refreshed_after_processing(self, context, add_project):
        add_project()
        process_projects(context)
        record = _reload(context)
        assert context.store.allowed_values(record) == [
            "Created",
            "Updated",
            "Delete (Notify)",
            "Delete (Don't Notify)",
        ]

    def test_silent_resume(self, context, add_project, outbox):
        """Re-processing a fully provisioned row creates nothing and sends nothing."""
        add_project()
        process_projects(context)
        _set_status(context, AutomationStatus.READY)

        result = process_projects(context)

        assert result.created == ["SUSD-26_27-0001"]
        assert result.resumed == ["SUSD-26_27-0001"]
        assert len(outbox.with_subject("New project assigned")) == 1
        assert context.config_table.read()["Next Serial"] == "2"
        assert len(context.providers.folders.list_names(context.config.parent_folder_id)) == 1
        assert len(context.providers.calendar.events()) == 1

    def test_resume_after_partial_failure(self, context, add_project, outbox, monkeypatch):
        """Artifacts created before a failure are reused on the retry."""
        add_project()

        def broken(*args, **kwargs):
            raise ProviderError("Calendar service unavailable")

        monkeypatch.setattr(context.providers.calendar, "create_all_day_event", broken)
        first = process_projects(context)
        record = _reload(context)

        assert len(first.errors) == 1
        assert record.automation_status == AutomationStatus.ERROR
        assert record.project_id == "SUSD-26_27-0001"
        assert record.folder_id and record.file_id
        assert not record.calendar_event_id
        assert record.automation_error == "Calendar service unavailable"
        assert len(outbox.with_subject("Project Processing Failed: Budget Review")) == 1

        monkeypatch.undo()
        set_automation_status(context, "3", "Ready")
        second = process_projects(context)

        assert second.created == ["SUSD-26_27-0001"]
        assert second.resumed == []
        assert _reload(context).automation_error == ""
        assert context.config_table.read()["Next Serial"] == "2"
        assert len(context.providers.folders.list_names(context.config.parent_folder_id)) == 1
        assert len(outbox.with_subject("New project assigned")) == 1

    def test_event_id_kept_when_coloring_fails(self, context, add_project, monkeypatch):
        """An event created before a later calendar call fails is reused, not duplicated."""
        add_project()
        calendar = context.providers.calendar
        update_color = calendar.update_color
        calls = []

        def flaky(event_id, color):
            calls.append(event_id)
            if len(calls) == 1:
                raise ProviderError("Service unavailable")
            update_color(event_id, color)

        monkeypatch.setattr(calendar, "update_color", flaky)
        first = process_projects(context)
        record = _reload(context)

        assert len(first.errors) == 1
        assert record.automation_status == AutomationStatus.ERROR
        assert record.calendar_event_id == calls[0]

        set_automation_status(context, "3", "Ready")
        second = process_projects(context)
        record = _reload(context)

        assert second.errors == []
        assert record.automation_status == AutomationStatus.CREATED
        events = calendar.events()
        assert [e.event_id for e in events] == [record.calendar_event_id]
        assert events[0].color == "gray"

    def test_ready_retry_with_missing_event(self, context, add_project, outbox):
        """A Ready row whose event was deleted elsewhere still reaches Created."""
        add_project()
        process_projects(context)
        record = _reload(context)
        context.providers.calendar.delete_event(record.calendar_event_id)
        _set_status(context, AutomationStatus.READY)

        result = process_projects(context)

        assert result.errors == []
        assert _reload(context).automation_status == AutomationStatus.CREATED
        assert len(outbox.with_subject("New project assigned")) == 1


class TestValidation:
    """Tests for record validation and failure handling."""

    def test_reports_every_problem(self, context, add_project, outbox):
        add_project(project_name="", due_date="soon", requested_by="Nobody", assignee="")

        result = process_projects(context)

        assert len(result.errors) == 1
        record = _reload(context)
        assert record.automation_status == AutomationStatus.ERROR
        assert not record.project_id
        assert "Project name is missing" in record.automation_error
        assert "Due date 'soon' is not a valid date" in record.automation_error
        assert "Requested by 'Nobody' does not match" in record.automation_error
        assert "Assigned to is missing" in record.automation_error

        messages = outbox.with_subject("[Teaming Tool Error] Project Processing Failed: row 3")
        assert len(messages) == 1
        assert outbox.recipients(messages[0]) == ["admin@district.org"]

    def test_malformed_project_id(self, context, add_project):
        add_project(project_id="Budget-1")
        result = process_projects(context)

        assert len(result.errors) == 1
        assert "Project ID 'Budget-1' is not a DISTRICT-YY_YY-NNNN id" in _reload(context).automation_error
        assert context.providers.calendar.events() == []

    def test_unresolvable_assignees(self, context, add_project):
        add_project(assignee="Nobody, Someone Else")
        process_projects(context)
        assert "No assignee could be resolved" in _reload(context).automation_error

    def test_partially_resolvable_assignees_proceed(self, context, add_project):
        add_project(assignee="Dana Reyes, Nobody")
        result = process_projects(context)
        assert result.created == ["SUSD-26_27-0001"]

    def test_one_failure_does_not_stop_the_batch(self, context, add_project, monkeypatch):
        add_project(project_name="Broken")
        add_project(project_name="Working")
        real_create = context.providers.folders.create

        def create(parent_id, name):
            if name.startswith("Broken"):
                raise RuntimeError("boom")
            return real_create(parent_id, name)

        monkeypatch.setattr(context.providers.folders, "create", create)
        result = process_projects(context)

        assert result.created == ["SUSD-26_27-0002"]
        assert result.errors == [("row 3 SUSD-26_27-0001 'Broken'", "RuntimeError: boom")]
        assert _reload(context, 4).automation_status == AutomationStatus.CREATED

    def test_error_rows_are_left_alone(self, context, add_project, outbox):
        add_project(automation_status="Error")
        result = process_projects(context)
        assert result.processed == 0
        assert outbox.messages() == []


class TestProcessUpdated:
    """Tests for re-syncing Updated rows."""

    def test_update_syncs_and_reports_changes(self, context, add_project, outbox):
        add_project()
        process_projects(context)
        _set_status(
            context,
            AutomationStatus.UPDATED,
            due_date="2026-11-09",
            assignee="Dana Reyes, Sam Lee",
        )

        result = process_projects(context)

        assert result.updated == ["SUSD-26_27-0001"]
        record = _reload(context)
        assert record.automation_status == AutomationStatus.CREATED
        event = context.providers.calendar.get_event(record.calendar_event_id)
        assert event.date == date(2026, 11, 9)
        assert "sam@district.org" in event.guests

        messages = outbox.with_subject("Project updated")
        assert len(messages) == 1
        body = outbox.body(messages[0])
        assert "Deadline changed from November 2, 2026 to November 9, 2026" in body
        assert "Added: Sam Lee" in body

    def test_update_with_missing_event(self, context, add_project, outbox):
        """A deleted event is skipped so the row can leave Updated and be retried."""
        add_project()
        process_projects(context)
        record = _reload(context)
        context.providers.calendar.delete_event(record.calendar_event_id)

        _set_status(context, AutomationStatus.UPDATED, due_date="2026-11-09")
        result = process_projects(context)

        assert result.errors == []
        assert result.updated == ["SUSD-26_27-0001"]
        assert _reload(context).automation_status == AutomationStatus.CREATED
        assert len(outbox.with_subject("Project updated")) == 1

        set_automation_status(context, "3", "Updated")
        assert process_projects(context).updated == ["SUSD-26_27-0001"]

    def test_update_without_id_fails(self, context, add_project):
        add_project(automation_status="Updated")
        result = process_projects(context)
        assert len(result.errors) == 1
        assert "Project ID is missing" in _reload(context).automation_error


class TestProcessDelete:
    """Tests for delete requests."""

    def test_delete_with_notice(self, context, add_project, outbox):
        add_project()
        process_projects(context)
        _set_status(context, AutomationStatus.DELETE_NOTIFY)

        result = process_projects(context)

        assert result.deleted == ["SUSD-26_27-0001"]
        record = _reload(context)
        assert record.automation_status == AutomationStatus.DELETED
        assert context.store.is_hidden(record)
        assert context.providers.calendar.events() == []
        assert len(outbox.with_subject("Project cancelled")) == 1

    def test_delete_is_idempotent(self, context, add_project, outbox):
        add_project()
        process_projects(context)
        _set_status(context, AutomationStatus.DELETE_NOTIFY)
        process_projects(context)

        again = process_projects(context)

        assert again.processed == 0
        assert len(outbox.with_subject("Project cancelled")) == 1

    def test_missing_event_counts_as_cancelled(self, context, add_project, outbox):
        add_project()
        process_projects(context)
        record = _reload(context)
        context.providers.calendar.delete_event(record.calendar_event_id)
        _set_status(context, AutomationStatus.DELETE_NO_NOTIFY)

        result = process_projects(context)

        assert result.deleted == ["SUSD-26_27-0001"]
        assert outbox.with_subject("Project cancelled") == []


class TestBatchEntryPoint:
    """Tests for the locked batch entry point."""

    def test_busy_lock_skips_run(self, context, add_project, workspace):
        add_project()
        with WorkspaceLock(workspace.lock_path).hold(timeout=1):
            assert process_projects(context) is None
        assert _reload(context).automation_status == AutomationStatus.READY

    def test_invalid_configuration_stops_run(self, context, add_project, outbox):
        add_project()
        context.config_table.set("Form ID", "")

        with pytest.raises(ConfigValidationError):
            process_projects(context)

        assert _reload(context).automation_status == AutomationStatus.READY
        assert len(outbox.with_subject("Configuration Error")) == 1


class TestRowEdits:
    """Tests for single-row edits made by people."""

    def test_status_edit_waits_for_batch_lock(self, context, add_project, workspace):
        add_project()
        with WorkspaceLock(workspace.lock_path).hold(timeout=1):
            with pytest.raises(LockTimeoutError):
                set_automation_status(context, "3", "Ready")
            with pytest.raises(LockTimeoutError):
                record_status_edit(context, "3", "Complete")
        assert _reload(context).project_status == ""

    def test_edit_keeps_guards_of_other_rows(self, context, add_project):
        add_project()
        add_project(project_name="Staffing Plan")
        process_projects(context)

        set_automation_status(context, "3", "Updated")

        assert context.store.allowed_values(_reload(context, 3)) == ["Updated"]
        assert context.store.allowed_values(_reload(context, 4)) == [
            "Created",
            "Updated",
            "Delete (Notify)",
            "Delete (Don't Notify)",
        ]

    def test_completion_time_is_never_cleared(self, context, add_project):
        add_project()
        process_projects(context)

        record_status_edit(context, "SUSD-26_27-0001", "complete")
        assert _reload(context).completed_at == "2026-10-19T08:30:00"

        record_status_edit(context, "3", "Project Assigned")
        record = _reload(context)
        assert record.project_status == "Project Assigned"
        assert record.completed_at == "2026-10-19T08:30:00"


class TestChangeSummary:
    """Tests for calendar change classification."""

    def test_diff(self):
        before = EventSnapshot("A [X]", date(2026, 11, 2), frozenset({"a@x.org", "b@x.org"}))
        after = EventSnapshot("B [X]", date(2026, 11, 2), frozenset({"b@x.org", "c@x.org"}))
        summary = diff_snapshots(before, after)
        assert summary.lines() == [
            'Title changed from "A [X]" to "B [X]"',
            "Added: c@x.org",
            "Removed: a@x.org",
        ]

    def test_unknown_side_is_empty(self):
        assert not diff_snapshots(None, None).has_changes
