"""Tests for lifecycle guards and configuration validation."""

import pytest

from projectdesk.constants import REQUIRED_CONFIG_KEYS, REQUIRED_PROJECT_COLUMNS
from projectdesk.constants import AutomationStatus as S
from projectdesk.exceptions import ConfigValidationError, TransitionError
from projectdesk.guard import (
    allowed_next_values,
    allowed_value_list,
    check_user_transition,
    refresh_all_guards,
    transition,
    validate_configuration,
)
from projectdesk.store.record import ProjectRecord


class TestAllowedNextValues:
    """Tests for the user-facing transition table."""

    @pytest.mark.parametrize(
        "current,expected",
        [
            (S.BLANK, {S.READY}),
            (S.READY, {S.READY}),
            (S.CREATED, {S.CREATED, S.UPDATED, S.DELETE_NOTIFY, S.DELETE_NO_NOTIFY}),
            (S.UPDATED, {S.UPDATED}),
            (S.DELETE_NOTIFY, {S.DELETE_NOTIFY}),
            (S.DELETE_NO_NOTIFY, {S.DELETE_NO_NOTIFY}),
            (S.DELETED, {S.DELETED}),
            (S.ERROR, {S.ERROR, S.READY}),
        ],
    )
    def test_table(self, current, expected):
        assert allowed_next_values(current) == expected

    def test_unknown_value_allows_nothing(self):
        """An unparseable cell gets no allowed values."""
        assert allowed_next_values(None) == set()
        assert allowed_value_list(None) == []

    def test_list_is_in_lifecycle_order(self):
        assert allowed_value_list(S.CREATED) == [
            "Created",
            "Updated",
            "Delete (Notify)",
            "Delete (Don't Notify)",
        ]

    def test_blank_cannot_jump_to_created(self):
        with pytest.raises(TransitionError):
            check_user_transition(S.BLANK, S.CREATED)

    def test_deleted_is_terminal(self):
        with pytest.raises(TransitionError) as exc:
            check_user_transition(S.DELETED, S.READY)
        assert "Deleted" in exc.value.message

    def test_error_can_retry(self):
        check_user_transition(S.ERROR, S.READY)


class TestMachineTransition:
    """Tests for processor-driven moves."""

    def test_ready_to_created(self):
        record = ProjectRecord(3, {"automation_status": "Ready"})
        transition(record, S.CREATED)
        assert record.automation_status == S.CREATED
        assert "automation_status" in record.dirty_keys

    def test_created_cannot_move_to_deleted(self):
        record = ProjectRecord(3, {"automation_status": "Created"})
        with pytest.raises(TransitionError):
            transition(record, S.DELETED)
        assert record.automation_status == S.CREATED

    @pytest.mark.parametrize("start", ["Ready", "Updated", "Delete (Notify)", "Delete (Don't Notify)"])
    def test_actionable_states_can_fail(self, start):
        record = ProjectRecord(3, {"automation_status": start})
        transition(record, S.ERROR)
        assert record.automation_status == S.ERROR


class TestRefreshGuards:
    """Tests for storing allowed values per row."""

    def test_refresh_all(self, context, add_project):
        add_project(automation_status="")
        add_project(automation_status="Created", project_id="SUSD-26_27-0001")
        records = context.store.load_all()

        assert refresh_all_guards(context.store, records) == 2
        assert context.store.allowed_values(records[0]) == ["Ready"]
        assert "Updated" in context.store.allowed_values(records[1])


class TestValidateConfiguration:
    """Tests for the startup configuration check."""

    def _config(self):
        return {key: "x" for key in REQUIRED_CONFIG_KEYS}

    def _columns(self):
        return list(REQUIRED_PROJECT_COLUMNS)

    def test_valid(self):
        config = self._config()
        validate_configuration(config, list(config), self._columns())

    def test_reports_every_problem_at_once(self):
        """Missing and duplicate keys are collected into one error."""
        config = self._config()
        del config["Form ID"]
        config["Error Email Addresses"] = " "
        keys = list(config) + ["District ID"]
        columns = [c for c in self._columns() if c != "due_date"] + ["notes"]

        with pytest.raises(ConfigValidationError) as exc:
            validate_configuration(config, keys, columns)

        problems = exc.value.problems
        assert "Missing config value: 'Form ID'" in problems
        assert "Missing config value: 'Error Email Addresses'" in problems
        assert "Duplicate config key: 'District ID' (2 times)" in problems
        assert "Missing project column key: 'due_date'" in problems
        assert "Duplicate project column key: 'notes' (2 times)" in problems
        assert len(problems) == 5

    def test_file_access(self, context):
        """Configured ids must exist when file checks are requested."""
        config = context.config_table.read()
        config["Project Template ID"] = "missing-template"

        with pytest.raises(ConfigValidationError) as exc:
            validate_configuration(
                config,
                list(config),
                context.store.keys(),
                folder_store=context.providers.folders,
                document_store=context.providers.documents,
            )
        assert exc.value.problems == [
            "'Project Template ID' points at a missing file or folder: missing-template"
        ]
