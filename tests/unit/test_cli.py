"""Tests for the ProjectDesk CLI."""

import json

import pytest
import yaml

from projectdesk.cli.app import app
from projectdesk.constants import DIRECTORY_COLUMNS
from projectdesk.providers.local import LocalForm
from projectdesk.store.csv_store import CsvRecordStore
from projectdesk.store.tables import write_rows
from projectdesk.workspace import Workspace

STAFF = [
    ["Dana Reyes", "dana@district.org", "Yes", "", "Editor", "Assigned Only"],
    ["Sam Lee", "sam@district.org", "Yes", "", "", ""],
    ["Pat Kim", "pat@district.org", "Yes", "Viewer", "", ""],
]


@pytest.fixture
def cli_config(tmp_path):
    """Settings file used by every invocation."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "owner_address": "automation@district.org",
                "lock": {"wait_seconds": 1, "intake_wait_seconds": 1, "poll_interval": 0.01},
                "retry": {"attempts": 1},
            }
        )
    )
    return path


@pytest.fixture
def run(cli_runner, cli_config):
    """Invoke the CLI with the test settings file."""

    def _run(*args):
        return cli_runner.invoke(app, ["--config", str(cli_config), *args])

    return _run


@pytest.fixture
def ws_dir(tmp_path, run):
    """Workspace directory initialized through the CLI."""
    directory = tmp_path / "district"
    directory.mkdir()
    result = run("init", "--district", "susd", "--admin", "admin@district.org", str(directory))
    assert result.exit_code == 0, result.output
    write_rows(Workspace(directory).directory_path, [DIRECTORY_COLUMNS] + STAFF)
    return directory


@pytest.fixture
def submission(tmp_path):
    path = tmp_path / "response.json"
    path.write_text(
        json.dumps(
            {
                "named_values": {
                    "Email Address": "pat@district.org",
                    "Project Title": "Budget Review",
                    "Assigned to": ["Dana Reyes"],
                    "Deadline": "2026-11-02",
                },
                "values": [],
            }
        )
    )
    return path


class TestAppBasics:
    """Tests for global options."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "projectdesk version" in result.output

    def test_help_lists_commands(self, cli_runner):
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "submit", "process", "maintain", "permissions", "status"):
            assert command in result.output

    def test_missing_workspace(self, run, tmp_path):
        result = run("process", "--dir", str(tmp_path))
        assert result.exit_code == 12
        assert "No workspace" in result.output


class TestInit:
    """Tests for workspace creation."""

    def test_creates_workspace(self, ws_dir):
        workspace = Workspace(ws_dir)
        assert workspace.exists()
        assert workspace.projects_path.exists()
        assert workspace.config_path.exists()

    def test_existing_workspace_needs_force(self, run, ws_dir):
        result = run("init", "--district", "SUSD", str(ws_dir))
        assert result.exit_code == 10
        assert "already exists" in result.output

        forced = run("init", "--district", "SUSD", "--admin", "admin@district.org", "--force", str(ws_dir))
        assert forced.exit_code == 0

    def test_invalid_district(self, run, tmp_path):
        result = run("init", "--district", "S1", str(tmp_path))
        assert result.exit_code == 10
        assert "2-10 letters" in result.output


class TestValidate:
    """Tests for the validate command."""

    def test_valid(self, run, ws_dir):
        result = run("validate", "--check-files", "--dir", str(ws_dir))
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_missing_admins(self, run, tmp_path):
        run("init", "--district", "SUSD", str(tmp_path))
        result = run("validate", "--dir", str(tmp_path))
        assert result.exit_code == 11
        assert "Error Email Addresses" in result.output


class TestLifecycleCommands:
    """Tests for submit, process, edits and status."""

    def test_submit(self, run, ws_dir, submission):
        result = run("submit", str(submission), "--dir", str(ws_dir))
        assert result.exit_code == 0, result.output
        assert "Created: 1" in result.output

    def test_submit_missing_file(self, run, ws_dir, tmp_path):
        result = run("submit", str(tmp_path / "nope.json"), "--dir", str(ws_dir))
        assert result.exit_code == 2

    def test_update_round_trip(self, run, ws_dir, submission):
        run("submit", str(submission), "--dir", str(ws_dir))

        edited = run("set-status", "SUSD-26_27-0001", "Updated", "--dir", str(ws_dir))
        assert edited.exit_code == 0, edited.output

        processed = run("process", "--dir", str(ws_dir))
        assert processed.exit_code == 0
        assert "Updated: 1" in processed.output

    def test_disallowed_status(self, run, ws_dir, submission):
        run("submit", str(submission), "--dir", str(ws_dir))
        result = run("set-status", "3", "Deleted", "--dir", str(ws_dir))
        assert result.exit_code == 22
        assert "Cannot change automation status" in result.output

    def test_unknown_row(self, run, ws_dir):
        result = run("set-status", "42", "Ready", "--dir", str(ws_dir))
        assert result.exit_code == 23

    def test_set_progress(self, run, ws_dir, submission):
        run("submit", str(submission), "--dir", str(ws_dir))

        result = run("set-progress", "3", "complete", "--dir", str(ws_dir))

        assert result.exit_code == 0, result.output
        assert "Completed at" in result.output
        record = CsvRecordStore(Workspace(ws_dir).projects_path).load_all()[0]
        assert record.project_status == "Complete"

    def test_set_progress_unknown_status(self, run, ws_dir, submission):
        run("submit", str(submission), "--dir", str(ws_dir))
        result = run("set-progress", "3", "Almost", "--dir", str(ws_dir))
        assert result.exit_code == 20

    def test_process_reports_errors(self, run, ws_dir):
        store = CsvRecordStore(Workspace(ws_dir).projects_path)
        store.append_record({"project_name": "Incomplete", "automation_status": "Ready"})

        result = run("process", "--dir", str(ws_dir))

        assert result.exit_code == 2
        assert "Errors: 1" in result.output

    def test_quiet_process(self, run, ws_dir):
        result = run("-q", "process", "--dir", str(ws_dir))
        assert result.exit_code == 0
        assert result.output.strip() == ""

    def test_status(self, run, ws_dir, submission):
        run("submit", str(submission), "--dir", str(ws_dir))
        result = run("status", "--dir", str(ws_dir))
        assert result.exit_code == 0
        assert "Automation Status" in result.output
        assert "Created" in result.output
        assert "Project Assigned" in result.output

    def test_status_empty(self, run, ws_dir):
        result = run("status", "--dir", str(ws_dir))
        assert result.exit_code == 0
        assert "No projects yet" in result.output


class TestAdminCommands:
    """Tests for maintenance and administration commands."""

    def test_maintain_backup(self, run, ws_dir):
        result = run("maintain", "--date", "2026-10-25", "--dir", str(ws_dir))
        assert result.exit_code == 0, result.output
        assert "Backup: Project Directory Backup 2026-10-25" in result.output

    def test_permissions(self, run, ws_dir):
        result = run("permissions", "--dir", str(ws_dir))
        assert result.exit_code == 0, result.output
        assert "Granted: 4" in result.output

    def test_sync_form(self, run, ws_dir):
        result = run("sync-form", "--dir", str(ws_dir))
        assert result.exit_code == 0
        form = LocalForm(Workspace(ws_dir).form_path)
        assert form.get_choices("Assigned to") == ["Dana Reyes", "Pat Kim", "Sam Lee"]
        assert form.get_choices("Category") == ["LCAP"]

    def test_refresh_guards(self, run, ws_dir, submission):
        run("submit", str(submission), "--dir", str(ws_dir))
        result = run("refresh-guards", "--dir", str(ws_dir))
        assert result.exit_code == 0
        assert "Refreshed guards for 1 row(s)" in result.output
