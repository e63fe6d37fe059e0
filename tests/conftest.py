"""Pytest fixtures for ProjectDesk tests."""

import email
from datetime import datetime

import pytest
from typer.testing import CliRunner

from projectdesk.config.settings import LockSettings, Settings
from projectdesk.constants import DIRECTORY_COLUMNS
from projectdesk.context import ExecutionContext
from projectdesk.providers import build_providers
from projectdesk.store.tables import write_rows
from projectdesk.workspace import Workspace

OWNER = "automation@district.org"
ADMIN = "admin@district.org"

# Name, Email Address, Active?, Global Access, Project Directory Role, Project Folders Role
DIRECTORY_ROWS = [
    ["Dana Reyes", "dana@district.org", "Yes", "", "Editor", "Assigned Only"],
    ["Sam Lee", "sam@district.org", "Yes", "", "", ""],
    ["Pat Kim", "pat@district.org", "Yes", "Viewer", "", ""],
    ["Alex Moore", "alex@district.org", "No", "", "Editor", "All (Editor)"],
    ["Jo Park", "jo@district.org", "", "", "Editor", ""],
]

NOW = datetime(2026, 10, 19, 8, 30, 0)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings() -> Settings:
    """Settings with short lock waits."""
    return Settings(
        owner_address=OWNER,
        lock=LockSettings(wait_seconds=0.5, intake_wait_seconds=0.5, edit_wait_seconds=0.5, poll_interval=0.01),
    )


@pytest.fixture
def workspace(tmp_path) -> Workspace:
    """Initialized workspace with a small staff directory."""
    ws = Workspace(tmp_path)
    ws.init("SUSD", OWNER, admin_addresses=[ADMIN])
    write_rows(ws.directory_path, [DIRECTORY_COLUMNS] + DIRECTORY_ROWS)
    return ws


@pytest.fixture
def context(workspace, settings) -> ExecutionContext:
    """Execution context over local providers, without retries, at a fixed time."""
    providers = build_providers(workspace, settings, retry=False)
    return ExecutionContext(workspace, settings=settings, providers=providers, now=lambda: NOW)


@pytest.fixture
def add_project(context):
    """Append a project row; keyword arguments override the defaults."""

    def _add(**fields):
        values = {
            "project_name": "Budget Review",
            "description": "Review the site budget",
            "assignee": "Dana Reyes",
            "requested_by": "Pat Kim",
            "due_date": "2026-11-02",
            "automation_status": "Ready",
        }
        values.update(fields)
        return context.store.append_record(values)

    return _add


class Outbox:
    """Read access to the workspace's queued email."""

    def __init__(self, outbox_dir):
        self.outbox_dir = outbox_dir

    def messages(self) -> list:
        paths = sorted(self.outbox_dir.glob("*.eml"))
        return [email.message_from_bytes(p.read_bytes()) for p in paths]

    @staticmethod
    def subject(message) -> str:
        return " ".join(str(message["Subject"]).split())

    @staticmethod
    def body(message) -> str:
        """Decoded HTML part of a message."""
        for part in message.walk():
            if part.get_content_type() == "text/html":
                return part.get_payload(decode=True).decode(part.get_content_charset() or "utf-8")
        return ""

    @staticmethod
    def recipients(message, header: str = "To") -> list[str]:
        value = message[header]
        return [a.strip() for a in str(value).split(",")] if value else []

    def subjects(self) -> list[str]:
        return [self.subject(m) for m in self.messages()]

    def with_subject(self, fragment: str) -> list:
        return [m for m in self.messages() if fragment in self.subject(m)]


@pytest.fixture
def outbox(workspace) -> Outbox:
    return Outbox(workspace.outbox_dir)
