"""Workspace folder management.

Handles the .projectdesk/ folder: table paths, local provider storage,
the lock file and first-time setup.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path

from projectdesk.constants import (
    CFG_BACKUPS_FOLDER_ID,
    CFG_DEBUG_MODE,
    CFG_DISTRICT_ID,
    CFG_ERROR_EMAILS,
    CFG_FORM_ID,
    CFG_MAIN_SPREADSHEET_ID,
    CFG_NEXT_SERIAL,
    CFG_PARENT_FOLDER_ID,
    CFG_PROJECT_TEMPLATE_ID,
    CFG_ROOT_FOLDER_ID,
    CFG_SCHOOL_YEAR_START_MONTH,
    CFG_TEMPLATE_CANCELLATION,
    CFG_TEMPLATE_NEW_PROJECT,
    CFG_TEMPLATE_REMINDER,
    CFG_TEMPLATE_STATUS_CHANGE,
    CFG_TEMPLATE_UPDATE,
    CODES_COLUMNS,
    COL_AUTOMATION_ERROR,
    DEFAULT_CATEGORY,
    DEFAULT_INTAKE_FIELD_MAP,
    DEFAULT_PROJECT_STATUSES,
    DEFAULT_REMINDER_OFFSETS,
    DEFAULT_SCHOOL_YEAR_START_MONTH,
    DIRECTORY_COLUMNS,
    FORM_ASSIGNEE_QUESTION,
    FORM_CATEGORY_QUESTION,
    INTAKE_FORM_FIELD,
    INTAKE_INTERNAL_KEY,
    REQUIRED_PROJECT_COLUMNS,
    SNAPSHOT_COLUMNS,
    TEMPLATE_FIELD_LABELS,
)
from projectdesk.exceptions import ConfigError, WorkspaceNotFoundError
from projectdesk.notifications.templates import DEFAULT_TEMPLATES
from projectdesk.providers.local import LocalDrive, LocalForm
from projectdesk.store.csv_store import CsvRecordStore
from projectdesk.store.tables import KeyValueTable, write_dict_rows, write_rows

logger = logging.getLogger(__name__)

_TEMPLATE_CONFIG_KEYS = {
    "New Project": CFG_TEMPLATE_NEW_PROJECT,
    "Reminder": CFG_TEMPLATE_REMINDER,
    "Status Change": CFG_TEMPLATE_STATUS_CHANGE,
    "Project Update": CFG_TEMPLATE_UPDATE,
    "Project Cancellation": CFG_TEMPLATE_CANCELLATION,
}


class Workspace:
    """Paths inside a workspace.

    The workspace folder structure:
        .projectdesk/
        ├── settings.yaml       # Optional runtime settings for this workspace
        ├── tables/
        │   ├── projects.csv    # Label row, key row, one project per row
        │   ├── projects.meta.json
        │   ├── config.csv      # District configuration (key, value)
        │   ├── directory.csv   # Staff and access roles
        │   ├── codes.csv       # Categories, statuses, reminder labels
        │   ├── snapshot.csv    # Last daily sweep's statuses
        │   └── intake_fields.csv
        ├── drive/              # Local folders and files
        ├── calendar.json
        ├── form.json
        ├── outbox/             # Queued email (.eml)
        └── projectdesk.lock
    """

    WORKSPACE_DIR = ".projectdesk"

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.workspace_dir = self.root / self.WORKSPACE_DIR

    @property
    def tables_dir(self) -> Path:
        return self.workspace_dir / "tables"

    @property
    def projects_path(self) -> Path:
        return self.tables_dir / "projects.csv"

    @property
    def config_path(self) -> Path:
        return self.tables_dir / "config.csv"

    @property
    def directory_path(self) -> Path:
        return self.tables_dir / "directory.csv"

    @property
    def codes_path(self) -> Path:
        return self.tables_dir / "codes.csv"

    @property
    def snapshot_path(self) -> Path:
        return self.tables_dir / "snapshot.csv"

    @property
    def intake_fields_path(self) -> Path:
        return self.tables_dir / "intake_fields.csv"

    @property
    def drive_dir(self) -> Path:
        return self.workspace_dir / "drive"

    @property
    def calendar_path(self) -> Path:
        return self.workspace_dir / "calendar.json"

    @property
    def form_path(self) -> Path:
        return self.workspace_dir / "form.json"

    @property
    def outbox_dir(self) -> Path:
        return self.workspace_dir / "outbox"

    @property
    def lock_path(self) -> Path:
        return self.workspace_dir / "projectdesk.lock"

    @property
    def settings_path(self) -> Path:
        return self.workspace_dir / "settings.yaml"

    def exists(self) -> bool:
        return self.projects_path.exists() and self.config_path.exists()

    def require(self) -> Workspace:
        """Return self, or raise if the workspace hasn't been initialized."""
        if not self.exists():
            raise WorkspaceNotFoundError(f"No workspace found in {self.root}")
        return self

    def archive_tables(self) -> bytes:
        """Zip every table into memory for backups."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(self.tables_dir.glob("*")):
                if path.is_file() and not path.name.endswith(".tmp"):
                    zf.write(path, arcname=path.name)
        return buffer.getvalue()

    def init(
        self,
        district_id: str,
        owner_address: str,
        admin_addresses: list[str] | None = None,
        force: bool = False,
    ) -> dict[str, str]:
        """Create tables, local folders, templates and the config table.

        Args:
            district_id: 2-10 letter district code used in project ids.
            owner_address: Account that owns the provisioned folders.
            admin_addresses: Recipients of error notifications.
            force: Recreate an existing workspace.

        Returns:
            The config values written.

        Raises:
            ConfigError: If the workspace exists and ``force`` is False.
        """
        if self.exists() and not force:
            raise ConfigError(
                f"Workspace already exists at {self.workspace_dir}",
                hint="Pass --force to recreate it",
            )
        district = district_id.strip().upper()
        if not (2 <= len(district) <= 10 and district.isalpha()):
            raise ConfigError(f"District ID must be 2-10 letters, got {district_id!r}")

        self.tables_dir.mkdir(parents=True, exist_ok=True)
        self.outbox_dir.mkdir(parents=True, exist_ok=True)

        CsvRecordStore.create(self.projects_path, REQUIRED_PROJECT_COLUMNS + [COL_AUTOMATION_ERROR])
        write_rows(self.directory_path, [DIRECTORY_COLUMNS])
        write_rows(self.snapshot_path, [SNAPSHOT_COLUMNS])
        write_dict_rows(
            self.intake_fields_path,
            [INTAKE_FORM_FIELD, INTAKE_INTERNAL_KEY],
            [{INTAKE_FORM_FIELD: k, INTAKE_INTERNAL_KEY: v} for k, v in DEFAULT_INTAKE_FIELD_MAP.items()],
        )
        self._write_default_codes()

        drive = LocalDrive(self.drive_dir, owner_address)
        root_id = drive.create_root("ProjectDesk")
        parent_id = drive.create(root_id, "Projects")
        backups_id = drive.create(root_id, "Backups")
        templates_id = drive.create(root_id, "Email Templates")
        spreadsheet_id = drive.upload(root_id, "Project Directory", b"")
        project_template_id = drive.create_file(
            root_id,
            "Project Template",
            "Project Overview\n",
            fields={label: "" for label in TEMPLATE_FIELD_LABELS},
        )

        config = {
            CFG_DISTRICT_ID: district,
            CFG_NEXT_SERIAL: "1",
            CFG_ROOT_FOLDER_ID: root_id,
            CFG_PARENT_FOLDER_ID: parent_id,
            CFG_MAIN_SPREADSHEET_ID: spreadsheet_id,
            CFG_PROJECT_TEMPLATE_ID: project_template_id,
            CFG_FORM_ID: "local-form",
            CFG_ERROR_EMAILS: ", ".join(admin_addresses or []),
            CFG_BACKUPS_FOLDER_ID: backups_id,
            CFG_SCHOOL_YEAR_START_MONTH: str(DEFAULT_SCHOOL_YEAR_START_MONTH),
            CFG_DEBUG_MODE: "false",
        }
        for name, text in DEFAULT_TEMPLATES.items():
            config[_TEMPLATE_CONFIG_KEYS[name]] = drive.create_file(templates_id, f"{name} Email", text)
        KeyValueTable(self.config_path).write_all(config)

        form = LocalForm(self.form_path)
        form.set_choices(FORM_ASSIGNEE_QUESTION, [])
        form.set_choices(FORM_CATEGORY_QUESTION, [DEFAULT_CATEGORY])

        logger.info(f"Initialized workspace for {district} at {self.workspace_dir}")
        return config

    def _write_default_codes(self) -> None:
        labels = {3: "3 days before", 7: "1 week before", 14: "2 weeks before"}
        size = max(len(DEFAULT_PROJECT_STATUSES), len(DEFAULT_REMINDER_OFFSETS))
        rows = []
        for i in range(size):
            offset = DEFAULT_REMINDER_OFFSETS[i] if i < len(DEFAULT_REMINDER_OFFSETS) else None
            rows.append(
                [
                    DEFAULT_CATEGORY if i == 0 else "",
                    DEFAULT_PROJECT_STATUSES[i] if i < len(DEFAULT_PROJECT_STATUSES) else "",
                    offset if offset is not None else "",
                    labels.get(offset, "") if offset is not None else "",
                ]
            )
        write_rows(self.codes_path, [CODES_COLUMNS] + rows)
