"""Composition root: everything one invocation needs, wired explicitly."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from projectdesk.allocator import IdAllocator
from projectdesk.codes import Codes
from projectdesk.config.district import DistrictConfig
from projectdesk.config.settings import Settings, load_settings
from projectdesk.directory import Directory
from projectdesk.intake import IntakeNormalizer, load_field_map
from projectdesk.lifecycle.calendar_sync import CalendarSync
from projectdesk.lifecycle.processor import LifecycleProcessor
from projectdesk.locking import WorkspaceLock
from projectdesk.maintenance import MaintenanceScheduler
from projectdesk.notifications.dispatcher import NotificationDispatcher
from projectdesk.notifications.templates import TemplateLoader
from projectdesk.permissions import PermissionSync
from projectdesk.providers import Providers, build_providers
from projectdesk.store.csv_store import CsvRecordStore
from projectdesk.store.snapshot import SnapshotTable
from projectdesk.store.tables import KeyValueTable
from projectdesk.workspace import Workspace

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Tables, providers and services for a single run.

    Nothing here is module-global: each CLI command (or test) builds its
    own context, and every collaborator receives its dependencies through
    its constructor.

    Args:
        workspace: Workspace to operate on (must be initialized).
        settings: Runtime settings; loaded from the workspace when omitted.
        providers: Provider bundle; local providers are built when omitted.
        now: Clock, replaceable in tests.
    """

    def __init__(
        self,
        workspace: Workspace,
        settings: Settings | None = None,
        providers: Providers | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.workspace = workspace.require()
        self.settings = settings or load_settings(
            workspace.settings_path if workspace.settings_path.exists() else None
        )
        self.now = now

        self.config_table = KeyValueTable(workspace.config_path)
        self.config = DistrictConfig.from_table(self.config_table.read())
        self.directory = Directory.load(workspace.directory_path)
        self.codes = Codes.load(workspace.codes_path)
        self.store = CsvRecordStore(workspace.projects_path)
        self.snapshot = SnapshotTable(workspace.snapshot_path)
        self.providers = providers or build_providers(workspace, self.settings)
        self.lock = WorkspaceLock(workspace.lock_path, self.settings.lock.poll_interval)

        self.allocator = IdAllocator(self.config_table)
        self.templates = TemplateLoader(self.providers.documents)
        self.dispatcher = NotificationDispatcher(
            self.config,
            self.directory,
            self.providers.mail,
            self.templates,
            self.providers.folders,
            now=now,
        )
        self.calendar = CalendarSync(self.providers.calendar, self.providers.folders)
        self.processor = LifecycleProcessor(
            config=self.config,
            store=self.store,
            allocator=self.allocator,
            directory=self.directory,
            codes=self.codes,
            folders=self.providers.folders,
            documents=self.providers.documents,
            calendar=self.calendar,
            dispatcher=self.dispatcher,
            now=now,
        )
        self.scheduler = MaintenanceScheduler(
            config=self.config,
            store=self.store,
            codes=self.codes,
            snapshot=self.snapshot,
            calendar=self.calendar,
            dispatcher=self.dispatcher,
            folders=self.providers.folders,
            documents=self.providers.documents,
            archive=workspace.archive_tables,
            now=now,
        )
        self.permissions = PermissionSync(
            self.config,
            self.directory,
            self.providers.folders,
            self.dispatcher,
            self.settings.owner_address,
        )
        self.intake = IntakeNormalizer(
            load_field_map(workspace.intake_fields_path),
            self.directory,
            self.codes,
        )
        logger.debug(f"Execution context ready for {workspace.root}")

    @classmethod
    def open(cls, directory: Path, config_path: Path | None = None, **kwargs) -> ExecutionContext:
        """Open the workspace under ``directory``.

        Args:
            directory: Folder containing ``.projectdesk/``.
            config_path: Settings file overriding the workspace's own.
        """
        workspace = Workspace(directory)
        settings = kwargs.pop("settings", None)
        if settings is None and config_path is not None:
            settings = load_settings(config_path)
        return cls(workspace, settings=settings, **kwargs)
