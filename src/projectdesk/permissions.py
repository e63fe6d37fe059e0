"""Directory-driven permission sync.

Each managed surface gets a desired role per directory entry; only the
difference from the current grants is applied. The owner's grant and
addresses the directory doesn't know about are never touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from projectdesk.config.district import DistrictConfig
from projectdesk.constants import AutomationStatus
from projectdesk.directory import AccessRole, Directory, EffectiveAccess, effective_access, is_valid_email
from projectdesk.exceptions import ProjectDeskError
from projectdesk.notifications.dispatcher import NotificationDispatcher
from projectdesk.providers.base import ROLE_EDITOR, ROLE_OWNER, ROLE_VIEWER, FolderStore
from projectdesk.store.record import ProjectRecord

logger = logging.getLogger(__name__)

_PROVIDER_ROLE = {AccessRole.EDITOR: ROLE_EDITOR, AccessRole.VIEWER: ROLE_VIEWER}


@dataclass
class PermissionSyncResult:
    """Counts of applied deltas and every individual failure."""

    granted: int = 0
    changed: int = 0
    revoked: int = 0
    unchanged: int = 0
    skipped_unmanaged: int = 0
    project_folders: int = 0
    failures: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Surface:
    """A shared item and how to read the desired role off an access triple."""

    label: str
    item_id: str
    role_of: Callable[[EffectiveAccess], AccessRole]


class PermissionSync:
    """Applies directory access to the spreadsheet, root and parent folders."""

    def __init__(
        self,
        config: DistrictConfig,
        directory: Directory,
        folders: FolderStore,
        dispatcher: NotificationDispatcher,
        owner_address: str,
    ):
        self.config = config
        self.directory = directory
        self.folders = folders
        self.dispatcher = dispatcher
        self.owner_address = owner_address.strip().lower()

    def surfaces(self) -> list[Surface]:
        candidates = [
            Surface("Project Directory spreadsheet", self.config.main_spreadsheet_id, lambda a: a.spreadsheet_role),
            Surface("Root folder", self.config.root_folder_id, lambda a: a.root_role),
            Surface("Projects parent folder", self.config.parent_folder_id, lambda a: a.parent_folder_role),
        ]
        return [s for s in candidates if s.item_id]

    def desired_roles(self, surface: Surface) -> tuple[dict[str, str], set[str]]:
        """Desired role per managed address, plus the set to revoke.

        Entries with a blank active flag are left out entirely.
        """
        desired: dict[str, str] = {}
        revoke: set[str] = set()
        for entry in self.directory.entries:
            access = effective_access(entry)
            if access is None or not is_valid_email(entry.address):
                continue
            if entry.address == self.owner_address:
                continue
            role = surface.role_of(access)
            if role == AccessRole.NONE:
                revoke.add(entry.address)
            else:
                desired[entry.address] = _PROVIDER_ROLE[role]
        return desired, revoke

    def sync_surface(self, surface: Surface, result: PermissionSyncResult) -> None:
        try:
            grants = {g.address.lower(): g.role for g in self.folders.list_grants(surface.item_id)}
        except ProjectDeskError as e:
            result.failures.append(f"{surface.label}: could not read sharing ({e.message})")
            return

        desired, revoke = self.desired_roles(surface)
        for address, role in desired.items():
            current = grants.get(address)
            if current == ROLE_OWNER:
                continue
            if current == role:
                result.unchanged += 1
                continue
            try:
                self.folders.add_grant(surface.item_id, address, role)
            except ProjectDeskError as e:
                result.failures.append(f"{surface.label}: {address} -> {role}: {e.message}")
                continue
            if current is None:
                result.granted += 1
            else:
                result.changed += 1
            logger.debug(f"{surface.label}: {address} {current or 'none'} -> {role}")

        for address in revoke:
            current = grants.get(address)
            if current is None or current == ROLE_OWNER:
                continue
            try:
                self.folders.remove_grant(surface.item_id, address)
            except ProjectDeskError as e:
                result.failures.append(f"{surface.label}: remove {address}: {e.message}")
                continue
            result.revoked += 1
            logger.debug(f"{surface.label}: removed {address}")

    def share_project_folders(self, records: list[ProjectRecord], result: PermissionSyncResult) -> None:
        """Re-share each live project folder with its assignees and requester."""
        for record in records:
            if record.automation_status != AutomationStatus.CREATED or not record.folder_id:
                continue
            for address in self.dispatcher.recipients(record):
                try:
                    self.folders.share(record.folder_id, address, ROLE_EDITOR, suppress_notification=True)
                except ProjectDeskError as e:
                    result.failures.append(f"{record.display_title}: {address}: {e.message}")
            result.project_folders += 1

    def refresh_all(self, records: list[ProjectRecord]) -> PermissionSyncResult:
        """Sync every surface and report all failures in one notification."""
        result = PermissionSyncResult()
        result.skipped_unmanaged = sum(1 for e in self.directory.entries if not e.is_managed)
        for surface in self.surfaces():
            self.sync_surface(surface, result)
        self.share_project_folders(records, result)

        logger.info(
            f"Permissions refreshed: {result.granted} granted, {result.changed} changed, "
            f"{result.revoked} revoked, {len(result.failures)} failure(s)"
        )
        if result.failures:
            self.dispatcher.send_error(
                "Permission Refresh Issues",
                "Some permissions could not be updated:\n\n" + "\n".join(result.failures),
            )
        return result
