"""Staff directory and effective access computation.

The directory maps names to addresses and carries the access fields that
drive permission sync. Each entry resolves to an :class:`EffectiveAccess`
by precedence:

- Active flag ``No`` revokes everything; blank leaves the person unmanaged.
- Global ``Editor`` wins outright.
- Global ``Viewer`` sets a viewer baseline that per-area roles may upgrade.
- Without global access the per-area roles apply as written.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from projectdesk.constants import (
    DIR_ACTIVE,
    DIR_EMAIL,
    DIR_FOLDER_ROLE,
    DIR_GLOBAL_ACCESS,
    DIR_MAIN_ROLE,
    DIR_NAME,
)
from projectdesk.store.tables import read_dict_rows

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: str | None) -> bool:
    return bool(value) and bool(_EMAIL_PATTERN.match(value.strip()))


class ActiveFlag(str, Enum):
    """Three-state active flag; UNSET is distinct from NO."""

    YES = "yes"
    NO = "no"
    UNSET = ""

    @classmethod
    def parse(cls, value: str | None) -> ActiveFlag:
        text = (value or "").strip().lower()
        if text in ("yes", "y", "true", "active", "1"):
            return cls.YES
        if text in ("no", "n", "false", "inactive", "0"):
            return cls.NO
        return cls.UNSET


class AccessRole(str, Enum):
    NONE = "none"
    VIEWER = "viewer"
    EDITOR = "editor"

    @classmethod
    def parse(cls, value: str | None) -> AccessRole | None:
        """Parse a role cell; None when blank."""
        text = (value or "").strip().lower()
        if not text:
            return None
        if text.startswith("edit"):
            return cls.EDITOR
        if text.startswith("view") or text.startswith("read"):
            return cls.VIEWER
        return cls.NONE

    @property
    def rank(self) -> int:
        return {"none": 0, "viewer": 1, "editor": 2}[self.value]


class FolderScope(str, Enum):
    NONE = "none"
    ASSIGNED_ONLY = "assigned_only"
    ALL_VIEWER = "all_viewer"
    ALL_EDITOR = "all_editor"

    @classmethod
    def parse(cls, value: str | None) -> FolderScope | None:
        """Parse a folder scope cell such as ``All (Editor)``; None when blank."""
        text = re.sub(r"[^a-z]+", "_", (value or "").strip().lower()).strip("_")
        if not text:
            return None
        if "assigned" in text:
            return cls.ASSIGNED_ONLY
        if text.startswith("all"):
            return cls.ALL_EDITOR if "edit" in text else cls.ALL_VIEWER
        return cls.NONE

    @property
    def rank(self) -> int:
        return {"none": 0, "assigned_only": 1, "all_viewer": 2, "all_editor": 3}[self.value]


@dataclass(frozen=True)
class EffectiveAccess:
    """Resolved access of one person across the managed surfaces."""

    spreadsheet_role: AccessRole
    folder_scope: FolderScope
    root_role: AccessRole

    @property
    def parent_folder_role(self) -> AccessRole:
        if self.folder_scope == FolderScope.ALL_EDITOR:
            return AccessRole.EDITOR
        if self.folder_scope == FolderScope.ALL_VIEWER:
            return AccessRole.VIEWER
        return AccessRole.NONE


REVOKED = EffectiveAccess(AccessRole.NONE, FolderScope.NONE, AccessRole.NONE)


@dataclass
class DirectoryEntry:
    """One person in the directory table."""

    name: str
    address: str
    active: ActiveFlag = ActiveFlag.UNSET
    global_role: AccessRole | None = None
    main_role: AccessRole | None = None
    folder_scope: FolderScope | None = None

    @classmethod
    def from_row(cls, row: dict[str, str]) -> DirectoryEntry:
        return cls(
            name=row.get(DIR_NAME, "").strip(),
            address=row.get(DIR_EMAIL, "").strip().lower(),
            active=ActiveFlag.parse(row.get(DIR_ACTIVE)),
            global_role=AccessRole.parse(row.get(DIR_GLOBAL_ACCESS)),
            main_role=AccessRole.parse(row.get(DIR_MAIN_ROLE)),
            folder_scope=FolderScope.parse(row.get(DIR_FOLDER_ROLE)),
        )

    @property
    def is_managed(self) -> bool:
        return self.active != ActiveFlag.UNSET

    @property
    def is_active(self) -> bool:
        return self.active == ActiveFlag.YES


def effective_access(entry: DirectoryEntry) -> EffectiveAccess | None:
    """Resolve an entry's access; None means leave existing grants untouched."""
    if entry.active == ActiveFlag.UNSET:
        return None
    if entry.active == ActiveFlag.NO:
        return REVOKED

    if entry.global_role == AccessRole.EDITOR:
        return EffectiveAccess(AccessRole.EDITOR, FolderScope.ALL_EDITOR, AccessRole.EDITOR)

    if entry.global_role == AccessRole.VIEWER:
        sheet = AccessRole.VIEWER
        if entry.main_role is not None and entry.main_role.rank > sheet.rank:
            sheet = entry.main_role
        scope = FolderScope.ALL_VIEWER
        if entry.folder_scope is not None and entry.folder_scope.rank > scope.rank:
            scope = entry.folder_scope
        return EffectiveAccess(sheet, scope, AccessRole.VIEWER)

    return EffectiveAccess(
        entry.main_role or AccessRole.NONE,
        entry.folder_scope or FolderScope.ASSIGNED_ONLY,
        AccessRole.NONE,
    )


class Directory:
    """Name/address lookups over the directory table."""

    def __init__(self, entries: list[DirectoryEntry] | None = None):
        self.entries = [e for e in (entries or []) if e.name or e.address]
        self._by_name = {e.name.lower(): e for e in self.entries if e.name}
        self._by_address = {e.address: e for e in self.entries if e.address}

    @classmethod
    def load(cls, path: Path) -> Directory:
        entries = [DirectoryEntry.from_row(row) for row in read_dict_rows(Path(path))]
        logger.debug(f"Loaded {len(entries)} directory entries")
        return cls(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def resolve_to_address(self, name_or_address: str | None) -> str | None:
        """Pass a well-formed address through, else look the name up (case-insensitive)."""
        text = (name_or_address or "").strip()
        if not text:
            return None
        if is_valid_email(text):
            return text.lower()
        entry = self._by_name.get(text.lower())
        if entry and is_valid_email(entry.address):
            return entry.address
        return None

    def resolve_all(self, tokens: list[str]) -> list[str]:
        """Resolve tokens to addresses, dropping unresolvable ones and duplicates."""
        addresses: list[str] = []
        for token in tokens:
            address = self.resolve_to_address(token)
            if address and address not in addresses:
                addresses.append(address)
        return addresses

    def name_for(self, name_or_address: str | None) -> str:
        """Display name for an address or name; falls back to the input."""
        text = (name_or_address or "").strip()
        entry = self._by_address.get(text.lower())
        if entry and entry.name:
            return entry.name
        return text

    def active_names(self) -> list[str]:
        return sorted(e.name for e in self.entries if e.is_active and e.name)
