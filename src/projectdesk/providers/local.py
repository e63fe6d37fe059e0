"""Workspace-local providers.

The drive keeps a JSON index of folders and files (with their grants) and
stores file contents as blobs. The calendar and form are single JSON
files. All writes are atomic.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date
from pathlib import Path
from typing import Any

from projectdesk.exceptions import IntakeError, ProviderError, ResourceNotFoundError
from projectdesk.providers.base import (
    ROLE_EDITOR,
    ROLE_OWNER,
    ROLE_VIEWER,
    CalendarEvent,
    CalendarProvider,
    DocumentStore,
    FolderStore,
    FormProvider,
    FormSubmission,
    Grant,
)
from projectdesk.store.tables import atomic_write_json, read_json

logger = logging.getLogger(__name__)

_ROLE_RANK = {ROLE_VIEWER: 1, ROLE_EDITOR: 2, ROLE_OWNER: 3}


def _new_id() -> str:
    return uuid.uuid4().hex[:16]


class LocalDrive(FolderStore, DocumentStore):
    """Folder and document store under a workspace directory.

    Structure:
        drive/
        ├── index.json      # id -> {name, kind, parent, grants, fields}
        └── blobs/
            └── <id>        # file contents
    """

    def __init__(self, root: Path, owner_address: str):
        self.root = Path(root)
        self.owner_address = owner_address.strip().lower()
        self.index_path = self.root / "index.json"
        self.blob_dir = self.root / "blobs"

    # -- index ------------------------------------------------------------

    def _load(self) -> dict[str, dict[str, Any]]:
        return read_json(self.index_path, default={}) or {}

    def _save(self, items: dict[str, dict[str, Any]]) -> None:
        atomic_write_json(self.index_path, items)

    def _get(self, items: dict[str, dict[str, Any]], item_id: str, kind: str | None = None) -> dict[str, Any]:
        item = items.get(item_id)
        if item is None or (kind and item["kind"] != kind):
            what = kind or "item"
            raise ResourceNotFoundError(f"No such {what}: {item_id}")
        return item

    def _new_item(self, name: str, kind: str, parent: str | None) -> dict[str, Any]:
        return {
            "name": name,
            "kind": kind,
            "parent": parent,
            "grants": {self.owner_address: ROLE_OWNER},
            "fields": {},
        }

    def create_root(self, name: str) -> str:
        """Create a top-level folder (workspace setup only)."""
        items = self._load()
        item_id = _new_id()
        items[item_id] = self._new_item(name, "folder", None)
        self._save(items)
        return item_id

    def create_file(self, parent_id: str, name: str, text: str, fields: dict[str, str] | None = None) -> str:
        """Create a text file with optional overview fields (workspace setup only)."""
        item_id = self.upload(parent_id, name, text.encode("utf-8"))
        if fields:
            self.write_fields(item_id, fields)
        return item_id

    # -- FolderStore ------------------------------------------------------

    def create(self, parent_id: str, name: str) -> str:
        items = self._load()
        self._get(items, parent_id, "folder")
        item_id = _new_id()
        items[item_id] = self._new_item(name, "folder", parent_id)
        self._save(items)
        logger.debug(f"Created folder '{name}' ({item_id})")
        return item_id

    def share(self, folder_id: str, address: str, role: str, suppress_notification: bool = True) -> None:
        address = address.strip().lower()
        items = self._load()
        item = self._get(items, folder_id)
        current = item["grants"].get(address)
        if current and _ROLE_RANK.get(current, 0) >= _ROLE_RANK.get(role, 0):
            return
        item["grants"][address] = role
        self._save(items)

    def list_grants(self, item_id: str) -> list[Grant]:
        item = self._get(self._load(), item_id)
        return [Grant(address, role) for address, role in sorted(item["grants"].items())]

    def add_grant(self, item_id: str, address: str, role: str) -> None:
        if role not in (ROLE_EDITOR, ROLE_VIEWER):
            raise ProviderError(f"Unsupported role: {role}")
        address = address.strip().lower()
        items = self._load()
        item = self._get(items, item_id)
        if item["grants"].get(address) == ROLE_OWNER:
            raise ProviderError(f"Cannot change the owner's access on {item_id}")
        item["grants"][address] = role
        self._save(items)

    def remove_grant(self, item_id: str, address: str) -> None:
        address = address.strip().lower()
        items = self._load()
        item = self._get(items, item_id)
        if item["grants"].get(address) == ROLE_OWNER:
            raise ProviderError(f"Cannot remove the owner from {item_id}")
        if item["grants"].pop(address, None) is not None:
            self._save(items)

    def exists(self, item_id: str) -> bool:
        return item_id in self._load()

    def list_names(self, folder_id: str) -> list[str]:
        items = self._load()
        self._get(items, folder_id, "folder")
        return sorted(item["name"] for item in items.values() if item.get("parent") == folder_id)

    def url(self, item_id: str) -> str:
        return f"drive://{item_id}"

    # -- DocumentStore ----------------------------------------------------

    def copy(self, template_id: str, name: str, parent_folder_id: str) -> str:
        items = self._load()
        template = self._get(items, template_id, "file")
        self._get(items, parent_folder_id, "folder")
        item_id = _new_id()
        self.blob_dir.mkdir(parents=True, exist_ok=True)
        source = self.blob_dir / template_id
        (self.blob_dir / item_id).write_bytes(source.read_bytes() if source.exists() else b"")
        item = self._new_item(name, "file", parent_folder_id)
        item["fields"] = dict(template.get("fields", {}))
        items[item_id] = item
        self._save(items)
        logger.debug(f"Copied template {template_id} to '{name}' ({item_id})")
        return item_id

    def write_fields(self, file_id: str, field_map: dict[str, str]) -> None:
        items = self._load()
        item = self._get(items, file_id, "file")
        item["fields"].update({k: "" if v is None else str(v) for k, v in field_map.items()})
        self._save(items)

    def read_fields(self, file_id: str) -> dict[str, str]:
        return dict(self._get(self._load(), file_id, "file").get("fields", {}))

    def read_text(self, file_id: str) -> str:
        self._get(self._load(), file_id, "file")
        path = self.blob_dir / file_id
        return path.read_text(encoding="utf-8") if path.exists() else ""

    def upload(self, folder_id: str, name: str, data: bytes) -> str:
        items = self._load()
        self._get(items, folder_id, "folder")
        item_id = _new_id()
        self.blob_dir.mkdir(parents=True, exist_ok=True)
        (self.blob_dir / item_id).write_bytes(data)
        items[item_id] = self._new_item(name, "file", folder_id)
        self._save(items)
        return item_id


class LocalCalendar(CalendarProvider):
    """Calendar stored as ``{event_id: event}`` in a JSON file."""

    def __init__(self, path: Path, owner_address: str):
        self.path = Path(path)
        self._owner = owner_address.strip().lower()

    @property
    def owner_address(self) -> str:
        return self._owner

    def _load(self) -> dict[str, dict[str, Any]]:
        return read_json(self.path, default={}) or {}

    def _update(self, event_id: str, **changes: Any) -> None:
        events = self._load()
        if event_id not in events:
            raise ResourceNotFoundError(f"No such calendar event: {event_id}")
        events[event_id].update(changes)
        atomic_write_json(self.path, events)

    def events(self) -> list[CalendarEvent]:
        return [CalendarEvent.from_dict(e) for e in self._load().values()]

    def create_all_day_event(self, title: str, on: date, description: str, guests: list[str]) -> str:
        events = self._load()
        event = CalendarEvent(_new_id(), title, on, description, sorted({g.lower() for g in guests}))
        events[event.event_id] = event.to_dict()
        atomic_write_json(self.path, events)
        logger.debug(f"Created calendar event '{title}' on {on}")
        return event.event_id

    def get_event(self, event_id: str) -> CalendarEvent | None:
        data = self._load().get(event_id)
        return CalendarEvent.from_dict(data) if data else None

    def update_title(self, event_id: str, title: str) -> None:
        self._update(event_id, title=title)

    def update_date(self, event_id: str, on: date) -> None:
        self._update(event_id, date=on.isoformat())

    def update_description(self, event_id: str, description: str) -> None:
        self._update(event_id, description=description)

    def update_guests(self, event_id: str, guests: list[str]) -> None:
        self._update(event_id, guests=sorted({g.lower() for g in guests}))

    def update_color(self, event_id: str, color: str) -> None:
        self._update(event_id, color=color)

    def delete_event(self, event_id: str) -> None:
        events = self._load()
        if events.pop(event_id, None) is None:
            raise ResourceNotFoundError(f"No such calendar event: {event_id}")
        atomic_write_json(self.path, events)


class LocalForm(FormProvider):
    """Form definition in a JSON file; submissions arrive as JSON files."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        return read_json(self.path, default={"questions": {}}) or {"questions": {}}

    def read_submission(self, source: Any) -> FormSubmission:
        """Read a submission from a JSON file path or an already-parsed dict.

        Raises:
            IntakeError: If the file is not a JSON object.
        """
        if isinstance(source, dict):
            return FormSubmission.from_dict(source)
        try:
            with open(source, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise IntakeError(f"Submission is not valid JSON: {source}", details=str(e)) from e
        if not isinstance(data, dict):
            raise IntakeError(f"Submission must be a JSON object: {source}")
        return FormSubmission.from_dict(data)

    def set_choices(self, question: str, choices: list[str]) -> None:
        data = self._load()
        questions = data.setdefault("questions", {})
        questions.setdefault(question, {})["choices"] = list(choices)
        atomic_write_json(self.path, data)

    def get_choices(self, question: str) -> list[str]:
        return list(self._load().get("questions", {}).get(question, {}).get("choices", []))
