"""Capability interfaces for the external services ProjectDesk drives."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any

ROLE_OWNER = "owner"
ROLE_EDITOR = "editor"
ROLE_VIEWER = "viewer"


@dataclass(frozen=True)
class Grant:
    """One address's access to a file or folder."""

    address: str
    role: str


@dataclass
class CalendarEvent:
    """An all-day calendar event."""

    event_id: str
    title: str
    date: date
    description: str = ""
    guests: list[str] = field(default_factory=list)
    color: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "title": self.title,
            "date": self.date.isoformat(),
            "description": self.description,
            "guests": list(self.guests),
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalendarEvent:
        return cls(
            event_id=data["event_id"],
            title=data.get("title", ""),
            date=date.fromisoformat(data["date"]),
            description=data.get("description", ""),
            guests=list(data.get("guests", [])),
            color=data.get("color", ""),
        )


@dataclass
class FormSubmission:
    """One intake submission: named answers plus the raw positional values."""

    named_values: dict[str, list[str]] = field(default_factory=dict)
    values: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormSubmission:
        named: dict[str, list[str]] = {}
        for key, value in (data.get("named_values") or {}).items():
            if isinstance(value, list):
                named[str(key)] = [str(v) for v in value]
            elif value is None:
                named[str(key)] = []
            else:
                named[str(key)] = [str(value)]
        return cls(named_values=named, values=[str(v) for v in data.get("values") or []])


class FolderStore(ABC):
    """Folders and sharing grants."""

    @abstractmethod
    def create(self, parent_id: str, name: str) -> str:
        """Create a folder.

        Returns:
            The new folder id.
        """
        pass

    @abstractmethod
    def share(self, folder_id: str, address: str, role: str, suppress_notification: bool = True) -> None:
        """Grant ``role`` unless the address already has equal or higher access."""
        pass

    @abstractmethod
    def list_grants(self, item_id: str) -> list[Grant]:
        """Current grants on a file or folder, the owner included."""
        pass

    @abstractmethod
    def add_grant(self, item_id: str, address: str, role: str) -> None:
        """Set an address's role, replacing any existing non-owner grant."""
        pass

    @abstractmethod
    def remove_grant(self, item_id: str, address: str) -> None:
        pass

    @abstractmethod
    def exists(self, item_id: str) -> bool:
        pass

    @abstractmethod
    def list_names(self, folder_id: str) -> list[str]:
        """Names of the direct children of a folder."""
        pass

    @abstractmethod
    def url(self, item_id: str) -> str:
        pass


class DocumentStore(ABC):
    """Template files, populated project files and uploaded documents."""

    @abstractmethod
    def copy(self, template_id: str, name: str, parent_folder_id: str) -> str:
        """Copy a template into a folder.

        Returns:
            The id of the copy.
        """
        pass

    @abstractmethod
    def write_fields(self, file_id: str, field_map: dict[str, str]) -> None:
        """Write label -> value pairs into a file's overview fields."""
        pass

    @abstractmethod
    def read_text(self, file_id: str) -> str:
        pass

    @abstractmethod
    def upload(self, folder_id: str, name: str, data: bytes) -> str:
        """Store a new file in a folder.

        Returns:
            The new file id.
        """
        pass

    @abstractmethod
    def exists(self, file_id: str) -> bool:
        pass


class CalendarProvider(ABC):
    """All-day events for project due dates."""

    @property
    @abstractmethod
    def owner_address(self) -> str:
        """Calendar owner, never treated as a guest."""
        pass

    @abstractmethod
    def create_all_day_event(self, title: str, on: date, description: str, guests: list[str]) -> str:
        """Create an event.

        Returns:
            The new event id.
        """
        pass

    @abstractmethod
    def get_event(self, event_id: str) -> CalendarEvent | None:
        """Fetch an event, or None when it no longer exists."""
        pass

    @abstractmethod
    def update_title(self, event_id: str, title: str) -> None:
        pass

    @abstractmethod
    def update_date(self, event_id: str, on: date) -> None:
        pass

    @abstractmethod
    def update_description(self, event_id: str, description: str) -> None:
        pass

    @abstractmethod
    def update_guests(self, event_id: str, guests: list[str]) -> None:
        pass

    @abstractmethod
    def update_color(self, event_id: str, color: str) -> None:
        pass

    @abstractmethod
    def delete_event(self, event_id: str) -> None:
        """Delete an event.

        Raises:
            ResourceNotFoundError: If the event doesn't exist.
        """
        pass


class MailSender(ABC):
    """Outgoing mail."""

    @abstractmethod
    def send(self, to: list[str], subject: str, body: str, cc: list[str] | None = None) -> None:
        """Send an HTML message to one or more recipients."""
        pass


class FormProvider(ABC):
    """Intake form: reads submissions and keeps dropdown choices in sync."""

    @abstractmethod
    def read_submission(self, source: Any) -> FormSubmission:
        pass

    @abstractmethod
    def set_choices(self, question: str, choices: list[str]) -> None:
        """Replace the choices of a dropdown question."""
        pass

    @abstractmethod
    def get_choices(self, question: str) -> list[str]:
        pass
