"""Calendar event sync and change classification for project records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from projectdesk.constants import EVENT_COLOR_DEFAULT, EVENT_COLORS
from projectdesk.exceptions import ProjectDeskError, ResourceNotFoundError
from projectdesk.notifications.dispatcher import format_date
from projectdesk.providers.base import CalendarProvider, FolderStore
from projectdesk.store.record import ProjectRecord

logger = logging.getLogger(__name__)


def event_color(project_status: str) -> str:
    return EVENT_COLORS.get(project_status.strip(), EVENT_COLOR_DEFAULT)


@dataclass(frozen=True)
class EventSnapshot:
    """The parts of an event users notice when it changes."""

    title: str
    date: date
    guests: frozenset[str]


@dataclass
class ChangeSummary:
    """What changed between two event snapshots."""

    title_changed: bool = False
    old_title: str = ""
    new_title: str = ""
    date_changed: bool = False
    old_date: date | None = None
    new_date: date | None = None
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.title_changed or self.date_changed or bool(self.added) or bool(self.removed)

    def lines(self, name_for=lambda a: a) -> list[str]:
        """Human-readable change lines; ``name_for`` maps addresses to names."""
        lines = []
        if self.title_changed:
            lines.append(f"Title changed from \"{self.old_title}\" to \"{self.new_title}\"")
        if self.date_changed:
            lines.append(
                f"Deadline changed from {format_date(self.old_date)} to {format_date(self.new_date)}"
            )
        if self.added:
            lines.append("Added: " + ", ".join(name_for(a) for a in self.added))
        if self.removed:
            lines.append("Removed: " + ", ".join(name_for(a) for a in self.removed))
        return lines


def diff_snapshots(before: EventSnapshot | None, after: EventSnapshot | None) -> ChangeSummary:
    """Classify changes; an unknown side yields an empty summary."""
    if before is None or after is None:
        return ChangeSummary()
    return ChangeSummary(
        title_changed=before.title != after.title,
        old_title=before.title,
        new_title=after.title,
        date_changed=before.date != after.date,
        old_date=before.date,
        new_date=after.date,
        added=sorted(after.guests - before.guests),
        removed=sorted(before.guests - after.guests),
    )


class CalendarSync:
    """Keeps a record's calendar event aligned with its fields."""

    def __init__(self, calendar: CalendarProvider, folders: FolderStore):
        self.calendar = calendar
        self.folders = folders

    def build_description(self, record: ProjectRecord) -> str:
        folder_link = self.folders.url(record.folder_id) if record.folder_id else ""
        lines = [
            f"Project: {record.name}",
            f"Project ID: {record.project_id}",
            f"Category: {record.category}",
            f"Requested by: {record.requested_by}",
            f"Assigned to: {record.assignee}",
            "",
            f"Description: {record.description}",
            "",
            f"Project Folder: {folder_link}",
        ]
        return "\n".join(lines)

    def guests_for(self, addresses: list[str]) -> list[str]:
        """Guest list with the calendar owner removed."""
        owner = self.calendar.owner_address.lower()
        return sorted({a.lower() for a in addresses if a and a.lower() != owner})

    def create(self, record: ProjectRecord, addresses: list[str]) -> str:
        """Create the event and return its id; coloring is left to ``apply_color``."""
        if record.due_date is None:
            raise ProjectDeskError(f"Cannot create a calendar event without a due date for {record.label()}")
        event_id = self.calendar.create_all_day_event(
            record.display_title,
            record.due_date,
            self.build_description(record),
            self.guests_for(addresses),
        )
        logger.info(f"Created calendar event for {record.display_title}")
        return event_id

    def apply_color(self, record: ProjectRecord) -> None:
        self.calendar.update_color(record.calendar_event_id, event_color(record.project_status))

    def sync(self, record: ProjectRecord, addresses: list[str]) -> bool:
        """Overwrite title, date, description, guests and color from the record.

        Returns:
            False if the event no longer exists; nothing is changed then.
        """
        event_id = record.calendar_event_id
        if self.calendar.get_event(event_id) is None:
            logger.warning(f"Calendar event {event_id} for {record.display_title} not found; skipping sync")
            return False
        self.calendar.update_title(event_id, record.display_title)
        if record.due_date is not None:
            self.calendar.update_date(event_id, record.due_date)
        self.calendar.update_description(event_id, self.build_description(record))
        self.calendar.update_guests(event_id, self.guests_for(addresses))
        self.calendar.update_color(event_id, event_color(record.project_status))
        return True

    def refresh_status(self, record: ProjectRecord) -> None:
        """Silently update color and description after a status change."""
        if not record.calendar_event_id:
            return
        self.calendar.update_color(record.calendar_event_id, event_color(record.project_status))
        self.calendar.update_description(record.calendar_event_id, self.build_description(record))

    def snapshot(self, event_id: str) -> EventSnapshot | None:
        """Best-effort snapshot; None when the event can't be read."""
        if not event_id:
            return None
        try:
            event = self.calendar.get_event(event_id)
        except ProjectDeskError as e:
            logger.warning(f"Could not read calendar event {event_id}: {e}")
            return None
        if event is None:
            return None
        return EventSnapshot(event.title, event.date, frozenset(self.guests_for(event.guests)))

    def mismatches(self, record: ProjectRecord, addresses: list[str]) -> list[str]:
        """Differences between the event's date/guests and the record.

        Raises:
            ResourceNotFoundError: If the event no longer exists.
        """
        event = self.calendar.get_event(record.calendar_event_id)
        if event is None:
            raise ResourceNotFoundError(
                f"Calendar event {record.calendar_event_id} for {record.display_title} no longer exists"
            )
        problems = []
        if record.due_date is not None and event.date != record.due_date:
            problems.append(f"date {event.date} != {record.due_date}")
        expected = set(self.guests_for(addresses))
        actual = set(self.guests_for(event.guests))
        if expected != actual:
            problems.append("guest list differs")
        return problems

    def cancel(self, event_id: str) -> bool:
        """Delete an event; an already-missing event counts as success.

        Returns:
            True if an event was deleted, False if it was already gone.
        """
        try:
            self.calendar.delete_event(event_id)
        except ResourceNotFoundError:
            logger.info(f"Calendar event {event_id} already gone")
            return False
        return True
