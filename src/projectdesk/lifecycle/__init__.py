"""Lifecycle processing of project records."""

from projectdesk.lifecycle.calendar_sync import CalendarSync, ChangeSummary, EventSnapshot, diff_snapshots
from projectdesk.lifecycle.processor import BatchResult, LifecycleProcessor

__all__ = [
    "BatchResult",
    "CalendarSync",
    "ChangeSummary",
    "EventSnapshot",
    "LifecycleProcessor",
    "diff_snapshots",
]
