"""Lifecycle guards and startup configuration checks.

``allowed_next_values`` is the single definition of which automation
status values a person may enter next; the processor's own moves are
checked against ``MACHINE_TRANSITIONS``.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from projectdesk.constants import (
    FILE_ACCESS_CONFIG_KEYS,
    REQUIRED_CONFIG_KEYS,
    REQUIRED_PROJECT_COLUMNS,
    AutomationStatus,
)
from projectdesk.exceptions import ConfigValidationError, ProviderError, TransitionError

if TYPE_CHECKING:
    from projectdesk.providers.base import DocumentStore, FolderStore
    from projectdesk.store.base import RecordStore
    from projectdesk.store.record import ProjectRecord

logger = logging.getLogger(__name__)

S = AutomationStatus

# Values a person may set, keyed by the current value. Locked states only
# allow themselves.
USER_TRANSITIONS: dict[AutomationStatus, frozenset[AutomationStatus]] = {
    S.BLANK: frozenset({S.READY}),
    S.READY: frozenset({S.READY}),
    S.CREATED: frozenset({S.CREATED, S.UPDATED, S.DELETE_NOTIFY, S.DELETE_NO_NOTIFY}),
    S.UPDATED: frozenset({S.UPDATED}),
    S.DELETE_NOTIFY: frozenset({S.DELETE_NOTIFY}),
    S.DELETE_NO_NOTIFY: frozenset({S.DELETE_NO_NOTIFY}),
    S.DELETED: frozenset({S.DELETED}),
    S.ERROR: frozenset({S.ERROR, S.READY}),
}

# Moves made by the batch processor
MACHINE_TRANSITIONS: dict[AutomationStatus, frozenset[AutomationStatus]] = {
    S.READY: frozenset({S.CREATED, S.ERROR}),
    S.UPDATED: frozenset({S.CREATED, S.ERROR}),
    S.DELETE_NOTIFY: frozenset({S.DELETED, S.ERROR}),
    S.DELETE_NO_NOTIFY: frozenset({S.DELETED, S.ERROR}),
}

# Display order for guard lists
_ORDER = list(AutomationStatus)


def allowed_next_values(current: AutomationStatus | None) -> set[AutomationStatus]:
    """Values a person may enter given the current automation status.

    Unknown current values (None) allow nothing new.
    """
    if current is None:
        return set()
    return set(USER_TRANSITIONS[current])


def allowed_value_list(current: AutomationStatus | None) -> list[str]:
    """Allowed values as display strings, in lifecycle order."""
    allowed = allowed_next_values(current)
    return [s.value for s in _ORDER if s in allowed]


def check_user_transition(current: AutomationStatus | None, new: AutomationStatus) -> None:
    """Reject a user edit outside the allowed set.

    Raises:
        TransitionError: If ``new`` is not allowed from ``current``.
    """
    allowed = allowed_next_values(current)
    if new not in allowed:
        shown = ", ".join(repr(v) for v in allowed_value_list(current)) or "nothing"
        current_label = repr(current.value) if current is not None else "an unknown value"
        raise TransitionError(
            f"Cannot change automation status from {current_label} to {new.value!r}",
            details=f"Allowed values: {shown}",
        )


def transition(record: ProjectRecord, new: AutomationStatus) -> None:
    """Apply a processor transition, enforcing the lifecycle graph.

    Raises:
        TransitionError: If the move is not in ``MACHINE_TRANSITIONS``.
    """
    current = record.automation_status
    allowed = MACHINE_TRANSITIONS.get(current, frozenset()) if current is not None else frozenset()
    if new not in allowed:
        raise TransitionError(
            f"Processor cannot move {record.label()} from "
            f"{record.raw_automation_status!r} to {new.value!r}"
        )
    record.automation_status = new


def refresh_row_guard(store: RecordStore, record: ProjectRecord) -> None:
    """Store the allowed values for exactly one row."""
    store.set_allowed_values(record, allowed_value_list(record.automation_status))


def refresh_all_guards(store: RecordStore, records: list[ProjectRecord]) -> int:
    """Recompute the allowed values for every row in one write."""
    store.set_all_allowed_values(
        {r.row_number: allowed_value_list(r.automation_status) for r in records}
    )
    return len(records)


def validate_configuration(
    config_values: dict[str, str],
    config_keys: list[str],
    column_keys: list[str],
    folder_store: FolderStore | None = None,
    document_store: DocumentStore | None = None,
) -> None:
    """Check required config keys and project column keys in one pass.

    Args:
        config_values: Key -> value map of the config table.
        config_keys: Keys as they appear in the table (duplicates included).
        column_keys: Key row of the projects table (duplicates included).
        folder_store: When given with ``document_store``, configured ids
            must also be reachable.
        document_store: Document provider used for file id checks.

    Raises:
        ConfigValidationError: Listing every missing, duplicate or
            unreachable item.
    """
    problems: list[str] = []

    for key in REQUIRED_CONFIG_KEYS:
        if not (config_values.get(key) or "").strip():
            problems.append(f"Missing config value: '{key}'")
    for key, count in Counter(config_keys).items():
        if count > 1:
            problems.append(f"Duplicate config key: '{key}' ({count} times)")

    present = set(column_keys)
    for key in REQUIRED_PROJECT_COLUMNS:
        if key not in present:
            problems.append(f"Missing project column key: '{key}'")
    for key, count in Counter(k for k in column_keys if k).items():
        if count > 1:
            problems.append(f"Duplicate project column key: '{key}' ({count} times)")

    if folder_store is not None and document_store is not None:
        for key in FILE_ACCESS_CONFIG_KEYS:
            item_id = (config_values.get(key) or "").strip()
            if not item_id:
                continue
            try:
                reachable = folder_store.exists(item_id) or document_store.exists(item_id)
            except ProviderError as e:
                problems.append(f"Cannot access '{key}' ({item_id}): {e.message}")
                continue
            if not reachable:
                problems.append(f"'{key}' points at a missing file or folder: {item_id}")

    if problems:
        for problem in problems:
            logger.error(problem)
        raise ConfigValidationError(problems)
    logger.debug("Configuration validated")
