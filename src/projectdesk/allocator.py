"""Project identifier allocation.

Ids look like ``SUSD-25_26-0042``: district, school-year bucket and a
4-digit serial from the config table's ``Next Serial``.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from projectdesk.constants import CFG_DISTRICT_ID, CFG_NEXT_SERIAL
from projectdesk.exceptions import IdAllocationError
from projectdesk.store.tables import KeyValueTable

logger = logging.getLogger(__name__)

PROJECT_ID_PATTERN = re.compile(r"^([A-Z]{2,10})-(\d{2}_\d{2})-(\d{4})$")


def school_year_bucket(due_date: date, start_month: int = 7) -> str:
    """School year containing a date, as ``YY_YY``.

    Dates on or after the start month belong to the year starting that
    calendar year; earlier dates belong to the year that started before.

    Example:
        >>> school_year_bucket(date(2025, 9, 1))
        '25_26'
        >>> school_year_bucket(date(2026, 3, 1))
        '25_26'
    """
    start_year = due_date.year if due_date.month >= start_month else due_date.year - 1
    return f"{start_year % 100:02d}_{(start_year + 1) % 100:02d}"


def format_project_id(district: str, bucket: str, serial: int) -> str:
    return f"{district}-{bucket}-{serial:04d}"


def is_valid_project_id(value: str) -> bool:
    return bool(PROJECT_ID_PATTERN.match((value or "").strip()))


class IdAllocator:
    """Mints project ids from the config table's serial counter.

    The caller must hold the workspace lock; the allocator performs no
    locking of its own. The incremented serial is written to disk before
    ``next`` returns.
    """

    def __init__(self, config_table: KeyValueTable):
        self.config_table = config_table

    def next(self, bucket: str) -> str:
        """Allocate the next id for a school-year bucket.

        Raises:
            IdAllocationError: If the district id is missing or the serial is invalid.
        """
        values = self.config_table.read()
        district = values.get(CFG_DISTRICT_ID, "").strip().upper()
        if not district:
            raise IdAllocationError(f"'{CFG_DISTRICT_ID}' is not set in the config table")

        if CFG_NEXT_SERIAL not in values:
            raise IdAllocationError(f"'{CFG_NEXT_SERIAL}' is missing from the config table")
        raw_serial = values[CFG_NEXT_SERIAL].strip()
        if not raw_serial:
            serial = 1
        else:
            try:
                serial = int(float(raw_serial))
            except ValueError:
                raise IdAllocationError(
                    f"'{CFG_NEXT_SERIAL}' is not a number: {raw_serial!r}"
                ) from None
        if serial < 1:
            raise IdAllocationError(f"'{CFG_NEXT_SERIAL}' must be positive, got {serial}")

        project_id = format_project_id(district, bucket, serial)
        self.config_table.set(CFG_NEXT_SERIAL, serial + 1)
        logger.info(f"Allocated project id {project_id}")
        return project_id


def school_year_label(bucket: str) -> str:
    """Readable school year for a bucket, e.g. ``25_26`` -> ``2025-2026``."""
    start, _, end = bucket.partition("_")
    return f"20{start}-20{end}"
