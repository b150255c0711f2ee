"""Calendar helpers shared by the ledgers and collections.

Dates travel through the workbook as ISO ``YYYY-MM-DD`` strings and are shown
to people as ``DD/MM/YYYY``. Only calendar days matter: time of day is kept
separately (sales) or not at all (ledgers).
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Union

DISPLAY_PLACEHOLDER = "--/--/----"

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def today() -> date:
    """Return the local calendar day."""
    return date.today()


def current_iso_date() -> str:
    return to_iso_date(today())


def current_time_hhmm() -> str:
    return datetime.now().strftime("%H:%M")


def to_iso_date(value: date) -> str:
    """Render ``value`` as ``YYYY-MM-DD`` for storage."""
    return value.strftime("%Y-%m-%d")


def parse_local_date(text: Optional[str]) -> Optional[date]:
    """Parse a stored date string into a :class:`~datetime.date`.

    Plain ``YYYY-MM-DD`` values are read as calendar days. Anything else is
    attempted as an ISO timestamp, keeping only its date part. Unparseable or
    empty input yields ``None`` instead of raising so callers can filter rows
    with damaged dates out of range queries.

    Args:
        text (str | None): Raw value read from the workbook.

    Returns:
        date | None: The calendar day, or ``None`` when ``text`` is blank or
            not a date.
    """
    if not text:
        return None
    text = str(text).strip()
    if _ISO_DAY.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def format_display_date(value: Union[date, str, None]) -> str:
    """Format a date as ``DD/MM/YYYY`` or return the blank placeholder."""
    if value is None:
        return DISPLAY_PLACEHOLDER
    parsed = parse_local_date(value) if isinstance(value, str) else value
    if parsed is None:
        return DISPLAY_PLACEHOLDER
    return parsed.strftime("%d/%m/%Y")


def within_range(candidate: Optional[date], start: Optional[date], end: Optional[date]) -> bool:
    """Return whether ``candidate`` lies inside the inclusive ``[start, end]``.

    Missing bounds are open. A missing ``candidate`` is never in range.
    """
    if candidate is None:
        return False
    if start is not None and candidate < start:
        return False
    if end is not None and candidate > end:
        return False
    return True
