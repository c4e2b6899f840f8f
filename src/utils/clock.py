"""Time helpers.

Managers take a ``clock`` callable so tests can move time forward without
patching the datetime module.
"""

from datetime import datetime
from typing import Callable

import pytz

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(pytz.utc)


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, reading naive values as UTC already."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)
