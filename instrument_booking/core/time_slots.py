"""Time grid and instant helpers.

Instants are naive local wall-clock datetimes at minute granularity. On
the wire they are ``YYYY-MM-DDTHH:MM:SS`` strings with no offset.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union

from ..config import settings

TIME_FORMAT = "%H:%M"


def parse_time(value: Union[str, time]) -> time:
    """Parse an ``HH:MM`` string.

    Raises:
        ValueError: If value is not a valid HH:MM time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    return datetime.strptime(value, TIME_FORMAT).time()


def format_time(value: Union[datetime, time]) -> str:
    """Render the wall-clock part of an instant as ``HH:MM``."""
    return value.strftime(TIME_FORMAT)


def combine_date_time(day: date, hhmm: Union[str, time]) -> datetime:
    """Combine a calendar day with an ``HH:MM`` time into a naive instant."""
    return datetime.combine(day, parse_time(hhmm))


def time_options(start: Optional[str] = None, end: Optional[str] = None,
                 step_minutes: Optional[int] = None) -> List[str]:
    """Selectable start/end times, inclusive of both ends.

    Defaults come from settings (08:00 to 18:00 every 30 minutes, 21 options).

    Raises:
        ValueError: If step_minutes is not positive or end precedes start
    """
    step = step_minutes if step_minutes is not None else settings.SLOT_MINUTES
    if step <= 0:
        raise ValueError(f"Slot step must be positive, got {step}")

    anchor = date(2000, 1, 1)
    current = combine_date_time(anchor, start or settings.SLOT_START)
    last = combine_date_time(anchor, end or settings.SLOT_END)
    if last < current:
        raise ValueError(f"Slot end {format_time(last)} precedes start {format_time(current)}")

    options = []
    while current <= last:
        options.append(format_time(current))
        current += timedelta(minutes=step)
    return options


def date_from_month_day(month: int, day: int, year: Optional[int] = None) -> date:
    """Build a calendar day from month/day pickers; year defaults to this year.

    Raises:
        ValueError: If the month/day combination does not exist
    """
    return date(year if year is not None else date.today().year, int(month), int(day))
