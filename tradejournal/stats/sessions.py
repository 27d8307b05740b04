"""Trading session windows in UTC.

Session hours follow the London clock: they shift by one hour when EU
daylight saving time is in effect. The Asia session spans midnight and
starts on the previous day.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

ASIA = "Asia"
LONDON = "London"
NY_AM = "NY AM"
NY_PM = "NY PM"

SESSIONS = (ASIA, LONDON, NY_AM, NY_PM)

_NORMALIZED = {
    "london": LONDON,
    "new-york": NY_AM,
    "tokyo": ASIA,
    "sydney": ASIA,
    ASIA: ASIA,
    LONDON: LONDON,
    NY_AM: NY_AM,
    NY_PM: NY_PM,
}

_MAPPINGS = {
    "london": [LONDON],
    "new-york": [NY_AM, NY_PM],
    "tokyo": [ASIA],
    "sydney": [ASIA],
    ASIA: [ASIA],
    LONDON: [LONDON],
    NY_AM: [NY_AM],
    NY_PM: [NY_PM],
}

# (start, end) UTC hours as (summer, winter)
_SESSION_HOURS = {
    LONDON: ((7, 12), (8, 13)),
    NY_AM: ((12, 17), (13, 18)),
    NY_PM: ((17, 21), (18, 22)),
    ASIA: ((22, 7), (23, 8)),
}


@dataclass
class SessionTimeRange:
    start: datetime
    end: datetime


def _last_sunday(year: int, month: int) -> int:
    last_day = calendar.monthrange(year, month)[1]
    weekday = date(year, month, last_day).weekday()  # Monday=0
    return last_day - (weekday + 1) % 7


def _nth_sunday(year: int, month: int, n: int) -> int:
    first_weekday = date(year, month, 1).weekday()
    first_sunday = 1 + (6 - first_weekday) % 7
    return first_sunday + (n - 1) * 7


def is_daylight_saving_time(day, region: str = "EU") -> bool:
    """Whether daylight saving time applies on ``day``.

    EU: last Sunday of March to last Sunday of October.
    US: second Sunday of March to first Sunday of November.
    """
    if isinstance(day, datetime):
        day = day.date()
    year, month, dom = day.year, day.month, day.day

    if region == "EU":
        if month < 3 or month > 10:
            return False
        if 3 < month < 10:
            return True
        if month == 3:
            return dom >= _last_sunday(year, 3)
        return dom < _last_sunday(year, 10)

    if month < 3 or month > 11:
        return False
    if 3 < month < 11:
        return True
    if month == 3:
        return dom >= _nth_sunday(year, 3, 2)
    return dom < _nth_sunday(year, 11, 1)


def normalize_session_name(session: str) -> str:
    """Map legacy names (``london``, ``new-york``, ``tokyo``...) to a session; unknown names map to London."""
    return _NORMALIZED.get(session, LONDON)


def session_mappings(session: str) -> list[str]:
    """Sessions a stored session name stands for (``new-york`` covers both NY sessions)."""
    return list(_MAPPINGS.get(session, []))


def session_time_range(session: str, day) -> SessionTimeRange:
    """UTC start and end of ``session`` on ``day``."""
    if isinstance(day, datetime):
        day = day.date()
    name = normalize_session_name(session)
    summer, winter = _SESSION_HOURS[name]
    start_hour, end_hour = summer if is_daylight_saving_time(day, "EU") else winter

    if name == ASIA:
        start = datetime.combine(day - timedelta(days=1), time(start_hour))
        end = datetime.combine(day, time(end_hour))
        return SessionTimeRange(start=start, end=end)

    return SessionTimeRange(
        start=datetime.combine(day, time(start_hour)),
        end=datetime.combine(day, time(end_hour, 59, 59)),
    )


def is_trade_in_session(trade_date: datetime, session: str) -> bool:
    """Whether a UTC trade time falls inside ``session``.

    An Asia trade after the evening open belongs to the next day's session.
    """
    if normalize_session_name(session) == ASIA:
        today = session_time_range(session, trade_date)
        tomorrow = session_time_range(session, trade_date + timedelta(days=1))
        return (
            today.start <= trade_date <= today.end
            or tomorrow.start <= trade_date <= tomorrow.end
        )

    window = session_time_range(session, trade_date)
    return window.start <= trade_date <= window.end
