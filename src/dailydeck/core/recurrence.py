"""Recurrence rule evaluation for scheduled cards.

Rules use the RFC 5545 RRULE grammar, optionally preceded by a DTSTART line:

    DTSTART:20240101T000000Z
    RRULE:FREQ=WEEKLY;BYDAY=MO,WE

A rule is always evaluated on a UTC wall clock. The calendar date being asked
about is turned into the window [date 00:00, date 23:59:59.999999] and the rule
fires on that date if it yields any occurrence inside the window. Timezone
designators inside the rule are ignored so the rule clock and the calendar
date can never disagree about which day an occurrence belongs to.
"""

import logging
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.rrule import rruleset, rrulestr

from .models import ScheduleConfig

logger = logging.getLogger(__name__)

# Errors dateutil raises for malformed rule text
_PARSE_ERRORS = (ValueError, KeyError, TypeError, IndexError)

# 0 = Sunday, matching the day picker order
WEEKDAY_CODES = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")
WEEKDAY_NAMES = {
    "MO": "Monday",
    "TU": "Tuesday",
    "WE": "Wednesday",
    "TH": "Thursday",
    "FR": "Friday",
    "SA": "Saturday",
    "SU": "Sunday",
}
_WEEK_ORDER = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


class SchedulePresets:
    """Builders for the rule shapes the card editor offers."""

    DAILY = "FREQ=DAILY"
    WEEKDAYS = "FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR"
    WEEKENDS = "FREQ=WEEKLY;BYDAY=SA,SU"
    FIRST_OF_MONTH = "FREQ=MONTHLY;BYMONTHDAY=1"
    LAST_OF_MONTH = "FREQ=MONTHLY;BYMONTHDAY=-1"

    @staticmethod
    def weekly(days: list[int]) -> str:
        """Weekly on the given days (0=Sunday .. 6=Saturday)."""
        if not days:
            raise ValueError("weekly rule needs at least one day")
        if any(not 0 <= d <= 6 for d in days):
            raise ValueError(f"weekdays run 0 (Sunday) to 6 (Saturday), got {days}")
        codes = [WEEKDAY_CODES[d] for d in sorted(set(days))]
        return f"FREQ=WEEKLY;BYDAY={','.join(codes)}"

    @staticmethod
    def monthly(dates: list[int]) -> str:
        """Monthly on the given days of the month (negative counts from the end)."""
        if not dates:
            raise ValueError("monthly rule needs at least one date")
        return f"FREQ=MONTHLY;BYMONTHDAY={','.join(str(d) for d in dates)}"

    @staticmethod
    def with_start(rule: str, start: date) -> str:
        """Prefix a rule with an explicit DTSTART anchor at midnight UTC."""
        return f"DTSTART:{start.strftime('%Y%m%d')}T000000Z\n{rule}"


def _ignore_tzid(name: str) -> None:
    return None


def _parse(schedule: ScheduleConfig, anchor: datetime):
    """Parse rule text into a dateutil rule with naive (UTC wall clock) datetimes."""
    rule = rrulestr(schedule.rrule, dtstart=anchor, ignoretz=True, tzids=_ignore_tzid)
    # dateutil accepts INTERVAL=0 but then never advances past dtstart
    rules = rule._rrule if isinstance(rule, rruleset) else [rule]
    if any(r._interval < 1 for r in rules):
        raise ValueError("INTERVAL must be a positive integer")
    return rule


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def occurs_on(schedule: ScheduleConfig, on: date) -> bool:
    """
    Does the rule produce an occurrence on this calendar date?

    Malformed rules never raise: they are logged and treated as never firing.
    """
    day_start = datetime.combine(on, time.min)
    day_end = datetime.combine(on, time.max)
    try:
        rule = _parse(schedule, anchor=day_start)
        return bool(rule.between(day_start, day_end, inc=True))
    except _PARSE_ERRORS as e:
        logger.warning(f"Invalid recurrence rule {schedule.rrule!r}: {e}")
        return False


def next_occurrence(schedule: ScheduleConfig, after: datetime) -> datetime | None:
    """
    First occurrence at or after `after`, as an aware UTC datetime.

    Returns None when the rule is exhausted or cannot be parsed.
    """
    start = _to_utc_naive(after)
    try:
        rule = _parse(schedule, anchor=start)
        found = rule.after(start, inc=True)
    except _PARSE_ERRORS as e:
        logger.warning(f"Invalid recurrence rule {schedule.rrule!r}: {e}")
        return None
    if found is None:
        return None
    return found.replace(tzinfo=timezone.utc)


def _rule_parts(text: str) -> dict[str, str]:
    """Split the RRULE line of a rule into its NAME=value parts."""
    for line in text.upper().splitlines():
        line = line.strip()
        if line.startswith("RRULE:"):
            line = line[len("RRULE:"):]
        elif ":" in line:
            continue
        if "FREQ=" in line:
            return dict(part.split("=", 1) for part in line.split(";") if "=" in part)
    return {}


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _month_day_label(day: int) -> str:
    """1 -> "1st", -1 -> "last day", -2 -> "2nd to last day"."""
    if day > 0:
        return _ordinal(day)
    if day == -1:
        return "last day"
    return f"{_ordinal(-day)} to last day"


def _join(items: list[str]) -> str:
    if len(items) <= 1:
        return "".join(items)
    return ", ".join(items[:-1]) + " and " + items[-1]


def describe(schedule: ScheduleConfig) -> str:
    """Human-readable description of a rule, or "Scheduled" if it can't be read."""
    try:
        _parse(schedule, anchor=datetime(2000, 1, 1))
    except _PARSE_ERRORS as e:
        logger.warning(f"Invalid recurrence rule {schedule.rrule!r}: {e}")
        return "Scheduled"

    parts = _rule_parts(schedule.rrule)
    freq = parts.get("FREQ")
    interval = int(parts.get("INTERVAL", "1") or 1)

    if freq == "DAILY":
        return "Every day" if interval == 1 else f"Every {interval} days"

    if freq == "WEEKLY":
        days = [d[-2:] for d in parts.get("BYDAY", "").split(",") if d]
        day_set = set(days)
        if day_set == {"MO", "TU", "WE", "TH", "FR"}:
            return "Every weekday"
        if day_set == {"SA", "SU"}:
            return "Every weekend"
        if not days:
            return "Every week"
        names = [WEEKDAY_NAMES[d] for d in _WEEK_ORDER if d in day_set]
        return f"Every week on {_join(names)}"

    if freq == "MONTHLY":
        month_days = [int(d) for d in parts.get("BYMONTHDAY", "").split(",") if d]
        if month_days == [1]:
            return "First of every month"
        if month_days == [-1]:
            return "Last day of every month"
        if not month_days:
            return "Every month"
        labels = [_month_day_label(d) for d in month_days]
        return f"Monthly on the {_join(labels)}"

    if freq == "YEARLY":
        return "Every year"

    return "Scheduled"


def today_in(tz_name: str | None) -> date:
    """Today's calendar date in the given IANA timezone (local date if unset)."""
    if not tz_name:
        return date.today()
    try:
        return datetime.now(ZoneInfo(tz_name)).date()
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Unknown timezone {tz_name!r}, using local date: {e}")
        return date.today()
