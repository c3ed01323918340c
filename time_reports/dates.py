"""
Timezone-aware date expression parsing for reports.

Every expression is resolved against an explicit timezone (default
REPORT_TIMEZONE, UTC+5) and never against the host clock's zone.

Supported expressions:
    1760641200000            epoch milliseconds (10 digits = epoch seconds)
    now
    today | yesterday | tomorrow
    this week | last week | next week          (weeks start on Monday)
    this month | last month | next month
    3 hours ago | in 2 days | 1 week from now  (minute/hour/day/week/month)
    2026-10-01 | 2026-10-01 14:30[:00]
    yesterday 9am | today 14:30 | 2026-10-01 5:15pm

Periods (days, weeks, months) resolve to their first millisecond for a
start bound and their last millisecond for an end bound. Instants ignore
the bound.
"""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from time_reports.config import REPORT_TIMEZONE
from time_reports.errors import InvalidDateRange, InvalidTimezone
from time_reports.models import DateRange

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

TIMEZONE_ALIASES = {
    "PKT": "Asia/Karachi",
    "IST": "Asia/Kolkata",
    "UTC": "UTC",
    "GMT": "UTC",
    "Z": "UTC",
}

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.I)

_NUM = r"(\d+|an?)"
_UNIT = r"(minute|min|hour|hr|day|week|month)s?"
_AGO_RE = re.compile(rf"^{_NUM}\s+{_UNIT}\s+ago$")
_IN_RE = re.compile(rf"^in\s+{_NUM}\s+{_UNIT}$")
_FROM_NOW_RE = re.compile(rf"^{_NUM}\s+{_UNIT}\s+from\s+now$")

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ISO_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[ t](\d{1,2}):(\d{2})(?::(\d{2}))?$"
)
_CLOCK_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")

_DAY_OFFSETS = {"today": 0, "yesterday": -1, "tomorrow": 1}
_PERIOD_SHIFTS = {"this": 0, "last": -1, "next": 1}


# ============================================================================
# TIMEZONES
# ============================================================================


def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    """
    Resolve a timezone name, alias or fixed offset.

    Example:
        resolve_timezone("Asia/Karachi") -> ZoneInfo("Asia/Karachi")
        resolve_timezone("GMT+5")        -> UTC+05:00
        resolve_timezone(None)           -> REPORT_TIMEZONE
    """
    raw = (name or REPORT_TIMEZONE).strip()
    alias = TIMEZONE_ALIASES.get(raw.upper())
    if alias:
        return ZoneInfo(alias)

    if m := _OFFSET_RE.match(raw):
        sign = 1 if m.group(1) == "+" else -1
        hours, minutes = int(m.group(2)), int(m.group(3) or 0)
        if hours > 14 or minutes > 59:
            raise InvalidTimezone(f"Invalid UTC offset: '{raw}'")
        delta = timedelta(hours=sign * hours, minutes=sign * minutes)
        return timezone(delta, name=f"UTC{m.group(1)}{hours:02d}:{minutes:02d}")

    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidTimezone(f"Unknown timezone: '{raw}'") from None


# ============================================================================
# CONVERSIONS
# ============================================================================


def to_ms(dt: datetime) -> int:
    """Exact epoch milliseconds for an aware datetime."""
    return (dt - EPOCH) // _ONE_MS


def from_ms(ms: int, tz: tzinfo) -> datetime:
    return (EPOCH + timedelta(milliseconds=int(ms))).astimezone(tz)


def format_timestamp(ms: int, tz: tzinfo) -> str:
    return from_ms(ms, tz).strftime("%Y-%m-%d %H:%M")


def _start_of_day(d: date, tz: tzinfo) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz)


def _add_months(d: date, months: int) -> date:
    month_index = d.year * 12 + d.month - 1 + months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last day of the target month
    next_month = date(year + (month == 12), month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return date(year, month, min(d.day, last_day))


def _bounded(first: date, after_last: date, tz: tzinfo, bound: str) -> int:
    """Pick the first or last millisecond of the period [first, after_last)."""
    if bound == "end":
        return to_ms(_start_of_day(after_last, tz)) - 1
    return to_ms(_start_of_day(first, tz))


def _parse_clock(text: str) -> Optional[Tuple[int, int]]:
    m = _CLOCK_RE.match(text)
    if not m:
        return None
    hour, minute, meridiem = int(m.group(1)), int(m.group(2) or 0), m.group(3)
    # A bare number ("yesterday 9") is ambiguous; require ':' or am/pm
    if m.group(2) is None and meridiem is None:
        return None
    if minute > 59:
        return None
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem == "pm" else 0)
    elif hour > 23:
        return None
    return hour, minute


def _parse_day(text: str, today: date) -> Optional[date]:
    if text in _DAY_OFFSETS:
        return today + timedelta(days=_DAY_OFFSETS[text])
    if m := _ISO_DATE_RE.match(text):
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None
    return None


def _relative(amount: str, unit: str, sign: int, now: datetime, tz, bound) -> int:
    n = 1 if amount in ("a", "an") else int(amount)
    n *= sign
    if unit in ("minute", "min"):
        return to_ms(now + timedelta(minutes=n))
    if unit in ("hour", "hr"):
        return to_ms(now + timedelta(hours=n))

    # Day-sized units resolve to whole days so ranges cover full days
    if unit == "day":
        day = now.date() + timedelta(days=n)
    elif unit == "week":
        day = now.date() + timedelta(weeks=n)
    else:
        day = _add_months(now.date(), n)
    return _bounded(day, day + timedelta(days=1), tz, bound)


def _resolve_expression(
    raw: str, clean: str, tz: tzinfo, bound: str, now: datetime
) -> int:
    # 1. Absolute timestamps
    if clean.isdigit():
        if len(clean) < 10:
            raise InvalidDateRange(f"Unrecognized date expression: '{raw}'")
        ms = int(clean) * 1000 if len(clean) == 10 else int(clean)
        from_ms(ms, tz)  # must map to a real datetime
        return ms

    if clean == "now":
        return to_ms(now)

    today = now.date()

    # 2. Single days
    if (day := _parse_day(clean, today)) is not None:
        return _bounded(day, day + timedelta(days=1), tz, bound)

    # 3. Weeks and months
    parts = clean.split(" ")
    if len(parts) == 2 and parts[0] in _PERIOD_SHIFTS:
        shift = _PERIOD_SHIFTS[parts[0]]
        if parts[1] == "week":
            monday = today - timedelta(days=today.weekday()) + timedelta(weeks=shift)
            return _bounded(monday, monday + timedelta(days=7), tz, bound)
        if parts[1] == "month":
            first = _add_months(today.replace(day=1), shift)
            return _bounded(first, _add_months(first, 1), tz, bound)

    # 4. Relative offsets
    if m := _AGO_RE.match(clean):
        return _relative(m.group(1), m.group(2), -1, now, tz, bound)
    if m := _IN_RE.match(clean) or _FROM_NOW_RE.match(clean):
        return _relative(m.group(1), m.group(2), 1, now, tz, bound)

    # 5. Explicit date-times
    if m := _ISO_DATETIME_RE.match(clean):
        try:
            dt = datetime(
                int(m.group(1)),
                int(m.group(2)),
                int(m.group(3)),
                int(m.group(4)),
                int(m.group(5)),
                int(m.group(6) or 0),
                tzinfo=tz,
            )
        except ValueError:
            raise InvalidDateRange(f"Invalid date: '{raw}'") from None
        return to_ms(dt)

    # 6. "<day> <clock>", e.g. "yesterday 9am"
    if " " in clean:
        day_part, clock_part = clean.split(" ", 1)
        day = _parse_day(day_part, today)
        clock = _parse_clock(clock_part)
        if day is not None and clock is not None:
            dt = datetime.combine(day, time(clock[0], clock[1]), tzinfo=tz)
            return to_ms(dt)

    raise InvalidDateRange(f"Unrecognized date expression: '{raw}'")


# ============================================================================
# PUBLIC API
# ============================================================================


def parse_date_expression(
    text,
    tz: Optional[tzinfo] = None,
    bound: str = "start",
    now: Optional[datetime] = None,
) -> int:
    """
    Resolve a date expression to epoch milliseconds.

    Raises:
        InvalidDateRange: the expression is empty, not recognised, or
            resolves outside the representable date range.
    """
    if tz is None:
        tz = resolve_timezone(None)
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)

    raw = str(text).strip() if text is not None else ""
    if not raw:
        raise InvalidDateRange("Date expression is empty")
    clean = re.sub(r"\s+", " ", raw.lower())

    try:
        return _resolve_expression(raw, clean, tz, bound, now)
    except (OverflowError, ValueError):
        raise InvalidDateRange(f"Date out of range: '{raw}'") from None


def parse_date_range(
    start,
    end,
    timezone_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Parse a report date range once; the result is reused for every fetch.

    Raises:
        InvalidDateRange: a bound is missing or unparseable, or start > end.
        InvalidTimezone: the timezone cannot be resolved.
    """
    if not start or not end:
        raise InvalidDateRange("Both startDate and endDate are required.")

    tz = resolve_timezone(timezone_name)
    start_ms = parse_date_expression(start, tz, "start", now)
    end_ms = parse_date_expression(end, tz, "end", now)

    return DateRange(
        start_ms=start_ms,
        end_ms=end_ms,
        start_formatted=format_timestamp(start_ms, tz),
        end_formatted=format_timestamp(end_ms, tz),
        timezone=timezone_name or REPORT_TIMEZONE,
    )
