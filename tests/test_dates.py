from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from time_reports.dates import (
    format_timestamp,
    parse_date_expression,
    parse_date_range,
    resolve_timezone,
)
from time_reports.errors import InvalidDateRange, InvalidTimezone

PKT = ZoneInfo("Asia/Karachi")
UTC = ZoneInfo("UTC")


def ms(*args, tz=PKT):
    return int(datetime(*args, tzinfo=tz).timestamp()) * 1000


# ---------------------------------------------------------------------------
# Timezones
# ---------------------------------------------------------------------------


def test_resolve_timezone_default_is_karachi(monkeypatch):
    monkeypatch.setattr("time_reports.dates.REPORT_TIMEZONE", "Asia/Karachi")
    assert resolve_timezone(None) == ZoneInfo("Asia/Karachi")


@pytest.mark.parametrize(
    "name,hours",
    [("PKT", 5), ("GMT+5", 5), ("UTC+05:30", 5.5), ("-03:00", -3), ("utc", 0)],
)
def test_resolve_timezone_aliases_and_offsets(name, hours):
    tz = resolve_timezone(name)
    offset = tz.utcoffset(datetime(2026, 1, 15))
    assert offset == timedelta(hours=hours)


@pytest.mark.parametrize("name", ["Mars/Olympus", "GMT+20", "not a zone"])
def test_resolve_timezone_rejects_unknown(name):
    with pytest.raises(InvalidTimezone):
        resolve_timezone(name)


# ---------------------------------------------------------------------------
# Expressions (now = Wednesday 2026-10-14 15:30 PKT)
# ---------------------------------------------------------------------------


def test_today_bounds(now):
    assert parse_date_expression("today", PKT, "start", now) == ms(2026, 10, 14)
    assert parse_date_expression("today", PKT, "end", now) == ms(2026, 10, 15) - 1


def test_yesterday_and_tomorrow(now):
    assert parse_date_expression("Yesterday", PKT, "start", now) == ms(2026, 10, 13)
    assert parse_date_expression("tomorrow", PKT, "end", now) == ms(2026, 10, 16) - 1


def test_weeks_start_on_monday(now):
    assert parse_date_expression("this week", PKT, "start", now) == ms(2026, 10, 12)
    # Sunday 23:59:59.999
    assert parse_date_expression("this week", PKT, "end", now) == ms(2026, 10, 19) - 1
    assert parse_date_expression("last week", PKT, "start", now) == ms(2026, 10, 5)
    assert parse_date_expression("last week", PKT, "end", now) == ms(2026, 10, 12) - 1


def test_months(now):
    assert parse_date_expression("this month", PKT, "start", now) == ms(2026, 10, 1)
    assert parse_date_expression("this month", PKT, "end", now) == ms(2026, 11, 1) - 1
    assert parse_date_expression("last month", PKT, "start", now) == ms(2026, 9, 1)
    assert parse_date_expression("next month", PKT, "end", now) == ms(2026, 12, 1) - 1


def test_relative_hours_are_instants(now):
    expected = ms(2026, 10, 14, 12, 30)
    assert parse_date_expression("3 hours ago", PKT, "start", now) == expected
    assert parse_date_expression("3 hours ago", PKT, "end", now) == expected
    assert parse_date_expression("in 30 minutes", PKT, "start", now) == ms(
        2026, 10, 14, 16, 0
    )


def test_relative_days_cover_whole_days(now):
    assert parse_date_expression("2 days ago", PKT, "start", now) == ms(2026, 10, 12)
    assert parse_date_expression("a week from now", PKT, "end", now) == (
        ms(2026, 10, 22) - 1
    )


def test_month_offset_clamps_to_month_end():
    march_31 = datetime(2026, 3, 31, 10, 0, tzinfo=PKT)
    assert parse_date_expression("1 month ago", PKT, "start", march_31) == ms(
        2026, 2, 28
    )


def test_timestamps_pass_through(now):
    assert parse_date_expression("1760641200000", PKT, "start", now) == 1760641200000
    # 10 digits are epoch seconds
    assert parse_date_expression("1760641200", PKT, "start", now) == 1760641200000
    with pytest.raises(InvalidDateRange):
        parse_date_expression("12345", PKT, "start", now)


def test_iso_dates_and_datetimes(now):
    assert parse_date_expression("2026-10-01", PKT, "start", now) == ms(2026, 10, 1)
    assert parse_date_expression("2026-10-01", PKT, "end", now) == ms(2026, 10, 2) - 1
    assert parse_date_expression("2026-10-01 14:30", PKT, "start", now) == ms(
        2026, 10, 1, 14, 30
    )


def test_day_with_clock(now):
    assert parse_date_expression("yesterday 9am", PKT, "start", now) == ms(
        2026, 10, 13, 9, 0
    )
    assert parse_date_expression("today 5:15pm", PKT, "start", now) == ms(
        2026, 10, 14, 17, 15
    )
    assert parse_date_expression("2026-10-01 12am", PKT, "start", now) == ms(
        2026, 10, 1, 0, 0
    )


def test_now_is_an_instant(now):
    assert parse_date_expression("now", PKT, "end", now) == ms(2026, 10, 14, 15, 30)


def test_timezone_shifts_day_boundaries(now):
    pkt = parse_date_expression("2026-10-01", PKT, "start", now)
    utc = parse_date_expression("2026-10-01", UTC, "start", now)
    assert utc - pkt == 5 * 3_600_000


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        None,
        "someday",
        "2026-13-01",
        "yesterday 9",
        "today 25:00",
        "99999999999999999999",
        "1000000000 days ago",
        "9999999 months ago",
        "in 99999999999 hours",
    ],
)
def test_unrecognised_expressions_raise(text, now):
    with pytest.raises(InvalidDateRange):
        parse_date_expression(text, PKT, "start", now)


@pytest.mark.parametrize(
    "start", ["99999999999999999999", "9999999999999999", "1000000000 days ago"]
)
def test_out_of_range_dates_are_validation_errors(start, now):
    with pytest.raises(InvalidDateRange, match="Date out of range"):
        parse_date_range(start, "now", now=now)


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


def test_parse_date_range(now):
    dr = parse_date_range("this week", "today", "Asia/Karachi", now=now)
    assert dr.start_ms == ms(2026, 10, 12)
    assert dr.end_ms == ms(2026, 10, 15) - 1
    assert dr.start_formatted == "2026-10-12 00:00"
    assert dr.end_formatted == "2026-10-14 23:59"
    assert dr.as_dict() == {
        "start": "2026-10-12 00:00",
        "end": "2026-10-14 23:59",
        "timezone": "Asia/Karachi",
    }


def test_parse_date_range_start_after_end(now):
    with pytest.raises(InvalidDateRange, match="before or equal"):
        parse_date_range("today", "yesterday", "PKT", now=now)


@pytest.mark.parametrize("start,end", [(None, "today"), ("today", ""), (None, None)])
def test_parse_date_range_requires_both_bounds(start, end, now):
    with pytest.raises(InvalidDateRange, match="Both startDate and endDate"):
        parse_date_range(start, end, now=now)


def test_format_timestamp_uses_given_zone():
    stamp = ms(2026, 10, 14, 9, 5)
    assert format_timestamp(stamp, PKT) == "2026-10-14 09:05"
    assert format_timestamp(stamp, UTC) == "2026-10-14 04:05"
