from datetime import date, datetime, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo

import pytest
from django.utils import timezone

from challenges.errors import ValidationError
from challenges.services import calendar


def test_today__uses_local_calendar_day_not_utc(monkeypatch):
    # 23:30 UTC on Jan 1 is already Jan 2 in Tokyo and still Jan 1 in New York
    fixed_now = datetime(2024, 1, 1, 23, 30, tzinfo=dt_timezone.utc)
    monkeypatch.setattr(timezone, "now", lambda: fixed_now)

    assert calendar.today(ZoneInfo("Asia/Tokyo")) == date(2024, 1, 2)
    assert calendar.today(ZoneInfo("America/New_York")) == date(2024, 1, 1)


def test_today__follows_active_timezone(monkeypatch):
    fixed_now = datetime(2024, 3, 10, 2, 0, tzinfo=dt_timezone.utc)
    monkeypatch.setattr(timezone, "now", lambda: fixed_now)

    with timezone.override(ZoneInfo("America/Los_Angeles")):
        assert calendar.today() == date(2024, 3, 9)
        assert calendar.today_string() == "2024-03-09"


def test_to_date_string__is_zero_padded():
    assert calendar.to_date_string(date(2024, 2, 5)) == "2024-02-05"


def test_parse_date__accepts_date_and_iso_string():
    assert calendar.parse_date(date(2024, 1, 1)) == date(2024, 1, 1)
    assert calendar.parse_date("2024-01-01") == date(2024, 1, 1)
    assert calendar.parse_date(" 2024-12-31 ") == date(2024, 12, 31)


@pytest.mark.parametrize("bad", ["2024-13-01", "yesterday", "", None, 20240101])
def test_parse_date__rejects_garbage(bad):
    with pytest.raises(ValidationError):
        calendar.parse_date(bad)


def test_parse_date__rejects_timestamps():
    with pytest.raises(ValidationError):
        calendar.parse_date(datetime(2024, 1, 1, 12, 0))


def test_add_days_and_days_between():
    start = date(2024, 1, 1)
    end = calendar.add_days(start, 66)

    assert end == date(2024, 3, 7)  # leap February
    assert calendar.days_between(start, end) == 66
    assert calendar.days_between(end, start) == -66
    assert calendar.add_days(start, 0) == start
    assert calendar.add_days(start, -1) == start - timedelta(days=1)
