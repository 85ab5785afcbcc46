"""
The single source of "today" for the challenge engine.

Check-in dates are calendar days in the user's local timezone (the active
Django timezone), never the UTC date of a timestamp. Every ledger and
progress computation goes through `today()`.
"""
from datetime import date, datetime, timedelta

from django.utils import timezone

from challenges.errors import ValidationError


def today(tz=None) -> date:
    return timezone.localdate(timezone=tz)


def today_string(tz=None) -> str:
    return to_date_string(today(tz))


def to_date_string(value: date) -> str:
    return value.isoformat()


def parse_date(value) -> date:
    """
    Accepts a `date` or a canonical YYYY-MM-DD string.
    Datetimes are rejected: their calendar day depends on a timezone.
    """
    if isinstance(value, datetime):
        raise ValidationError("Expected a calendar date, got a timestamp")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    return (end - start).days
