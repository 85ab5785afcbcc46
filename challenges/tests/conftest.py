from datetime import date, timedelta

import pytest

from challenges.services import calendar
from challenges.services.challenge_manager import create_challenge


class FixedClock:
    """Stands in for the calendar adapter; tests move it day by day."""

    def __init__(self, day: date):
        self.day = day

    def __call__(self, tz=None):
        return self.day

    def advance(self, days=1):
        self.day = self.day + timedelta(days=days)
        return self.day


@pytest.fixture()
def clock(monkeypatch):
    fixed = FixedClock(date(2024, 1, 1))
    monkeypatch.setattr(calendar, "today", fixed)
    return fixed


@pytest.fixture()
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="u1",
        password="pass12345",
        email="u1@example.com",
    )


@pytest.fixture()
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username="u2",
        password="pass12345",
        email="u2@example.com",
    )


@pytest.fixture()
def make_challenge(user):
    def _make(**overrides):
        data = {
            "user": user,
            "title": "Morning Routine",
            "duration": 66,
            "start_date": "2024-01-01",
            "scheduled_time": "05:00",
            "habit_sequence": ["meditate", "read", "exercise"],
            "declaration_text": "I commit to showing up every day.",
        }
        data.update(overrides)
        return create_challenge(**data)

    return _make
