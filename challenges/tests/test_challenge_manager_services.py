import logging
from datetime import date, time, timedelta

import pytest
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError

from challenges.errors import AuthenticationError, ValidationError
from challenges.models import Challenge, CheckIn, Presolution
from challenges.services import challenge_manager

pytestmark = pytest.mark.django_db


def test_create_challenge__persists_active_with_zeroed_counters(user, make_challenge):
    challenge = make_challenge(duration=66, start_date="2024-01-01", scheduled_time="05:00")

    stored = Challenge.objects.get(pk=challenge.pk)
    assert stored.user == user
    assert stored.status == Challenge.Status.ACTIVE
    assert stored.start_date == date(2024, 1, 1)
    assert stored.end_date == date(2024, 3, 7)
    assert stored.scheduled_time == time(5, 0)
    assert stored.habit_sequence == ["meditate", "read", "exercise"]
    assert stored.current_streak == 0
    assert stored.total_checkins == 0
    assert stored.emergency_uses == 0
    assert stored.declaration_signature is None


def test_create_challenge__end_date_is_fixed_at_creation(make_challenge):
    challenge = make_challenge(duration=30, start_date="2024-02-15")
    assert challenge.end_date == date(2024, 2, 15) + timedelta(days=30)

    Challenge.objects.filter(pk=challenge.pk).update(duration=90)
    assert Challenge.objects.get(pk=challenge.pk).end_date == date(2024, 3, 16)


def test_create_challenge__strips_and_drops_blank_habits(make_challenge):
    challenge = make_challenge(habit_sequence=["  meditate ", "", "   ", "read"])
    assert challenge.habit_sequence == ["meditate", "read"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"habit_sequence": []},
        {"habit_sequence": ["", "  "]},
        {"habit_sequence": ["read", "read"]},
        {"duration": 45},
        {"duration": "abc"},
        {"start_date": "2024-13-01"},
        {"start_date": ""},
        {"scheduled_time": "25:99"},
        {"title": "   "},
        {"declaration_text": ""},
    ],
)
def test_create_challenge__rejects_invalid_input(make_challenge, overrides):
    with pytest.raises(ValidationError):
        make_challenge(**overrides)
    assert Challenge.objects.count() == 0


def test_create_challenge__requires_authenticated_user(make_challenge):
    with pytest.raises(AuthenticationError):
        make_challenge(user=AnonymousUser())
    with pytest.raises(AuthenticationError):
        make_challenge(user=None)


def test_create_challenge__saves_filled_presolutions_only(make_challenge):
    challenge = make_challenge(presolutions=[
        {"obstacle": "Overslept", "minimum_practice": "5 minutes of reading"},
        {"obstacle": "Travel", "minimum_practice": ""},
        {"obstacle": "", "minimum_practice": "Stretch"},
    ])

    rows = list(Presolution.objects.filter(challenge=challenge).values_list("obstacle", "minimum_practice"))
    assert rows == [("Overslept", "5 minutes of reading")]
    assert challenge.presolution_warning is None


def test_create_challenge__presolution_failure_is_not_fatal(monkeypatch, caplog, make_challenge):
    def boom(*args, **kwargs):
        raise DatabaseError("presolutions table unavailable")

    monkeypatch.setattr(Presolution.objects, "bulk_create", boom)

    with caplog.at_level(logging.WARNING, logger="challenges"):
        challenge = make_challenge(presolutions=[{"obstacle": "Overslept", "minimum_practice": "Read a page"}])

    assert Challenge.objects.filter(pk=challenge.pk, status=Challenge.Status.ACTIVE).exists()
    assert challenge.presolution_warning
    assert "Presolutions not saved" in caplog.text


def test_create_challenge__back_to_back_leaves_only_newest_active(user, make_challenge):
    first = make_challenge(title="First")
    second = make_challenge(title="Second")

    active = challenge_manager.get_active_challenge(user=user)

    assert active.pk == second.pk
    assert Challenge.objects.filter(user=user, status=Challenge.Status.ACTIVE).count() == 1
    assert Challenge.objects.get(pk=first.pk).status == Challenge.Status.FAILED


def test_create_challenge__superseded_finished_challenge_is_marked_completed(user, make_challenge):
    first = make_challenge(duration=30, start_date="2024-01-01")
    CheckIn.objects.bulk_create([
        CheckIn(challenge=first, user=user, check_in_date=date(2024, 1, 1) + timedelta(days=i),
                completed_habits=[], total_habits=3, is_complete=True)
        for i in range(30)
    ])

    make_challenge(title="Next one")

    assert Challenge.objects.get(pk=first.pk).status == Challenge.Status.COMPLETED


def test_create_challenge__does_not_touch_other_users(user, other_user, make_challenge):
    theirs = make_challenge(user=other_user, title="Theirs")
    make_challenge(title="Mine")

    assert Challenge.objects.get(pk=theirs.pk).status == Challenge.Status.ACTIVE


def test_get_active_challenge__none_when_nothing_active(user, make_challenge):
    assert challenge_manager.get_active_challenge(user=user) is None

    challenge = make_challenge()
    Challenge.objects.filter(pk=challenge.pk).update(status=Challenge.Status.PAUSED)

    assert challenge_manager.get_active_challenge(user=user) is None


def test_get_active_challenge__multiple_actives_returns_newest_and_logs(monkeypatch, caplog, user, make_challenge):
    older = make_challenge(title="Older")
    newer = make_challenge(title="Newer")
    real_filter = Challenge.objects.filter

    # storage forbids two actives, so make the active lookup see both rows
    def filter_ignoring_status(*args, **kwargs):
        kwargs.pop("status", None)
        return real_filter(*args, **kwargs)

    monkeypatch.setattr(Challenge.objects, "filter", filter_ignoring_status)

    with caplog.at_level(logging.ERROR, logger="challenges"):
        active = challenge_manager.get_active_challenge(user=user)

    assert active.pk == newer.pk
    assert "2 active challenges" in caplog.text
    assert str(older.pk) in caplog.text


def test_get_active_challenge__requires_authenticated_user():
    with pytest.raises(AuthenticationError):
        challenge_manager.get_active_challenge(user=AnonymousUser())


def test_get_challenge__is_owner_scoped(user, other_user, make_challenge):
    challenge = make_challenge()

    assert challenge_manager.get_challenge(user=user, challenge_id=challenge.pk).pk == challenge.pk
    with pytest.raises(ValidationError):
        challenge_manager.get_challenge(user=other_user, challenge_id=challenge.pk)
    with pytest.raises(ValidationError):
        challenge_manager.get_challenge(user=user, challenge_id="not-an-id")
