import logging
from typing import Optional

from django.db import DatabaseError, transaction

from challenges.errors import StorageError, ValidationError
from challenges.models import Challenge, CheckIn
from challenges.services import calendar, progress
from challenges.services.challenge_manager import require_user

logger = logging.getLogger(__name__)


def get_today_check_in(challenge: Challenge) -> Optional[CheckIn]:
    return CheckIn.objects.filter(challenge=challenge, check_in_date=calendar.today()).first()


def get_all_check_ins(challenge: Challenge) -> list:
    return list(CheckIn.objects.filter(challenge=challenge).order_by("check_in_date"))


def normalize_completed_habits(habit_sequence, completed_habits) -> list:
    """
    Restrict a submission to the challenge's own habits.

    Unknown names are rejected rather than dropped, so a typo can never be
    counted toward completion. Duplicates collapse and the result follows
    habit_sequence order.
    """
    submitted = set()
    for name in completed_habits or []:
        name = str(name).strip()
        if name not in habit_sequence:
            raise ValidationError(f"Unknown habit: {name!r}")
        submitted.add(name)
    return [h for h in habit_sequence if h in submitted]


def _lock_owned_active(user, challenge: Challenge) -> Challenge:
    try:
        locked = Challenge.objects.select_for_update().get(pk=challenge.pk, user=user)
    except Challenge.DoesNotExist:
        raise ValidationError("Challenge not found")
    if locked.status != Challenge.Status.ACTIVE:
        raise ValidationError("Challenge is not active")
    return locked


def record_check_in(
        *,
        user,
        challenge: Challenge,
        completed_habits,
        require_complete: bool = False,
        notes: Optional[str] = None,
) -> CheckIn:
    """
    Upsert today's check-in for `challenge`.

    Repeating the same submission is a no-op; a different submission on the
    same day replaces the row, except that a complete day cannot be turned
    back into an incomplete one.
    """
    require_user(user)

    try:
        with transaction.atomic():
            locked = _lock_owned_active(user, challenge)
            habits = list(locked.habit_sequence)
            completed = normalize_completed_habits(habits, completed_habits)
            is_complete = len(completed) == len(habits)

            if require_complete and not is_complete:
                raise ValidationError("Complete all habits before checking in")

            today = calendar.today()
            existing = CheckIn.objects.filter(challenge=locked, check_in_date=today).first()
            if existing is not None and existing.is_emergency:
                raise ValidationError("Today was covered by an emergency")
            if existing is not None and existing.is_complete and not is_complete:
                raise ValidationError("Today is already complete")

            checkin, created = CheckIn.objects.update_or_create(
                challenge=locked,
                check_in_date=today,
                defaults={
                    "user": user,
                    "completed_habits": completed,
                    "total_habits": len(habits),
                    "is_complete": is_complete,
                    "is_emergency": False,
                    "emergency_reason": None,
                    "notes": notes,
                },
            )
            progress.refresh_counters(locked)
    except DatabaseError as exc:
        raise StorageError(f"Could not save check-in: {exc}") from exc

    # keep the caller's instance in sync with the committed counters
    challenge.current_streak = locked.current_streak
    challenge.total_checkins = locked.total_checkins

    logger.info(
        "Check-in %s for challenge %s on %s: %d/%d habits",
        "created" if created else "updated",
        challenge.pk, checkin.check_in_date, len(completed), len(habits),
    )
    return checkin
