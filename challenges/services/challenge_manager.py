import logging
from datetime import datetime, time
from typing import Optional

from django.db import DatabaseError, transaction

from challenges.errors import AuthenticationError, ValidationError
from challenges.models import Challenge, CheckIn, Presolution
from challenges.services import calendar

logger = logging.getLogger(__name__)

SUPPORTED_DURATIONS = tuple(value for value, _ in Challenge.DURATION_CHOICES)


def require_user(user):
    if user is None or not getattr(user, "is_authenticated", False):
        raise AuthenticationError()
    return user


def clean_habit_sequence(habit_sequence) -> list:
    if habit_sequence is None or isinstance(habit_sequence, str):
        raise ValidationError("Habit list must be a list of names")

    habits = [str(h).strip() for h in habit_sequence if h is not None and str(h).strip()]
    if not habits:
        raise ValidationError("Add at least one habit")

    # habits are addressed by name when checked off
    seen = set()
    for name in habits:
        if name in seen:
            raise ValidationError(f"Habit listed twice: {name!r}")
        seen.add(name)
    return habits


def clean_duration(duration) -> int:
    try:
        value = int(duration)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid duration: {duration!r}")
    if value not in SUPPORTED_DURATIONS:
        choices = ", ".join(str(d) for d in SUPPORTED_DURATIONS)
        raise ValidationError(f"Duration must be one of {choices} days")
    return value


def clean_scheduled_time(value) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise ValidationError(f"Invalid daily time: {value!r} (expected HH:MM)")


def clean_presolutions(presolutions) -> list:
    # half-filled obstacle cards are dropped, not rejected
    cleaned = []
    for ps in presolutions or []:
        obstacle = (ps.get("obstacle") or "").strip()
        minimum_practice = (ps.get("minimum_practice") or "").strip()
        if obstacle and minimum_practice:
            cleaned.append({"obstacle": obstacle, "minimum_practice": minimum_practice})
    return cleaned


def _supersede_active(user) -> None:
    """
    Retire whatever is currently active so the new challenge can be the
    only active one. Runs inside the creation transaction.
    """
    for old in Challenge.objects.select_for_update().filter(user=user, status=Challenge.Status.ACTIVE):
        completed = CheckIn.objects.filter(challenge=old, is_complete=True).count()
        old.status = (
            Challenge.Status.COMPLETED if completed >= old.duration else Challenge.Status.FAILED
        )
        old.save(update_fields=["status", "updated_at"])
        logger.info("Challenge %s superseded for user %s (status=%s)", old.pk, user.pk, old.status)


def create_challenge(
        *,
        user,
        title: str,
        duration: int,
        start_date,
        scheduled_time,
        habit_sequence,
        declaration_text: str,
        declaration_signature: Optional[str] = None,
        presolutions=None,
) -> Challenge:
    require_user(user)

    title = (title or "").strip()
    if not title:
        raise ValidationError("Give your challenge a name")
    declaration_text = (declaration_text or "").strip()
    if not declaration_text:
        raise ValidationError("Write your declaration")

    duration = clean_duration(duration)
    start = calendar.parse_date(start_date)
    scheduled = clean_scheduled_time(scheduled_time)
    habits = clean_habit_sequence(habit_sequence)
    cleaned_presolutions = clean_presolutions(presolutions)

    with transaction.atomic():
        _supersede_active(user)
        challenge = Challenge.objects.create(
            user=user,
            title=title,
            duration=duration,
            start_date=start,
            end_date=calendar.add_days(start, duration),
            scheduled_time=scheduled,
            habit_sequence=habits,
            declaration_text=declaration_text,
            declaration_signature=declaration_signature or None,
            status=Challenge.Status.ACTIVE,
        )

    logger.info("Challenge %s created for user %s (%s days from %s)",
                challenge.pk, user.pk, duration, start)

    challenge.presolution_warning = None
    if cleaned_presolutions:
        try:
            with transaction.atomic():
                Presolution.objects.bulk_create(
                    [Presolution(challenge=challenge, **ps) for ps in cleaned_presolutions]
                )
        except DatabaseError:
            logger.warning("Presolutions not saved for challenge %s", challenge.pk, exc_info=True)
            challenge.presolution_warning = "Challenge created, but obstacles could not be saved"

    return challenge


def get_active_challenge(*, user) -> Optional[Challenge]:
    require_user(user)

    actives = list(
        Challenge.objects.filter(user=user, status=Challenge.Status.ACTIVE)
        .order_by("-created_at", "-id")
    )
    if not actives:
        return None
    if len(actives) > 1:
        logger.error(
            "User %s has %d active challenges (%s); using the most recent",
            user.pk, len(actives), ", ".join(str(c.pk) for c in actives),
        )
    return actives[0]


def get_challenge(*, user, challenge_id) -> Challenge:
    require_user(user)
    try:
        return Challenge.objects.get(pk=challenge_id, user=user)
    except (Challenge.DoesNotExist, ValueError, TypeError):
        raise ValidationError("Challenge not found")
