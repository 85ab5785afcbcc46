"""
Emergency protocol: a three-use escape valve per challenge.

A granted emergency marks today complete without any habits, so the streak
survives. Refusals are ordinary outcomes and come back as values.
"""
import logging
from dataclasses import dataclass
from typing import Union

from django.db import DatabaseError, transaction
from django.db.models import F

from challenges.errors import StorageError
from challenges.models import MAX_EMERGENCY_USES, Challenge, CheckIn
from challenges.services import calendar, progress
from challenges.services.challenge_manager import require_user

logger = logging.getLogger(__name__)

EXHAUSTED = "exhausted"
NOT_FOUND = "not_found"
BLANK_REASON = "blank_reason"
INACTIVE = "inactive"
ALREADY_COMPLETE = "already_complete"


@dataclass(frozen=True)
class EmergencyGranted:
    remaining: int
    message: str
    success: bool = True


@dataclass(frozen=True)
class EmergencyRefused:
    code: str
    error: str
    success: bool = False


EmergencyResult = Union[EmergencyGranted, EmergencyRefused]


def _refuse(challenge_id, code: str, error: str) -> EmergencyRefused:
    logger.info("Emergency refused for challenge %s: %s", challenge_id, code)
    return EmergencyRefused(code=code, error=error)


def use_emergency(*, user, challenge_id, reason: str) -> EmergencyResult:
    """
    Consume one emergency use and mark today complete, atomically.

    Preconditions are checked against the locked, committed challenge row,
    never against a copy the caller fetched earlier. A retry after a
    successful call is refused as already complete, so it cannot spend a
    second use.
    """
    require_user(user)

    reason = (reason or "").strip()
    if not reason:
        return _refuse(challenge_id, BLANK_REASON, "Please provide a reason for emergency use")

    try:
        with transaction.atomic():
            try:
                challenge = Challenge.objects.select_for_update().get(pk=challenge_id, user=user)
            except (Challenge.DoesNotExist, ValueError, TypeError):
                return _refuse(challenge_id, NOT_FOUND, "Challenge not found")

            if challenge.status != Challenge.Status.ACTIVE:
                return _refuse(challenge_id, INACTIVE, "Challenge is not active")
            if challenge.emergency_uses >= MAX_EMERGENCY_USES:
                return _refuse(challenge_id, EXHAUSTED, "No emergencies left")

            today = calendar.today()
            if CheckIn.objects.filter(challenge=challenge, check_in_date=today, is_complete=True).exists():
                return _refuse(challenge_id, ALREADY_COMPLETE, "Today is already complete")

            # compare-and-increment against the committed value
            updated = Challenge.objects.filter(
                pk=challenge.pk, emergency_uses__lt=MAX_EMERGENCY_USES
            ).update(emergency_uses=F("emergency_uses") + 1)
            if updated != 1:
                return _refuse(challenge_id, EXHAUSTED, "No emergencies left")
            challenge.refresh_from_db(fields=["emergency_uses"])

            CheckIn.objects.update_or_create(
                challenge=challenge,
                check_in_date=today,
                defaults={
                    "user": user,
                    "completed_habits": [],
                    "total_habits": len(challenge.habit_sequence),
                    "is_complete": True,
                    "is_emergency": True,
                    "emergency_reason": reason,
                },
            )
            progress.refresh_counters(challenge)
    except DatabaseError as exc:
        raise StorageError(f"Could not apply emergency protocol: {exc}") from exc

    remaining = challenge.emergency_remaining
    logger.info("Emergency granted for challenge %s (%d remaining)", challenge.pk, remaining)
    return EmergencyGranted(
        remaining=remaining,
        message="Emergency protocol activated. Streak preserved.",
    )
