from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from challenges.models import Challenge, CheckIn
from challenges.services import calendar


@dataclass(frozen=True)
class ChallengeProgress:
    total_completed_days: int
    current_streak: int
    best_streak: int
    progress_percent: float
    days_elapsed: int
    days_left: int
    is_challenge_complete: bool
    emergency_remaining: int


def _complete_dates(check_ins: Iterable[CheckIn]) -> list:
    return sorted({ci.check_in_date for ci in check_ins if ci.is_complete})


def _prefetched_checkins_or_none(challenge: Challenge):
    """
    If `checkins` were prefetched, Django stores them in _prefetched_objects_cache
    and we can derive everything without touching the DB.
    """
    cache = getattr(challenge, "_prefetched_objects_cache", None) or {}
    if "checkins" not in cache:
        return None
    return list(cache["checkins"])


def history(challenge: Challenge) -> list:
    prefetched = _prefetched_checkins_or_none(challenge)
    if prefetched is not None:
        return sorted(prefetched, key=lambda ci: ci.check_in_date)
    return list(challenge.checkins.order_by("check_in_date"))


def total_completed_days(check_ins: Iterable[CheckIn]) -> int:
    # emergency days are complete days
    return sum(1 for ci in check_ins if ci.is_complete)


def current_streak(check_ins: Iterable[CheckIn]) -> int:
    """
    Trailing run of consecutive complete days, ending at the most recent
    complete day. A missing date or an incomplete row ends the run.
    """
    dates = _complete_dates(check_ins)
    if not dates:
        return 0

    streak = 1
    expected = dates[-1] - timedelta(days=1)
    for d in reversed(dates[:-1]):
        if d != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def best_streak(check_ins: Iterable[CheckIn]) -> int:
    dates = _complete_dates(check_ins)
    if not dates:
        return 0

    best = 1
    cur = 1
    for prev, nxt in zip(dates, dates[1:]):
        if nxt == prev + timedelta(days=1):
            cur += 1
            if cur > best:
                best = cur
        else:
            cur = 1
    return best


def progress_percent(total: int, duration: int) -> float:
    if duration <= 0:
        return 100.0
    return min(100.0, total / duration * 100)


def days_elapsed(start_date: date, today: date) -> int:
    # day 1 is the start date; a future start still reads as day 1
    return max(1, calendar.days_between(start_date, today) + 1)


def days_left(total: int, duration: int) -> int:
    return max(0, duration - total)


def is_challenge_complete(total: int, duration: int) -> bool:
    return total >= duration


def challenge_progress(
        challenge: Challenge,
        check_ins: Optional[list] = None,
        today: Optional[date] = None,
) -> ChallengeProgress:
    if check_ins is None:
        check_ins = history(challenge)
    if today is None:
        today = calendar.today()

    total = total_completed_days(check_ins)
    return ChallengeProgress(
        total_completed_days=total,
        current_streak=current_streak(check_ins),
        best_streak=best_streak(check_ins),
        progress_percent=progress_percent(total, challenge.duration),
        days_elapsed=days_elapsed(challenge.start_date, today),
        days_left=days_left(total, challenge.duration),
        is_challenge_complete=is_challenge_complete(total, challenge.duration),
        emergency_remaining=challenge.emergency_remaining,
    )


def refresh_counters(challenge: Challenge) -> Challenge:
    """
    Recompute the cached streak/total counters from the ledger.
    Must run inside the transaction that changed the ledger.
    """
    check_ins = list(CheckIn.objects.filter(challenge=challenge).order_by("check_in_date"))
    challenge.current_streak = current_streak(check_ins)
    challenge.total_checkins = total_completed_days(check_ins)
    challenge.save(update_fields=["current_streak", "total_checkins", "updated_at"])
    return challenge
