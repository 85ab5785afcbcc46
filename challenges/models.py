from __future__ import annotations
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Q


MAX_EMERGENCY_USES = 3


class Challenge(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        PAUSED = "paused", "Paused"

    DURATION_CHOICES = [
        (30, "30 days"),
        (55, "55 days"),
        (66, "66 days"),
        (90, "90 days"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="challenges",
    )
    title = models.CharField(max_length=200)
    duration = models.PositiveSmallIntegerField(choices=DURATION_CHOICES)
    start_date = models.DateField()
    # start_date + duration, fixed at creation
    end_date = models.DateField()
    scheduled_time = models.TimeField()
    habit_sequence = models.JSONField(default=list)
    declaration_text = models.TextField()
    declaration_signature = models.TextField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)

    # cached from the check-in ledger, refreshed inside every ledger write
    current_streak = models.PositiveIntegerField(default=0)
    total_checkins = models.PositiveIntegerField(default=0)
    emergency_uses = models.PositiveSmallIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=Q(status="active"),
                name="unique_active_challenge_per_user",
            ),
            models.CheckConstraint(
                condition=Q(emergency_uses__gte=0) & Q(emergency_uses__lte=MAX_EMERGENCY_USES),
                name="emergency_uses_within_budget",
            ),
        ]
        ordering = ["-created_at", "-id"]

    if TYPE_CHECKING:
        # Django dynamically injects these via related_name
        checkins = None
        presolutions = None

    @property
    def emergency_remaining(self) -> int:
        return max(0, MAX_EMERGENCY_USES - self.emergency_uses)

    def __str__(self) -> str:
        return f"{self.title} ({self.duration} days from {self.start_date})"


class Presolution(models.Model):
    challenge = models.ForeignKey(Challenge, on_delete=models.CASCADE,
                                  related_name="presolutions")
    obstacle = models.TextField()
    minimum_practice = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.obstacle} -> {self.minimum_practice}"


class CheckIn(models.Model):
    challenge = models.ForeignKey(Challenge, on_delete=models.CASCADE,
                                  related_name="checkins")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="challenge_checkins",
    )
    check_in_date = models.DateField()
    completed_habits = models.JSONField(default=list)
    total_habits = models.PositiveIntegerField()
    is_complete = models.BooleanField(default=False)
    is_emergency = models.BooleanField(default=False)
    emergency_reason = models.TextField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["challenge", "check_in_date"],
                                    name="unique_checkin_per_challenge_per_day"),
            models.CheckConstraint(
                condition=(
                    Q(is_emergency=True, emergency_reason__isnull=False)
                    | Q(is_emergency=False, emergency_reason__isnull=True)
                ),
                name="emergency_reason_iff_emergency",
            ),
        ]
        ordering = ["check_in_date"]

    def __str__(self) -> str:
        return f"{self.challenge.title} @ {self.check_in_date}"
