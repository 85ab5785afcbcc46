import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Challenge",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("duration", models.PositiveSmallIntegerField(choices=[(30, "30 days"), (55, "55 days"), (66, "66 days"), (90, "90 days")])),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("scheduled_time", models.TimeField()),
                ("habit_sequence", models.JSONField(default=list)),
                ("declaration_text", models.TextField()),
                ("declaration_signature", models.TextField(blank=True, null=True)),
                ("status", models.CharField(choices=[("active", "Active"), ("completed", "Completed"), ("failed", "Failed"), ("paused", "Paused")], default="active", max_length=16)),
                ("current_streak", models.PositiveIntegerField(default=0)),
                ("total_checkins", models.PositiveIntegerField(default=0)),
                ("emergency_uses", models.PositiveSmallIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="challenges", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "active")), fields=("user",), name="unique_active_challenge_per_user"),
                    models.CheckConstraint(condition=models.Q(("emergency_uses__gte", 0), ("emergency_uses__lte", 3)), name="emergency_uses_within_budget"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Presolution",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("obstacle", models.TextField()),
                ("minimum_practice", models.TextField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("challenge", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="presolutions", to="challenges.challenge")),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="CheckIn",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("check_in_date", models.DateField()),
                ("completed_habits", models.JSONField(default=list)),
                ("total_habits", models.PositiveIntegerField()),
                ("is_complete", models.BooleanField(default=False)),
                ("is_emergency", models.BooleanField(default=False)),
                ("emergency_reason", models.TextField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("challenge", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="checkins", to="challenges.challenge")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="challenge_checkins", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["check_in_date"],
                "constraints": [
                    models.UniqueConstraint(fields=("challenge", "check_in_date"), name="unique_checkin_per_challenge_per_day"),
                    models.CheckConstraint(condition=models.Q(models.Q(("emergency_reason__isnull", False), ("is_emergency", True)), models.Q(("emergency_reason__isnull", True), ("is_emergency", False)), _connector="OR"), name="emergency_reason_iff_emergency"),
                ],
            },
        ),
    ]
