from django.contrib import admin

from .models import Challenge, CheckIn, Presolution


class PresolutionInline(admin.TabularInline):
    model = Presolution
    extra = 0


@admin.register(Challenge)
class ChallengeAdmin(admin.ModelAdmin):
    list_display = ("title", "user", "status", "duration", "start_date", "current_streak", "emergency_uses")
    list_filter = ("status", "duration")
    inlines = [PresolutionInline]


@admin.register(CheckIn)
class CheckInAdmin(admin.ModelAdmin):
    list_display = ("challenge", "check_in_date", "is_complete", "is_emergency")
    list_filter = ("is_complete", "is_emergency")
