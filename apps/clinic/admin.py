from django.contrib import admin
from .models import ClinicCalendar, ClinicWeeklySchedule


@admin.register(ClinicWeeklySchedule)
class ClinicWeeklyScheduleAdmin(admin.ModelAdmin):
    list_display = ("weekday", "is_open", "open_time", "close_time", "updated_at")
    list_editable = ("is_open", "open_time", "close_time")
    ordering = ("weekday",)


@admin.register(ClinicCalendar)
class ClinicCalendarAdmin(admin.ModelAdmin):
    list_display = ("date", "is_open", "open_time", "close_time", "max_per_block_override", "note")
    list_filter = ("is_open",)
    search_fields = ("note",)
    date_hierarchy = "date"
