# apps/appointments/admin.py
from django.contrib import admin
from .models import Appointment, BookingDayLock


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = (
        "reference_code", "patient", "service", "practitioner",
        "date", "start_time", "end_time", "status", "honor_preferred_dentist",
    )
    list_filter = ("status", "practitioner", "date")
    search_fields = ("reference_code", "patient__given_name", "patient__family_name")
    date_hierarchy = "date"
    # Writes must go through the booking coordinator so capacity is re-checked
    readonly_fields = (
        "reference_code", "patient", "service", "practitioner", "date", "start_time", "end_time",
        "status", "honor_preferred_dentist", "teeth_count", "cancelled_at", "created_at", "updated_at",
    )

    def has_add_permission(self, request):
        return False


@admin.register(BookingDayLock)
class BookingDayLockAdmin(admin.ModelAdmin):
    list_display = ("date", "created_at")
