# apps/appointments/schemas.py
from rest_framework import serializers
from drf_spectacular.utils import OpenApiExample


# I describe the 409 payload (capacity / preferred-dentist / status conflicts).
class BookingConflict409Serializer(serializers.Serializer):
    code = serializers.ChoiceField(choices=["capacity_exceeded", "preferred_unavailable", "invalid_status"])
    detail = serializers.CharField()
    hint = serializers.CharField(required=False)
    full_at = serializers.CharField(required=False, allow_null=True)


# I describe the 422 payload (closed day, off-grid start, window, patient overlap).
class BookingRejected422Serializer(serializers.Serializer):
    code = serializers.ChoiceField(
        choices=["clinic_closed", "off_grid", "past_closing", "outside_window", "patient_overlap"]
    )
    detail = serializers.CharField()
    hint = serializers.CharField(required=False)


# ---- Swagger example payloads ----

CreateAppointmentExample = OpenApiExample(
    "Book a slot",
    value={
        "date": "2025-09-22",
        "start_time": "09:00",
        "service_id": 1,
        "patient_id": 7,
        "honor_preferred_dentist": True,
    },
    request_only=True,
)

RescheduleAppointmentExample = OpenApiExample(
    "Reschedule",
    value={"date": "2025-09-23", "start_time": "10:30"},
    request_only=True,
)

CapacityExceededExample = OpenApiExample(
    "Block full",
    value={
        "code": "capacity_exceeded",
        "detail": "The 09:00 block is fully booked.",
        "hint": "Pick another time or date.",
        "full_at": "09:00",
    },
    response_only=True,
    status_codes=["409"],
)

PreferredUnavailableExample = OpenApiExample(
    "Preferred dentist busy",
    value={
        "code": "preferred_unavailable",
        "detail": "Your preferred dentist is already booked at that time.",
        "hint": "Retry with honor_preferred_dentist=false to be seen by any available dentist.",
    },
    response_only=True,
    status_codes=["409"],
)
