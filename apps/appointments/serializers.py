# apps/appointments/serializers.py
from __future__ import annotations

from rest_framework import serializers

from apps.clinicians.serializers import PractitionerBriefSerializer
from apps.patients.models import Patient
from apps.services.models import Service

from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    # I expose a computed duration so UIs don’t have to do time math.
    duration_minutes = serializers.IntegerField(read_only=True)
    practitioner_detail = PractitionerBriefSerializer(source="practitioner", read_only=True)
    start_time = serializers.TimeField(format="%H:%M", read_only=True)
    end_time = serializers.TimeField(format="%H:%M", read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "reference_code",
            "patient",
            "service",
            "practitioner",
            "practitioner_detail",
            "date",
            "start_time",
            "end_time",
            "duration_minutes",
            "status",
            "honor_preferred_dentist",
            "teeth_count",
            "notes",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AppointmentCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField()
    service_id = serializers.PrimaryKeyRelatedField(
        source="service", queryset=Service.objects.filter(is_active=True)
    )
    # Staff must name the patient; patients book for their own record
    patient_id = serializers.PrimaryKeyRelatedField(
        source="patient", queryset=Patient.objects.active(), required=False
    )
    teeth_count = serializers.IntegerField(required=False, min_value=1, allow_null=True)
    honor_preferred_dentist = serializers.BooleanField(required=False, default=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AppointmentRescheduleSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField()


class AppointmentReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    service_id = serializers.PrimaryKeyRelatedField(
        source="service", queryset=Service.objects.filter(is_active=True)
    )
    patient_id = serializers.IntegerField(required=False, min_value=1)
    teeth_count = serializers.IntegerField(required=False, min_value=1)
    honor_preferred_dentist = serializers.BooleanField(required=False, default=True)


class UtilizationQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date must not be before start date."})
        if (attrs["end_date"] - attrs["start_date"]).days > 92:
            raise serializers.ValidationError({"end_date": "Ranges are limited to 93 days."})
        return attrs


class SlotListingSerializer(serializers.Serializer):
    # I match SlotListing.as_dict()
    date = serializers.DateField()
    slots = serializers.ListField(child=serializers.CharField())
    message = serializers.CharField(allow_blank=True)
    snapshot = serializers.DictField()
    usage = serializers.DictField()
    metadata = serializers.DictField()
