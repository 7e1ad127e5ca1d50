# apps/clinic/serializers.py
from rest_framework import serializers


class DateQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class DaySnapshotSerializer(serializers.Serializer):
    # I mirror DaySnapshot.as_dict() for schema generation.
    date = serializers.DateField()
    is_open = serializers.BooleanField()
    open_time = serializers.CharField(allow_null=True)
    close_time = serializers.CharField(allow_null=True)
    effective_capacity = serializers.IntegerField()
    capacity_override = serializers.IntegerField(allow_null=True)
    practitioner_count = serializers.IntegerField()
    active_practitioner_ids = serializers.ListField(child=serializers.IntegerField())
    note = serializers.CharField(allow_blank=True)
    source = serializers.CharField()
