from rest_framework import serializers

from .models import Practitioner


class PractitionerSerializer(serializers.ModelSerializer):
    weekday_flags = serializers.ListField(child=serializers.BooleanField(), read_only=True)

    class Meta:
        model = Practitioner
        fields = [
            "id",
            "code",
            "name",
            "employment_type",
            "status",
            "contract_end_date",
            "weekday_flags",
        ]


class PractitionerBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Practitioner
        fields = ["id", "code", "name"]
