# apps/clinicians/api.py
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.clinic.serializers import DateQuerySerializer
from apps.clinic.services import ClinicDateResolver

from .models import Practitioner
from .serializers import PractitionerSerializer


@extend_schema_view(
    list=extend_schema(summary="List practitioners", tags=["Practitioners"]),
    retrieve=extend_schema(summary="Get practitioner", tags=["Practitioners"]),
)
class PractitionerViewSet(viewsets.ReadOnlyModelViewSet):
    """
    I expose the roster read-only; staff edit it through the admin.
    """
    queryset = Practitioner.objects.all()
    serializer_class = PractitionerSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["code", "name", "email"]
    ordering_fields = ["code", "name", "status"]
    ordering = ["code", "id"]

    def get_queryset(self):
        qs = super().get_queryset()
        st = self.request.query_params.get("status")
        if st:
            qs = qs.filter(status=st)
        return qs

    @extend_schema(
        tags=["Practitioners"],
        summary="Practitioners on duty for a date",
        description="Empty when the clinic is closed that day, even if someone is rostered.",
        parameters=[OpenApiParameter(name="date", required=True, type=OpenApiTypes.DATE)],
        responses={200: PractitionerSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="available-for-date")
    def available_for_date(self, request):
        q = DateQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        snapshot = ClinicDateResolver(use_cache=True).resolve(q.validated_data["date"])
        by_id = Practitioner.objects.in_bulk(list(snapshot.active_practitioner_ids))
        ordered = [by_id[pk] for pk in snapshot.active_practitioner_ids if pk in by_id]
        return Response(PractitionerSerializer(ordered, many=True).data)
