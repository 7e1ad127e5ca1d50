# apps/clinic/api.py
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import DateQuerySerializer, DaySnapshotSerializer
from .services import ClinicDateResolver


class CalendarSnapshotView(APIView):
    """
    I return the resolved operating parameters for one date
    (weekly rule, override and roster already layered).
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Calendar"],
        summary="Resolved clinic calendar for a date",
        parameters=[OpenApiParameter(name="date", required=True, type=OpenApiTypes.DATE)],
        responses={200: DaySnapshotSerializer},
    )
    def get(self, request):
        q = DateQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        snapshot = ClinicDateResolver(use_cache=True).resolve(q.validated_data["date"])
        return Response(snapshot.as_dict())
