# apps/appointments/api.py
from django.utils import timezone

from rest_framework import status, viewsets, mixins
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.filters import OrderingFilter, SearchFilter

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
)
from drf_spectacular.types import OpenApiTypes

from apps.rbac.permissions import is_clinic_staff, roles_required, STAFF_ROLES
from apps.audit.utils import log_event
from apps.patients.models import Patient

from .availability import available_slots as slot_listing
from .booking import (
    approve_appointment,
    book_appointment,
    cancel_appointment,
    reject_appointment,
    reschedule_appointment,
)
from .exceptions import BookingError
from .models import Appointment
from .serializers import (
    AppointmentSerializer,
    AppointmentCreateSerializer,
    AppointmentReasonSerializer,
    AppointmentRescheduleSerializer,
    SlotListingSerializer,
    SlotQuerySerializer,
    UtilizationQuerySerializer,
)
from .services import utilization as utilization_report
from .schemas import (
    BookingConflict409Serializer,
    BookingRejected422Serializer,
    CapacityExceededExample,
    CreateAppointmentExample,
    PreferredUnavailableExample,
    RescheduleAppointmentExample,
)


def _booking_error_response(exc: BookingError) -> Response:
    return Response(exc.as_payload(), status=exc.http_status)


def _own_patient(user):
    patient = Patient.objects.active().for_user(user).first()
    if patient is None:
        raise PermissionDenied("No patient record is linked to this account.")
    return patient


@extend_schema_view(
    list=extend_schema(
        summary="List/search appointments (staff, paginated)",
        description="Filters: `date_from`, `date_to`, `patient_id`, `practitioner_id`, `status`, and `q` (reference code).",
        parameters=[
            OpenApiParameter(name="date_from", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="date_to", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="practitioner_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="status", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="q", description="search by reference code", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="sort", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="limit", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="offset", required=False, type=OpenApiTypes.INT),
        ],
    ),
    retrieve=extend_schema(
        summary="Get appointment",
        description="Patients see only their own. Emits `appt.view` audit.",
        responses={200: AppointmentSerializer},
    ),
    create=extend_schema(
        summary="Book a slot (capacity-safe)",
        description=(
            "Re-validates the slot under a per-date lock and assigns a dentist. "
            "**409** when the block is full or the preferred dentist is busy; "
            "**422** for closed days, off-grid starts, dates outside the booking window "
            "and overlaps with the patient's own bookings."
        ),
        request=AppointmentCreateSerializer,
        examples=[CreateAppointmentExample, CapacityExceededExample, PreferredUnavailableExample],
        responses={201: AppointmentSerializer, 409: BookingConflict409Serializer, 422: BookingRejected422Serializer},
    ),
)
class AppointmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    I book, move and transition appointments. Every write goes through the
    booking coordinator; nothing here touches the ledger directly.
    """
    schema_tags = ["Appointments"]
    queryset = Appointment.objects.select_related("patient", "service", "practitioner").all()
    serializer_class = AppointmentSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["reference_code"]
    ordering_fields = ["date", "start_time", "status", "created_at"]
    ordering = ["-date", "-start_time", "id"]

    def get_queryset(self):
        qs = super().get_queryset()
        if is_clinic_staff(self.request.user):
            return qs
        return qs.filter(patient__user=self.request.user)

    def get_permissions(self):
        if self.action in ("list", "approve", "reject", "utilization"):
            return [IsAuthenticated(), roles_required(*STAFF_ROLES)()]
        return super().get_permissions()

    # ---- list with manual filters ----
    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())

        df = request.query_params.get("date_from")
        dt = request.query_params.get("date_to")
        pid = request.query_params.get("patient_id")
        prid = request.query_params.get("practitioner_id")
        st = request.query_params.get("status")

        if df:
            qs = qs.filter(date__gte=df)
        if dt:
            qs = qs.filter(date__lte=dt)
        if pid:
            qs = qs.filter(patient_id=pid)
        if prid:
            qs = qs.filter(practitioner_id=prid)
        if st:
            qs = qs.filter(status=st)

        page = self.paginate_queryset(qs)
        if page is not None:
            ser = AppointmentSerializer(page, many=True)
            return self.get_paginated_response(ser.data)
        return Response(AppointmentSerializer(qs, many=True).data)

    # ---- retrieve ----
    def retrieve(self, request, *args, **kwargs):
        obj = self.get_object()
        log_event(request, "appt.view", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data)

    # ---- create through the coordinator ----
    def create(self, request, *args, **kwargs):
        ser = AppointmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data

        patient = vd.get("patient")
        if is_clinic_staff(request.user):
            if patient is None:
                raise ValidationError({"patient_id": "Staff bookings must name a patient."})
        else:
            own = _own_patient(request.user)
            if patient is not None and patient.pk != own.pk:
                raise PermissionDenied("Patients can only book for themselves.")
            patient = own

        try:
            appt = book_appointment(
                patient,
                vd["service"],
                vd["date"],
                vd["start_time"],
                honor_preferred=vd["honor_preferred_dentist"],
                today=timezone.localdate(),
                teeth_count=vd.get("teeth_count"),
                notes=vd.get("notes", ""),
                request=request,
            )
        except BookingError as exc:
            return _booking_error_response(exc)

        return Response(AppointmentSerializer(appt).data, status=status.HTTP_201_CREATED)

    # ---- slot listing ----
    @extend_schema(
        methods=["GET"],
        summary="Bookable start times for a date",
        description=(
            "Advisory listing: capacity per block, the preferred dentist (when honored) and the "
            "patient's own bookings are taken into account. Booking re-checks everything."
        ),
        parameters=[
            OpenApiParameter(name="date", required=True, type=OpenApiTypes.DATE),
            OpenApiParameter(name="service_id", required=True, type=OpenApiTypes.INT),
            OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="teeth_count", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="honor_preferred_dentist", required=False, type=OpenApiTypes.BOOL),
        ],
        responses={200: SlotListingSerializer},
    )
    @action(detail=False, methods=["get"], url_path="available-slots")
    def available_slots(self, request):
        # QueryDict reads a missing boolean as False
        q = SlotQuerySerializer(data=request.query_params.dict())
        q.is_valid(raise_exception=True)
        vd = q.validated_data

        patient_id = vd.get("patient_id")
        if not is_clinic_staff(request.user):
            patient_id = _own_patient(request.user).pk

        service = vd["service"]
        listing = slot_listing(
            vd["date"],
            service.calculate_estimated_minutes(vd.get("teeth_count")),
            patient_id=patient_id,
            honor_preferred=vd["honor_preferred_dentist"],
        )
        return Response(listing.as_dict())

    # ---- reschedule ----
    @extend_schema(
        methods=["POST"],
        summary="Reschedule appointment",
        description="Same checks as booking, excluding the appointment itself. Status returns to pending.",
        request=AppointmentRescheduleSerializer,
        examples=[RescheduleAppointmentExample],
        responses={200: AppointmentSerializer, 409: BookingConflict409Serializer, 422: BookingRejected422Serializer},
    )
    @action(detail=True, methods=["post"], url_path="reschedule")
    def reschedule(self, request, pk=None):
        obj = self.get_object()
        ser = AppointmentRescheduleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data
        try:
            obj = reschedule_appointment(
                obj, vd["date"], vd["start_time"], today=timezone.localdate(), request=request
            )
        except BookingError as exc:
            return _booking_error_response(exc)
        return Response(AppointmentSerializer(obj).data)

    # ---- cancel ----
    @extend_schema(
        methods=["POST"],
        summary="Cancel appointment",
        description="Pending or approved only. Frees the seat immediately.",
        request=AppointmentReasonSerializer,
        responses={200: AppointmentSerializer, 409: BookingConflict409Serializer},
    )
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        obj = self.get_object()
        ser = AppointmentReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            obj = cancel_appointment(obj, ser.validated_data["reason"], now=timezone.now(), request=request)
        except BookingError as exc:
            return _booking_error_response(exc)
        return Response(AppointmentSerializer(obj).data)

    # ---- approve (staff) ----
    @extend_schema(
        methods=["POST"],
        summary="Approve a pending appointment",
        description="Re-checks capacity first; an override may have lowered it since booking.",
        request=None,
        responses={200: AppointmentSerializer, 409: BookingConflict409Serializer, 422: BookingRejected422Serializer},
    )
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        obj = self.get_object()
        try:
            obj = approve_appointment(obj, request=request)
        except BookingError as exc:
            return _booking_error_response(exc)
        return Response(AppointmentSerializer(obj).data)

    # ---- reject (staff) ----
    @extend_schema(
        methods=["POST"],
        summary="Reject a pending appointment",
        request=AppointmentReasonSerializer,
        responses={200: AppointmentSerializer, 409: BookingConflict409Serializer},
    )
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        obj = self.get_object()
        ser = AppointmentReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            obj = reject_appointment(obj, ser.validated_data["reason"], request=request)
        except BookingError as exc:
            return _booking_error_response(exc)
        return Response(AppointmentSerializer(obj).data)

    # ---- utilization report (staff) ----
    @extend_schema(
        methods=["GET"],
        summary="Per-block utilization for a date range",
        parameters=[
            OpenApiParameter(name="start_date", required=True, type=OpenApiTypes.DATE),
            OpenApiParameter(name="end_date", required=True, type=OpenApiTypes.DATE),
        ],
        responses={200: OpenApiTypes.OBJECT},
    )
    @action(detail=False, methods=["get"], url_path="utilization")
    def utilization(self, request):
        q = UtilizationQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        days = utilization_report(vd["start_date"], vd["end_date"])
        return Response({"start_date": vd["start_date"], "end_date": vd["end_date"], "days": days})
