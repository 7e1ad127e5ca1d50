# apps/appointments/models.py
import secrets
import string
from datetime import datetime

from django.db import models
from django.db.models import Q, F

from apps.clinic.blocks import overlaps as spans_overlap, to_minutes

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_LENGTH = 8

# Only these statuses hold a seat in the block ledger
ACTIVE_STATUSES = ("pending", "approved", "completed")


def generate_reference_code() -> str:
    return "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))


class AppointmentQuerySet(models.QuerySet):
    def active(self) -> "AppointmentQuerySet":
        return self.filter(status__in=ACTIVE_STATUSES)

    def on_date(self, day) -> "AppointmentQuerySet":
        return self.filter(date=day)


class AppointmentManager(models.Manager.from_queryset(AppointmentQuerySet)):  # type: ignore[misc]
    pass


class Appointment(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_REJECTED = "rejected"
    STATUS_NO_SHOW = "no_show"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_NO_SHOW, "No show"),
    ]

    # Links
    patient = models.ForeignKey(
        "patients.Patient",
        on_delete=models.CASCADE,
        related_name="appointments",
    )
    service = models.ForeignKey(
        "services.Service",
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    # Null when capacity came from an override with nobody free to assign
    practitioner = models.ForeignKey(
        "clinicians.Practitioner",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="appointments",
    )

    # Clinic-local date and [start, end) on the block grid
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()

    # Details
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    honor_preferred_dentist = models.BooleanField(default=False)
    reference_code = models.CharField(max_length=REFERENCE_LENGTH, unique=True, editable=False)
    teeth_count = models.PositiveSmallIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: AppointmentManager = AppointmentManager()

    class Meta:
        indexes = [
            models.Index(fields=["date", "status"], name="appt_date_status_idx"),
            models.Index(fields=["practitioner", "date"], name="appt_practitioner_date_idx"),
            models.Index(fields=["patient", "date"], name="appt_patient_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                name="appt_end_after_start",
                condition=Q(end_time__gt=F("start_time")),
            ),
        ]
        ordering = ["-date", "-start_time", "id"]

    def __str__(self) -> str:
        return f"{self.reference_code} {self.patient} {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.reference_code:
            code = generate_reference_code()
            while Appointment.objects.filter(reference_code=code).exists():
                code = generate_reference_code()
            self.reference_code = code
        super().save(*args, **kwargs)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def start_datetime(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    def overlaps(self, start_minutes: int, end_minutes: int) -> bool:
        return spans_overlap(self.start_minutes, self.end_minutes, start_minutes, end_minutes)


class BookingDayLock(models.Model):
    """
    One row per booked date. Booking writers lock it with SELECT ... FOR UPDATE
    so reads and the insert for that date happen one writer at a time.
    """

    date = models.DateField(unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date"]

    def __str__(self) -> str:
        return f"lock {self.date.isoformat()}"
