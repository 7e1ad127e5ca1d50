# apps/refunds/models.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.clinic.deadlines import business_day_deadline


class RefundSetting(models.Model):
    """
    Clinic-wide refund policy. A single row; use RefundSetting.get_settings().
    """

    processing_business_days = models.PositiveIntegerField(default=7)
    reminder_days = models.PositiveIntegerField(default=2)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Refund settings"
        verbose_name_plural = "Refund settings"

    def __str__(self) -> str:
        return f"Refunds: {self.processing_business_days} business days, remind {self.reminder_days}d ahead"

    @classmethod
    def get_settings(cls) -> "RefundSetting":
        obj = cls.objects.order_by("id").first()
        if obj is None:
            obj = cls.objects.create()
        return obj


class RefundRequestQuerySet(models.QuerySet):
    def open(self) -> "RefundRequestQuerySet":
        return self.filter(status__in=RefundRequest.OPEN_STATUSES)


class RefundRequestManager(models.Manager.from_queryset(RefundRequestQuerySet)):  # type: ignore[misc]
    pass


class RefundRequest(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_PROCESSED = "processed"
    STATUS_COMPLETED = "completed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_PROCESSED, "Processed"),
        (STATUS_COMPLETED, "Completed"),
    ]
    # Still owed to the patient; these are the ones with a live deadline
    OPEN_STATUSES = (STATUS_PENDING, STATUS_APPROVED)

    patient = models.ForeignKey("patients.Patient", on_delete=models.CASCADE, related_name="refund_requests")
    appointment = models.ForeignKey(
        "appointments.Appointment",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="refund_requests",
    )

    original_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    cancellation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    reason = models.TextField(blank=True, default="")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    requested_at = models.DateTimeField(default=timezone.now)
    deadline_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    admin_notes = models.TextField(blank=True, default="")
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="processed_refunds",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: RefundRequestManager = RefundRequestManager()

    class Meta:
        ordering = ["-requested_at", "id"]
        indexes = [models.Index(fields=["status", "deadline_at"], name="refund_status_deadline_idx")]

    def __str__(self) -> str:
        return f"Refund #{self.pk} {self.patient} {self.refund_amount} ({self.status})"

    def save(self, *args, **kwargs):
        if self.deadline_at is None:
            self.deadline_at = self.compute_deadline()
        super().save(*args, **kwargs)

    def compute_deadline(self) -> datetime:
        requested = timezone.localtime(self.requested_at or timezone.now())
        days = RefundSetting.get_settings().processing_business_days
        return business_day_deadline(requested.date(), days).deadline

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.status not in self.OPEN_STATUSES or self.deadline_at is None:
            return False
        return (now or timezone.now()) > self.deadline_at

    def days_until_deadline(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole calendar days left (negative when overdue)."""
        if self.deadline_at is None:
            return None
        today = timezone.localtime(now or timezone.now()).date()
        return (timezone.localtime(self.deadline_at).date() - today).days
