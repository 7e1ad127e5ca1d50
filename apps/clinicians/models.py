# apps/clinicians/models.py
from __future__ import annotations

from datetime import date

from django.db import models
from django.db.models import Q

# Index matches date.weekday(): 0=Mon ... 6=Sun
WEEKDAY_FIELDS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class PractitionerQuerySet(models.QuerySet):
    def active(self) -> "PractitionerQuerySet":
        return self.filter(status=Practitioner.STATUS_ACTIVE)

    def active_on(self, day: date) -> "PractitionerQuerySet":
        """Practitioners who contribute capacity on `day`, ordered by code."""
        return (
            self.active()
            .filter(**{WEEKDAY_FIELDS[day.weekday()]: True})
            .filter(Q(contract_end_date__isnull=True) | Q(contract_end_date__gte=day))
            .order_by("code", "id")
        )


class PractitionerManager(models.Manager.from_queryset(PractitionerQuerySet)):  # type: ignore[misc]
    pass


class Practitioner(models.Model):
    """
    A dentist on the clinic roster.
    Weekday flags say which days they normally work; the contract end date
    and status switch them off entirely.
    """

    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
    ]
    EMPLOYMENT_CHOICES = [
        ("full_time", "Full time"),
        ("part_time", "Part time"),
        ("locum", "Locum"),
    ]

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=120, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    employment_type = models.CharField(max_length=20, choices=EMPLOYMENT_CHOICES, default="full_time")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    contract_end_date = models.DateField(null=True, blank=True)

    mon = models.BooleanField(default=False)
    tue = models.BooleanField(default=False)
    wed = models.BooleanField(default=False)
    thu = models.BooleanField(default=False)
    fri = models.BooleanField(default=False)
    sat = models.BooleanField(default=False)
    sun = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: PractitionerManager = PractitionerManager()

    class Meta:
        ordering = ["code", "id"]

    def __str__(self) -> str:
        return f"{self.code} {self.name}".strip()

    @property
    def weekday_flags(self) -> list[bool]:
        return [bool(getattr(self, f)) for f in WEEKDAY_FIELDS]
