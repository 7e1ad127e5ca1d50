from __future__ import annotations

from django.conf import settings
from django.db import models


# ------------ QuerySet / Manager helpers ------------ #

class PatientQuerySet(models.QuerySet):
    def active(self) -> "PatientQuerySet":
        return self.filter(is_active=True)

    def for_user(self, user) -> "PatientQuerySet":
        if not getattr(user, "is_authenticated", False):
            return self.none()
        return self.filter(user=user)


class PatientManager(models.Manager.from_queryset(PatientQuerySet)):  # type: ignore[misc]
    pass


# -------------------------- Model -------------------------- #

class Patient(models.Model):
    # Portal account that books on this patient's behalf (walk-ins have none).
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="patient",
    )

    given_name = models.CharField(max_length=100)
    family_name = models.CharField(max_length=100)
    date_of_birth = models.DateField(null=True, blank=True)
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects: PatientManager = PatientManager()

    class Meta:
        ordering = ["family_name", "given_name", "id"]
        indexes = [
            models.Index(fields=["family_name", "given_name"], name="patient_name_idx"),
            models.Index(fields=["email"], name="patient_email_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.family_name}, {self.given_name}"
