# apps/clinic/models.py
from django.db import models
from django.db.models import Q, F


class ClinicWeeklySchedule(models.Model):
    """
    Recurring opening hours, one row per weekday.
    A weekday without a row is treated as closed.
    """

    # 0=Mon ... 6=Sun (matches Python's weekday())
    WEEKDAY_CHOICES = [
        (0, "Mon"),
        (1, "Tue"),
        (2, "Wed"),
        (3, "Thu"),
        (4, "Fri"),
        (5, "Sat"),
        (6, "Sun"),
    ]

    weekday = models.PositiveSmallIntegerField(choices=WEEKDAY_CHOICES, unique=True)
    is_open = models.BooleanField(default=True)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["weekday"]
        constraints = [
            # An open weekday needs hours, and close must be after open.
            models.CheckConstraint(
                name="weekly_open_has_hours",
                condition=Q(is_open=False)
                | Q(open_time__isnull=False, close_time__isnull=False, close_time__gt=F("open_time")),
            ),
        ]

    def __str__(self) -> str:
        if not self.is_open:
            return f"{self.get_weekday_display()} closed"
        return f"{self.get_weekday_display()} {self.open_time:%H:%M}-{self.close_time:%H:%M}"


class ClinicCalendar(models.Model):
    """
    Per-date override of the weekly schedule: holidays, special hours,
    or a reduced per-block capacity (e.g. limited equipment).
    Null hours fall back to the weekly row for that weekday.
    """

    date = models.DateField(unique=True)
    is_open = models.BooleanField(default=False)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    max_per_block_override = models.PositiveIntegerField(null=True, blank=True)
    note = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date"]
        verbose_name = "Calendar override"
        verbose_name_plural = "Calendar overrides"

    def __str__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"{self.date.isoformat()} {state}{f' ({self.note})' if self.note else ''}"
