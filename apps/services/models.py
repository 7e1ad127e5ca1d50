# apps/services/models.py
from django.db import models
from django.db.models import Q
from django.utils.text import slugify


class Service(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    description = models.TextField(blank=True, default="")

    # Duration drives how many grid blocks a booking occupies.
    estimated_minutes = models.PositiveIntegerField(default=30)
    per_teeth_service = models.BooleanField(default=False)
    per_tooth_minutes = models.PositiveIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                name="service_estimated_minutes_positive",
                condition=Q(estimated_minutes__gt=0),
            ),
        ]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            base = slugify(self.name) or "service"
            slug = base
            i = 2
            while Service.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{i}"
                i += 1
            self.slug = slug
        super().save(*args, **kwargs)

    def calculate_estimated_minutes(self, teeth_count: int | None = None) -> int:
        """Minutes a booking of this service takes; per-tooth services scale with the count."""
        if self.per_teeth_service and self.per_tooth_minutes and teeth_count:
            return int(self.per_tooth_minutes) * int(teeth_count)
        return int(self.estimated_minutes or 30)
