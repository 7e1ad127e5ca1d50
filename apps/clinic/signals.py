from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from apps.clinicians.models import Practitioner

from .models import ClinicCalendar, ClinicWeeklySchedule
from .services import invalidate_config_cache


@receiver(post_save, sender=ClinicWeeklySchedule)
@receiver(post_delete, sender=ClinicWeeklySchedule)
@receiver(post_save, sender=ClinicCalendar)
@receiver(post_delete, sender=ClinicCalendar)
@receiver(post_save, sender=Practitioner)
@receiver(post_delete, sender=Practitioner)
def calendar_config_changed(sender, **kwargs):
    #  any roster or calendar edit makes cached snapshots stale.
    invalidate_config_cache()
