from django.apps import AppConfig


class ClinicConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.clinic"
    label = "clinic"
    verbose_name = "Clinic calendar"

    def ready(self):
        # connect cache invalidation for calendar and roster edits.
        from . import signals  # noqa: F401
