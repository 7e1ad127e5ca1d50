# apps/appointments/management/commands/mark_no_shows.py
from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.appointments.booking import mark_no_shows


class Command(BaseCommand):
    help = "Mark today's approved appointments as no_show once they are overdue. Use --dry-run to preview only."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Preview only; do not change anything")

    def handle(self, *args, **opts):
        dry_run = opts["dry_run"]
        marked = mark_no_shows(timezone.now(), dry_run=dry_run)

        for appt in marked:
            prefix = "[DRY RUN] would mark" if dry_run else "marked"
            self.stdout.write(
                f"{prefix} {appt.reference_code} ({appt.date} {appt.start_time:%H:%M}) as no_show"
            )

        self.stdout.write(self.style.SUCCESS(f"Done. Total: {len(marked)}"))
