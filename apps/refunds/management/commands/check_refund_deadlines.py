# apps/refunds/management/commands/check_refund_deadlines.py
from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.refunds.services import check_refund_deadlines


class Command(BaseCommand):
    help = "Report refund requests that are overdue or close to their deadline. Use --dry-run to skip audit events."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Preview only; do not record audit events")

    def handle(self, *args, **opts):
        now = timezone.now()
        report = check_refund_deadlines(now, record=not opts["dry_run"])

        for refund in report.overdue:
            self.stdout.write(
                self.style.WARNING(f"overdue: refund #{refund.id} ({-refund.days_until_deadline(now)} day(s))")
            )
        for refund in report.approaching:
            self.stdout.write(f"approaching: refund #{refund.id} ({refund.days_until_deadline(now)} day(s) left)")

        if report.total:
            self.stdout.write(self.style.WARNING(
                f"{report.total} refund(s) need attention: {len(report.overdue)} overdue, "
                f"{len(report.approaching)} approaching"
            ))
        else:
            self.stdout.write(self.style.SUCCESS("No refund deadlines need attention."))
