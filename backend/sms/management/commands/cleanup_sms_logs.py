from __future__ import annotations

from django.core.management.base import BaseCommand

from sms.tasks import cleanup_sms_logs


class Command(BaseCommand):
    help = "Delete SMS send logs (and their events) older than the retention period."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Do not delete anything")
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Retention in days (overrides SMS_RETENTION_DAYS)",
        )

    def handle(self, *args, **options):
        dry_run: bool = bool(options["dry_run"])
        deleted = cleanup_sms_logs(days=options.get("days"), dry_run=dry_run)
        self.stdout.write(self.style.SUCCESS(f"cleanup_sms_logs: sends={deleted} dry_run={dry_run}"))
