# lims_core/audit/management/commands/archive_audit_logs.py

from django.core.management.base import BaseCommand

from lims_core.audit.services import archive_expired_audit_logs


class Command(BaseCommand):
    help = "Move audit records past the retention window into the archive partition."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=None, help="Retention window (default: AUDIT_RETENTION_DAYS).")
        parser.add_argument("--batch-size", type=int, default=None, help="Rows per transaction.")

    def handle(self, *args, **options):
        moved = archive_expired_audit_logs(
            retention_days=options["days"],
            batch_size=options["batch_size"],
        )
        self.stdout.write(self.style.SUCCESS(f"Audit records archived: {moved}"))
