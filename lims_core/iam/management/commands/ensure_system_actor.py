from django.core.management.base import BaseCommand

from lims_core.iam.services import ensure_system_actor


class Command(BaseCommand):
    help = "Create the system actor user row if it is missing."

    def handle(self, *args, **options):
        user, created = ensure_system_actor()
        if created:
            self.stdout.write(self.style.SUCCESS(f"Created system actor {user.pk}"))
        else:
            self.stdout.write(f"System actor {user.pk} already present")
