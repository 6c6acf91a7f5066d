from django.apps import apps
from django.core.management.base import BaseCommand, CommandError

from countries.exceptions import RefreshError


class Command(BaseCommand):
    help = "Fetch countries and exchange rates and refresh the cached catalog."

    def handle(self, *args, **options):
        refresher = apps.get_app_config("countries").refresher
        try:
            result = refresher.refresh()
        except RefreshError as exc:
            raise CommandError(f"Refresh failed: {exc}") from exc

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed catalog at {result.refreshed_at}: "
            f"{result.records_fetched} fetched, {result.records_written} written, "
            f"{result.records_skipped} skipped"
        ))
