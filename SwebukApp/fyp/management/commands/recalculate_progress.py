from django.core.management.base import BaseCommand

from SwebukApp.fyp.models import FinalYearProject
from SwebukApp.fyp.signals import compute_progress


class Command(BaseCommand):
    help = "Recompute progress_percentage for all final year projects."

    def handle(self, *args, **options):
        updated = 0
        for fyp in FinalYearProject.objects.only("id", "progress_percentage"):
            should = compute_progress(fyp.pk)
            if fyp.progress_percentage != should:
                fyp.progress_percentage = should
                fyp.save(update_fields=["progress_percentage"])
                updated += 1
        self.stdout.write(self.style.SUCCESS(f"Updated {updated} projects"))
