from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from rest_framework.exceptions import PermissionDenied

from SwebukApp.domain.services import session_service


class Command(BaseCommand):
    help = "Advance every student one academic level and close the active session."

    def add_arguments(self, parser):
        parser.add_argument("--actor", required=True, help="Email of the staff/admin account running the roll-forward.")

    def handle(self, *args, **options):
        User = get_user_model()
        actor = User.objects.filter(email__iexact=options["actor"]).first()
        if actor is None:
            raise CommandError(f"No account with email {options['actor']}")
        try:
            changes = session_service.process_session_end(actor)
        except PermissionDenied as exc:
            raise CommandError(str(exc.detail)) from exc
        for key, count in changes.items():
            self.stdout.write(f"{key}: {count}")
        self.stdout.write(self.style.SUCCESS(f"Moved {sum(changes.values())} profiles"))
