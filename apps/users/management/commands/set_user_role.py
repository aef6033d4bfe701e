from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model

from apps.users.models import Role


class Command(BaseCommand):
    help = "Set a user's role (attendee, volunteer, organizer, admin)."

    def add_arguments(self, parser):
        parser.add_argument('email')
        parser.add_argument('role', choices=[role.name.lower() for role in Role])

    def handle(self, *args, **options):
        User = get_user_model()
        try:
            user = User.objects.get(email=options['email'].lower())
        except User.DoesNotExist:
            raise CommandError(f"No user with email {options['email']}")

        previous = user.get_role_display()
        user.role = Role[options['role'].upper()]
        user.save(update_fields=['role', 'updated_at'])
        self.stdout.write(
            self.style.SUCCESS(f"✅ {user.email}: {previous} -> {user.get_role_display()}")
        )
