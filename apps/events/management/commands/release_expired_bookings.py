"""
Release pending bookings whose hold has expired.

Celery beat runs the same sweep every 5 minutes; this command is for cron
setups and manual cleanup.

Usage:
    python manage.py release_expired_bookings
    python manage.py release_expired_bookings --dry-run  # Preview what would be released
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.events.models import Booking
from apps.events.services.ledger import ledger


class Command(BaseCommand):
    help = 'Release expired pending bookings and return their tickets to the pool'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be released without actually doing it',
        )

    def handle(self, *args, **options):
        now = timezone.now()

        expired = Booking.objects.filter(
            status=Booking.PENDING,
            expires_at__lte=now
        ).select_related('ticket_tier')

        total = expired.count()

        if total == 0:
            self.stdout.write(self.style.SUCCESS('✅ No expired bookings found.'))
            return

        if options['dry_run']:
            self.stdout.write(
                self.style.WARNING(f'🔍 DRY RUN: {total} expired bookings would be released:')
            )
            for booking in expired[:10]:
                self.stdout.write(
                    f'  - {booking.code}: {booking.quantity}x {booking.ticket_tier.name} '
                    f'(expired {booking.expires_at})'
                )
            if total > 10:
                self.stdout.write(f'  ... and {total - 10} more')
            return

        self.stdout.write(f'🧹 Releasing {total} expired bookings...')
        released = ledger.release_expired(now=now)

        self.stdout.write(self.style.SUCCESS(f'✅ Released {released} expired bookings.'))
        if released != total:
            self.stdout.write(
                self.style.WARNING(
                    f'⚠️  {total - released} bookings changed state during the sweep and were skipped.'
                )
            )
