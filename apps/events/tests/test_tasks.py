"""
Tests for booking Celery tasks and the cleanup command.
"""

import uuid
from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from apps.events.models import Booking
from apps.events.qr_generator import decode_ticket_token
from apps.events.services.ledger import ReservationLedger, ledger
from apps.events.tasks import issue_booking_ticket, release_expired_bookings
from .helpers import make_user, make_event, make_tier, make_confirmed_booking


class IssueBookingTicketTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.tier = make_tier(make_event(title='Monsoon Jazz'))

    def test_confirm_emails_ticket_after_commit(self):
        booking = ledger.reserve(self.user, self.tier.event_id, self.tier.id, 2).booking

        with self.captureOnCommitCallbacks(execute=True):
            ledger.confirm(booking.id, 'pay_mail', booking.total_amount)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, [self.user.email])
        self.assertIn(booking.code, message.subject)
        self.assertIn('Monsoon Jazz', message.body)
        self.assertEqual(message.alternatives[0][1], 'text/html')
        self.assertTrue(any(
            getattr(part, 'get', None) and part.get('Content-ID') == '<qr_code>'
            for part in message.attachments
        ))

    def test_task_returns_verifiable_token(self):
        booking = make_confirmed_booking(self.user, self.tier)

        result = issue_booking_ticket.apply(args=[str(booking.id)]).get()

        self.assertEqual(result['status'], 'sent')
        self.assertEqual(decode_ticket_token(result['ticket_token'])['bookingId'], str(booking.id))

    def test_skips_bookings_without_ticket(self):
        pending = ledger.reserve(self.user, self.tier.event_id, self.tier.id, 1).booking

        self.assertEqual(
            issue_booking_ticket.apply(args=[str(pending.id)]).get(),
            {'status': 'skipped', 'reason': 'booking_not_confirmed'}
        )
        self.assertEqual(
            issue_booking_ticket.apply(args=[str(uuid.uuid4())]).get(),
            {'status': 'error', 'reason': 'booking_not_found'}
        )
        self.assertEqual(len(mail.outbox), 0)

    def test_mail_failure_does_not_touch_booking(self):
        booking = make_confirmed_booking(self.user, self.tier)

        with mock.patch('apps.events.tasks.EmailMultiAlternatives.send', side_effect=OSError('smtp down')):
            with mock.patch.object(issue_booking_ticket, 'max_retries', 0):
                result = issue_booking_ticket.apply(args=[str(booking.id)]).get()

        self.assertEqual(result['status'], 'failed')
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.CONFIRMED)


class ReleaseExpiredTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.tier = make_tier(make_event(), max_quantity=10)
        past_ledger = ReservationLedger(clock=lambda: timezone.now() - timedelta(hours=1))
        self.stale = past_ledger.reserve(self.user, self.tier.event_id, self.tier.id, 4).booking

    def test_periodic_task(self):
        result = release_expired_bookings.apply().get()

        self.assertEqual(result, {'released_bookings': 1})
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 0)

    def test_command_dry_run(self):
        out = StringIO()
        call_command('release_expired_bookings', '--dry-run', stdout=out)

        self.assertIn('DRY RUN: 1 expired bookings', out.getvalue())
        self.assertIn(self.stale.code, out.getvalue())
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.status, Booking.PENDING)

    def test_command_releases(self):
        out = StringIO()
        call_command('release_expired_bookings', stdout=out)

        self.assertIn('Released 1 expired bookings', out.getvalue())
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.status, Booking.CANCELLED)

        out = StringIO()
        call_command('release_expired_bookings', stdout=out)
        self.assertIn('No expired bookings found', out.getvalue())
