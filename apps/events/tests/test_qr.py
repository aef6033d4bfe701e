"""
Tests for ticket tokens and QR rendering.
"""

from datetime import timedelta

import jwt
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.events.exceptions import InvalidTicketToken
from apps.events.qr_generator import (
    issue_ticket_token,
    decode_ticket_token,
    generate_qr_image,
    generate_qr_data_url,
    ticket_url,
)
from .helpers import make_user, make_event, make_tier, make_confirmed_booking


class TicketTokenTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.booking = make_confirmed_booking(self.user, make_tier(make_event()), quantity=2)

    def test_token_claims(self):
        claims = decode_ticket_token(issue_ticket_token(self.booking))

        self.assertEqual(claims['bookingId'], str(self.booking.id))
        self.assertEqual(claims['eventId'], str(self.booking.event_id))
        self.assertEqual(claims['userId'], str(self.user.id))
        self.assertEqual(claims['quantity'], 2)
        self.assertEqual(claims['exp'] - claims['iat'], 365 * 24 * 3600)

    def test_expired_token(self):
        token = issue_ticket_token(self.booking, now=timezone.now() - timedelta(days=366))
        with self.assertRaisesMessage(InvalidTicketToken, "This ticket has expired."):
            decode_ticket_token(token)

    def test_token_signed_with_another_secret(self):
        token = jwt.encode({'bookingId': str(self.booking.id)}, 'someone-else', algorithm='HS256')
        with self.assertRaises(InvalidTicketToken):
            decode_ticket_token(token)

    def test_token_without_booking(self):
        token = jwt.encode({'eventId': 'x'}, 'test-ticket-secret', algorithm='HS256')
        with self.assertRaises(InvalidTicketToken):
            decode_ticket_token(token)

    @override_settings(TICKET_TOKEN_SECRET='', SECRET_KEY='fallback-secret-key')
    def test_falls_back_to_secret_key(self):
        token = issue_ticket_token(self.booking)
        self.assertEqual(
            jwt.decode(token, 'fallback-secret-key', algorithms=['HS256'])['bookingId'],
            str(self.booking.id)
        )


class QRImageTestCase(TestCase):

    def test_png_output(self):
        png = generate_qr_image('BH-12345678')
        self.assertTrue(png.startswith(b'\x89PNG'))

    def test_data_url(self):
        self.assertTrue(generate_qr_data_url('hello').startswith('data:image/png;base64,'))

    @override_settings(FRONTEND_URL='https://eventhive.in/')
    def test_ticket_url(self):
        booking = make_confirmed_booking(make_user(), make_tier(make_event()), quantity=1)
        self.assertEqual(ticket_url(booking), f'https://eventhive.in/tickets/{booking.code}')
