"""
Tests for loyalty points.
"""

from decimal import Decimal

from django.test import TestCase

from apps.events.models import LoyaltyTransaction
from apps.events.services import loyalty
from .helpers import make_user, make_event, make_tier, make_confirmed_booking


class PointsForAmountTestCase(TestCase):

    def test_one_point_per_ten_rupees(self):
        cases = [
            (Decimal('4000'), 400),
            (Decimal('2295'), 229),
            (Decimal('9.99'), 0),
            (Decimal('10.00'), 1),
            (Decimal('0'), 0),
            (None, 0),
        ]
        for amount, expected in cases:
            with self.subTest(amount=amount):
                self.assertEqual(loyalty.points_for_amount(amount), expected)


class LoyaltyLedgerTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.tier = make_tier(make_event(), price='125.00')

    def test_booking_points_are_awarded_once(self):
        booking = make_confirmed_booking(self.user, self.tier, quantity=2)

        self.assertIsNone(loyalty.award_booking_points(booking))

        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 25)
        self.assertEqual(LoyaltyTransaction.objects.filter(booking=booking).count(), 1)

    def test_manual_adjustments(self):
        loyalty.adjust_points(self.user, 50)
        loyalty.adjust_points(self.user, -20)

        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 30)

        with self.assertRaises(ValueError):
            loyalty.adjust_points(self.user, -31)
        with self.assertRaises(ValueError):
            loyalty.adjust_points(self.user, 0)

        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 30)

    def test_summary(self):
        booking = make_confirmed_booking(self.user, self.tier, quantity=4)
        loyalty.adjust_points(self.user, -10)

        summary = loyalty.get_summary(self.user)

        self.assertEqual(summary['balance'], 40)
        self.assertEqual(len(summary['transactions']), 2)
        reasons = {entry.reason for entry in summary['transactions']}
        self.assertEqual(reasons, {LoyaltyTransaction.EVENT_BOOKING, LoyaltyTransaction.MANUAL_ADJUSTMENT})
        self.assertEqual(
            sum(entry.points for entry in summary['transactions']),
            summary['balance']
        )
        self.assertTrue(any(entry.booking_id == booking.id for entry in summary['transactions']))
