"""
Tests for the reservation ledger.
"""

import threading
import unittest
import uuid
from unittest import mock
from datetime import timedelta
from decimal import Decimal

from django.db import connection, IntegrityError
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from apps.events.models import Booking, Coupon, TicketTier, LoyaltyTransaction
from apps.events.services.ledger import ReservationLedger, ledger
from payment_processor.models import Payment
from .helpers import make_user, make_event, make_tier, make_coupon


class ReserveTestCase(TestCase):
    """reserve(): pricing, holds and counter updates."""

    def setUp(self):
        self.user = make_user()
        self.event = make_event()
        self.tier = make_tier(self.event, price='500.00', max_quantity=20)

    def test_reserve_creates_pending_booking(self):
        before = timezone.now()
        result = ledger.reserve(self.user, self.event.id, self.tier.id, 10)

        self.assertTrue(result.ok)
        booking = result.booking
        self.assertEqual(booking.status, Booking.PENDING)
        self.assertTrue(booking.code.startswith('BH-'))
        self.assertEqual(booking.total_amount, Decimal('4000'))
        self.assertEqual(booking.user, self.user)
        self.assertGreaterEqual(booking.expires_at, before + timedelta(minutes=15))

        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 10)

    def test_reserve_with_coupon_counts_usage(self):
        coupon = make_coupon('TENOFF', event=self.event, percent_off=10, max_usage=5)

        result = ledger.reserve(self.user, self.event.id, self.tier.id, 6, coupon_code='tenoff')

        self.assertTrue(result.ok)
        self.assertEqual(result.booking.total_amount, Decimal('2295'))
        self.assertEqual(result.booking.coupon, coupon)
        self.assertEqual(result.pricing.coupon_discount_amount, Decimal('255'))
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)

    def test_rejections_leave_counters_untouched(self):
        make_coupon('GONE', event=self.event, valid_until=timezone.now() - timedelta(days=1))

        cases = [
            ((uuid.uuid4(), self.tier.id, 1, None), 'event_not_found'),
            ((self.event.id, uuid.uuid4(), 1, None), 'ticket_tier_not_found'),
            ((self.event.id, self.tier.id, 0, None), 'invalid_quantity'),
            ((self.event.id, self.tier.id, 11, None), 'invalid_quantity'),
            ((self.event.id, self.tier.id, 2, 'NOPE'), 'invalid_coupon'),
            ((self.event.id, self.tier.id, 2, 'GONE'), 'coupon_expired'),
        ]
        for (event_id, tier_id, quantity, code), error_code in cases:
            with self.subTest(error=error_code):
                result = ledger.reserve(self.user, event_id, tier_id, quantity, coupon_code=code)
                self.assertFalse(result.ok)
                self.assertIsNone(result.booking)
                self.assertEqual(result.error_code, error_code)

        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 0)
        self.assertEqual(Booking.objects.count(), 0)
        self.assertEqual(Coupon.objects.get(code='GONE').used_count, 0)

    def test_capacity_is_never_exceeded(self):
        tier = make_tier(self.event, name='Front Row', max_quantity=5)

        results = [ledger.reserve(self.user, self.event.id, tier.id, 1) for _ in range(7)]

        self.assertEqual(sum(1 for r in results if r.ok), 5)
        self.assertEqual(
            [r.error_code for r in results if not r.ok],
            ['insufficient_inventory', 'insufficient_inventory']
        )
        tier.refresh_from_db()
        self.assertEqual(tier.total_sold, 5)

    def test_coupon_usage_limit(self):
        make_coupon('ONCE', event=self.event, percent_off=50, max_usage=1)

        first = ledger.reserve(self.user, self.event.id, self.tier.id, 1, coupon_code='ONCE')
        second = ledger.reserve(self.user, self.event.id, self.tier.id, 1, coupon_code='ONCE')

        self.assertTrue(first.ok)
        self.assertEqual(second.error_code, 'coupon_exhausted')
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 1)

        ledger.release(first.booking.id)
        third = ledger.reserve(self.user, self.event.id, self.tier.id, 1, coupon_code='ONCE')
        self.assertTrue(third.ok)

    def test_expired_holds_are_released_lazily(self):
        tier = make_tier(self.event, name='Balcony', max_quantity=5)
        past_ledger = ReservationLedger(clock=lambda: timezone.now() - timedelta(hours=1))

        stale = past_ledger.reserve(self.user, self.event.id, tier.id, 5)
        self.assertTrue(stale.ok)

        fresh = ledger.reserve(self.user, self.event.id, tier.id, 5)

        self.assertTrue(fresh.ok)
        stale.booking.refresh_from_db()
        self.assertEqual(stale.booking.status, Booking.CANCELLED)
        self.assertEqual(stale.booking.cancellation_reason, 'expired')
        tier.refresh_from_db()
        self.assertEqual(tier.total_sold, 5)

    def test_lost_commit_is_retried_once(self):
        real_create = Booking.objects.create
        attempts = []

        def flaky_create(**kwargs):
            attempts.append(kwargs)
            if len(attempts) == 1:
                raise IntegrityError('lost race')
            return real_create(**kwargs)

        with mock.patch.object(Booking.objects, 'create', side_effect=flaky_create):
            result = ledger.reserve(self.user, self.event.id, self.tier.id, 3)

        self.assertTrue(result.ok)
        self.assertEqual(len(attempts), 2)
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 3)
        self.assertEqual(Booking.objects.count(), 1)

    def test_second_lost_commit_is_raised(self):
        coupon = make_coupon('RETRY', event=self.event, percent_off=10, max_usage=5)

        with mock.patch.object(Booking.objects, 'create', side_effect=IntegrityError('lost race')):
            with self.assertRaises(IntegrityError):
                ledger.reserve(self.user, self.event.id, self.tier.id, 3, coupon_code='RETRY')

        self.tier.refresh_from_db()
        coupon.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 0)
        self.assertEqual(coupon.used_count, 0)
        self.assertEqual(Booking.objects.count(), 0)

    def test_quantity_is_immutable(self):
        booking = ledger.reserve(self.user, self.event.id, self.tier.id, 2).booking
        booking = Booking.objects.get(pk=booking.pk)
        booking.quantity = 3
        with self.assertRaises(ValueError):
            booking.save()


class ConfirmTestCase(TestCase):
    """confirm(): payment verification, idempotence, side effects."""

    def setUp(self):
        self.user = make_user()
        self.event = make_event()
        self.tier = make_tier(self.event, price='500.00', max_quantity=20)
        self.booking = ledger.reserve(self.user, self.event.id, self.tier.id, 10).booking

    def test_confirm_records_payment_and_points(self):
        result = ledger.confirm(self.booking.id, 'pay_001', Decimal('4000.00'), provider_order_id='order_1')

        self.assertTrue(result.ok)
        self.assertFalse(result.already_confirmed)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.CONFIRMED)
        self.assertIsNotNone(self.booking.confirmed_at)

        payment = Payment.objects.get(booking=self.booking)
        self.assertEqual(payment.provider_payment_id, 'pay_001')
        self.assertEqual(payment.amount, Decimal('4000'))
        self.assertEqual(payment.provider_order_id, 'order_1')

        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 400)
        self.assertEqual(LoyaltyTransaction.objects.get(booking=self.booking).points, 400)

    def test_confirm_by_booking_code(self):
        result = ledger.confirm(self.booking.code.lower(), 'pay_002', 4000)
        self.assertTrue(result.ok)

    def test_duplicate_confirm_is_a_noop(self):
        ledger.confirm(self.booking.id, 'pay_001', Decimal('4000'))

        again = ledger.confirm(self.booking.id, 'pay_001', Decimal('4000'))

        self.assertTrue(again.ok)
        self.assertTrue(again.already_confirmed)
        self.assertEqual(again.error.code, 'already_confirmed')
        self.assertEqual(Payment.objects.count(), 1)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 400)
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 10)

    def test_amount_mismatch_is_rejected_and_logged(self):
        with self.assertLogs('eventhive.fraud', level='ERROR'):
            result = ledger.confirm(self.booking.id, 'pay_001', Decimal('3999'))

        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, 'amount_mismatch')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.PENDING)
        self.assertFalse(Payment.objects.exists())

    def test_payment_cannot_confirm_two_bookings(self):
        ledger.confirm(self.booking.id, 'pay_001', Decimal('4000'))
        other = ledger.reserve(self.user, self.event.id, self.tier.id, 10).booking

        with self.assertLogs('eventhive.fraud', level='ERROR'):
            result = ledger.confirm(other.id, 'pay_001', Decimal('4000'))

        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, 'payment_already_used')
        self.assertEqual(result.error.http_status, 409)
        other.refresh_from_db()
        self.assertEqual(other.status, Booking.PENDING)
        self.assertEqual(Payment.objects.count(), 1)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 400)

    def test_second_payment_for_confirmed_booking_is_flagged(self):
        ledger.confirm(self.booking.id, 'pay_001', Decimal('4000'))

        with self.assertLogs('eventhive.fraud', level='ERROR') as logs:
            again = ledger.confirm(self.booking.id, 'pay_002', Decimal('4000'))

        self.assertTrue(again.already_confirmed)
        self.assertIn('pay_002', logs.output[0])
        self.assertEqual(
            list(Payment.objects.values_list('provider_payment_id', flat=True)), ['pay_001']
        )

    def test_cannot_confirm_released_booking(self):
        ledger.release(self.booking.id)

        result = ledger.confirm(self.booking.id, 'pay_001', Decimal('4000'))

        self.assertEqual(result.error_code, 'invalid_booking_state')

    def test_unknown_booking(self):
        result = ledger.confirm(uuid.uuid4(), 'pay_001', Decimal('1'))
        self.assertEqual(result.error_code, 'booking_not_found')

    def test_confirm_queues_ticket_after_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            ledger.confirm(self.booking.id, 'pay_001', Decimal('4000'))
        self.assertEqual(len(callbacks), 1)


class ReleaseRefundTestCase(TestCase):
    """release(), refund() and the expiry sweep."""

    def setUp(self):
        self.user = make_user()
        self.event = make_event()
        self.tier = make_tier(self.event, max_quantity=10)
        self.coupon = make_coupon('HALF', event=self.event, percent_off=50, max_usage=3)

    def reserve(self, quantity=2, ledger_=ledger, **kwargs):
        result = ledger_.reserve(self.user, self.event.id, self.tier.id, quantity, **kwargs)
        self.assertTrue(result.ok, result.error_code)
        return result.booking

    def test_release_returns_inventory_and_coupon(self):
        booking = self.reserve(3, coupon_code='HALF')

        result = ledger.release(booking.id, reason='cancelled_by_user')

        self.assertTrue(result.ok)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.CANCELLED)
        self.assertEqual(booking.cancellation_reason, 'cancelled_by_user')
        self.tier.refresh_from_db()
        self.coupon.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 0)
        self.assertEqual(self.coupon.used_count, 0)

    def test_release_is_idempotent(self):
        booking = self.reserve(3)
        ledger.release(booking.id)

        again = ledger.release(booking.id)

        self.assertTrue(again.ok)
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 0)

    def test_release_of_confirmed_booking_is_rejected(self):
        booking = self.reserve(2)
        ledger.confirm(booking.id, 'pay_1', booking.total_amount)

        result = ledger.release(booking.id)

        self.assertEqual(result.error_code, 'invalid_booking_state')
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 2)

    def test_refund_keeps_inventory_sold(self):
        booking = self.reserve(2, coupon_code='HALF')
        ledger.confirm(booking.id, 'pay_1', booking.total_amount)

        result = ledger.refund(booking.id, reason='event moved')

        self.assertTrue(result.ok)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.REFUNDED)
        self.assertIsNotNone(booking.refunded_at)
        self.assertEqual(Payment.objects.get(booking=booking).status, Payment.REFUNDED)
        self.tier.refresh_from_db()
        self.coupon.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 2)
        self.assertEqual(self.coupon.used_count, 1)

    def test_refund_requires_confirmed_booking(self):
        booking = self.reserve(1)
        self.assertEqual(ledger.refund(booking.id).error_code, 'invalid_booking_state')

        ledger.confirm(booking.id, 'pay_1', booking.total_amount)
        ledger.refund(booking.id)
        self.assertEqual(ledger.refund(booking.id).error_code, 'invalid_booking_state')

    def test_release_expired_sweeps_only_stale_holds(self):
        past_ledger = ReservationLedger(clock=lambda: timezone.now() - timedelta(hours=1))
        # Fresh first: a reserve on the live clock would sweep the stale holds itself.
        fresh = self.reserve(3)
        stale = self.reserve(2, ledger_=past_ledger, coupon_code='HALF')
        stale_confirmed = self.reserve(1, ledger_=past_ledger)
        past_ledger.confirm(stale_confirmed.id, 'pay_1', stale_confirmed.total_amount)

        released = ledger.release_expired()

        self.assertEqual(released, 1)
        stale.refresh_from_db()
        fresh.refresh_from_db()
        stale_confirmed.refresh_from_db()
        self.assertEqual(stale.status, Booking.CANCELLED)
        self.assertEqual(fresh.status, Booking.PENDING)
        self.assertEqual(stale_confirmed.status, Booking.CONFIRMED)
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 4)
        self.coupon.refresh_from_db()
        self.assertEqual(self.coupon.used_count, 0)

        self.assertEqual(ledger.release_expired(), 0)

    def test_sold_counter_matches_live_bookings(self):
        a = self.reserve(2)
        b = self.reserve(3)
        c = self.reserve(1)
        ledger.confirm(a.id, 'pay_a', a.total_amount)
        ledger.release(b.id)
        ledger.confirm(c.id, 'pay_c', c.total_amount)
        ledger.refund(c.id)

        live = sum(
            Booking.objects.filter(
                ticket_tier=self.tier,
                status__in=[Booking.PENDING, Booking.CONFIRMED, Booking.REFUNDED],
            ).values_list('quantity', flat=True)
        )
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, live)
        self.assertEqual(live, 3)


@unittest.skipUnless(connection.vendor == 'postgresql', "Row locks need PostgreSQL")
class ConcurrentReserveTestCase(TransactionTestCase):
    """Many threads racing for the last tickets and the last coupon use."""

    def setUp(self):
        self.event = make_event()
        self.tier = make_tier(self.event, max_quantity=5)
        self.users = [make_user(f'racer{i}@eventhive.test') for i in range(12)]

    def race(self, quantity=1, coupon_code=None):
        results = []
        barrier = threading.Barrier(len(self.users))

        def attempt(user):
            try:
                barrier.wait()
                results.append(
                    ledger.reserve(user, self.event.id, self.tier.id, quantity, coupon_code=coupon_code)
                )
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(user,)) for user in self.users]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_only_capacity_succeeds(self):
        results = self.race()

        self.assertEqual(sum(1 for r in results if r.ok), 5)
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 5)
        self.assertEqual(Booking.objects.filter(ticket_tier=self.tier).count(), 5)

    def test_last_coupon_use_goes_to_one_booking(self):
        TicketTier.objects.filter(pk=self.tier.pk).update(max_quantity=100)
        make_coupon('LASTONE', event=self.event, percent_off=10, max_usage=1)

        results = self.race(coupon_code='LASTONE')

        self.assertEqual(sum(1 for r in results if r.ok), 1)
        self.assertEqual(Coupon.objects.get(code='LASTONE').used_count, 1)
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 1)
