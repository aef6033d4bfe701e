"""
Reservation ledger.

Records booking attempts and owns the two shared counters every booking
touches: ``TicketTier.total_sold`` and ``Coupon.used_count``. Counters are
only ever changed by a conditional ``UPDATE`` inside a transaction that
re-checks the limit it depends on, so concurrent bookings for the last
units of a tier (or the last use of a coupon) cannot overshoot.

Lifecycle:

    reserve()  -> PENDING    inventory (and coupon use) held
    confirm()  -> CONFIRMED  payment recorded, loyalty points, ticket issued
    release()  -> CANCELLED  unpaid booking; inventory and coupon use returned
    refund()   -> REFUNDED   confirmed booking; inventory is NOT returned

Every public method returns a ``LedgerResult``; booking errors never
propagate out of the ledger.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError, OperationalError
from django.db.models import F
from django.utils import timezone

from apps.events.exceptions import (
    BookingError,
    BookingNotFound,
    InvalidBookingState,
    InsufficientInventory,
    CouponExhausted,
    AmountMismatch,
    AlreadyConfirmed,
    PaymentAlreadyUsed,
)
from apps.events.models import Booking, Coupon, TicketTier, normalize_coupon_code
from apps.events.services import catalog, loyalty
from apps.events.services.pricing import PriceBreakdown, calculate_price
from payment_processor.models import Payment

logger = logging.getLogger(__name__)
fraud_logger = logging.getLogger('eventhive.fraud')


@dataclass
class LedgerResult:
    ok: bool
    booking: Optional[Booking] = None
    pricing: Optional[PriceBreakdown] = None
    error: Optional[BookingError] = None
    already_confirmed: bool = False

    @classmethod
    def success(cls, booking, pricing=None, **kwargs):
        return cls(ok=True, booking=booking, pricing=pricing or booking.pricing, **kwargs)

    @classmethod
    def failure(cls, error, booking=None):
        return cls(ok=False, booking=booking, error=error)

    @property
    def error_code(self):
        return self.error.code if self.error else None

    def as_dict(self):
        data = {'success': self.ok}
        if self.booking is not None:
            data.update({
                'bookingId': str(self.booking.id),
                'bookingCode': self.booking.code,
                'status': self.booking.status.upper(),
                'expiresAt': self.booking.expires_at.isoformat(),
            })
        if self.pricing is not None:
            data['pricing'] = self.pricing.as_dict()
        if self.error is not None and not self.ok:
            data.update(self.error.as_dict())
        if self.already_confirmed:
            data['alreadyConfirmed'] = True
        return data


class ReservationLedger:
    """Transactional booking state machine over tier and coupon counters."""

    # A commit lost to a concurrent writer is retried once, from validation.
    COMMIT_RETRIES = 1

    def __init__(self, hold_minutes=None, clock=None):
        self.hold_minutes = hold_minutes or getattr(settings, 'BOOKING_HOLD_MINUTES', 15)
        self.clock = clock or timezone.now

    # ------------------------------------------------------------------
    # reserve
    # ------------------------------------------------------------------

    def reserve(self, user, event_id, tier_id, quantity, coupon_code=None) -> LedgerResult:
        """Create a PENDING booking and hold its inventory and coupon use."""
        self.release_expired(tier_id=tier_id)

        for attempt in range(self.COMMIT_RETRIES + 1):
            try:
                booking, pricing = self._reserve_once(user, event_id, tier_id, quantity, coupon_code)
            except BookingError as exc:
                logger.info(
                    f"📦 [LEDGER] Reserve rejected for tier {tier_id} x{quantity} "
                    f"(coupon={coupon_code or '-'}): {exc.code}"
                )
                return LedgerResult.failure(exc)
            except (IntegrityError, OperationalError) as exc:
                if attempt < self.COMMIT_RETRIES:
                    logger.warning(f"📦 [LEDGER] Reserve lost a race on tier {tier_id}, retrying: {exc}")
                    continue
                logger.error(f"📦 [LEDGER] Reserve failed on tier {tier_id} after retry: {exc}")
                raise

            logger.info(
                f"📦 [LEDGER] Reserved {booking.code}: {quantity}x tier {tier_id} "
                f"total={pricing.total_amount} expires={booking.expires_at.isoformat()}"
            )
            return LedgerResult.success(booking, pricing)

    def _reserve_once(self, user, event_id, tier_id, quantity, coupon_code):
        now = self.clock()

        with transaction.atomic():
            tier = catalog.lookup_tier(
                event_id, tier_id,
                queryset=TicketTier.objects.select_for_update(of=('self',))
            )
            catalog.validate_purchase(tier, quantity, now=now)

            pricing = calculate_price(
                tier.price,
                quantity,
                coupon_code=coupon_code,
                event_id=tier.event_id,
                now=now,
                coupon_lookup=self._lock_coupon,
            )

            # Conditional increments: the WHERE clause is the real capacity check.
            reserved = TicketTier.objects.filter(
                id=tier.id,
                total_sold__lte=F('max_quantity') - quantity,
            ).update(total_sold=F('total_sold') + quantity)
            if not reserved:
                tier.refresh_from_db(fields=['total_sold'])
                raise InsufficientInventory(
                    f"Only {tier.remaining} tickets left for {tier.name}.",
                    requested=quantity,
                    remaining=tier.remaining,
                )

            coupon = pricing.coupon
            if coupon is not None:
                usage = Coupon.objects.filter(id=coupon.id)
                if coupon.max_usage is not None:
                    usage = usage.filter(used_count__lt=F('max_usage'))
                if not usage.update(used_count=F('used_count') + 1):
                    raise CouponExhausted(code=coupon.code)

            booking = Booking.objects.create(
                user=user,
                event_id=tier.event_id,
                ticket_tier=tier,
                coupon=coupon,
                quantity=quantity,
                base_amount=pricing.base_amount,
                group_discount_amount=pricing.group_discount_amount,
                coupon_discount_amount=pricing.coupon_discount_amount,
                total_amount=pricing.total_amount,
                expires_at=now + timedelta(minutes=self.hold_minutes),
            )

        return booking, pricing

    @staticmethod
    def _lock_coupon(code):
        return (
            Coupon.objects.select_for_update()
            .filter(code=normalize_coupon_code(code))
            .first()
        )

    # ------------------------------------------------------------------
    # confirm
    # ------------------------------------------------------------------

    def confirm(self, booking_id, payment_ref, verified_amount,
                provider='razorpay', provider_status='captured', provider_order_id='') -> LedgerResult:
        """
        Move a PENDING booking to CONFIRMED once its payment is verified.

        ``verified_amount`` must equal the booking total exactly. Confirming
        an already confirmed booking is a no-op reported as success with
        ``already_confirmed=True``.
        """
        try:
            with transaction.atomic():
                booking = self._lock_booking(booking_id)

                if booking.is_confirmed:
                    existing = Payment.objects.filter(booking=booking).first()
                    if existing and existing.provider_payment_id != payment_ref:
                        # A second capture for the same booking; needs a manual refund.
                        fraud_logger.error(
                            f"🚨 [FRAUD] {booking.code} already confirmed with payment "
                            f"{existing.provider_payment_id}; second payment {payment_ref} "
                            f"({verified_amount}) was not applied"
                        )
                    return LedgerResult.success(
                        booking, error=AlreadyConfirmed(), already_confirmed=True
                    )

                if not booking.can_transition_to(Booking.CONFIRMED):
                    raise InvalidBookingState(
                        f"Booking {booking.code} is {booking.status} and cannot be confirmed.",
                        status=booking.status,
                    )

                amount = self._to_amount(verified_amount)
                if amount is None or amount != booking.total_amount:
                    fraud_logger.error(
                        f"🚨 [FRAUD] Amount mismatch on {booking.code}: expected "
                        f"{booking.total_amount}, verified {verified_amount} (payment {payment_ref})"
                    )
                    raise AmountMismatch(
                        expected=booking.total_amount, received=verified_amount
                    )

                now = self.clock()
                try:
                    with transaction.atomic():
                        Payment.objects.create(
                            booking=booking,
                            provider=provider,
                            provider_order_id=provider_order_id or '',
                            provider_payment_id=payment_ref,
                            amount=amount,
                            currency=booking.currency,
                            status=provider_status,
                            captured_at=now,
                        )
                except IntegrityError:
                    # provider_payment_id is unique: the payment backs another booking.
                    fraud_logger.error(
                        f"🚨 [FRAUD] Payment {payment_ref} replayed against {booking.code}; "
                        f"it already confirms another booking"
                    )
                    raise PaymentAlreadyUsed(payment=payment_ref)

                booking.status = Booking.CONFIRMED
                booking.confirmed_at = now
                booking.save(update_fields=['status', 'confirmed_at', 'updated_at'])

                loyalty.award_booking_points(booking, amount)
                transaction.on_commit(lambda: self._issue_ticket(booking))

        except BookingError as exc:
            logger.info(f"💳 [LEDGER] Confirm rejected for {booking_id}: {exc.code}")
            return LedgerResult.failure(exc)

        logger.info(f"✅ [LEDGER] Confirmed {booking.code} with payment {payment_ref}")
        return LedgerResult.success(booking)

    @staticmethod
    def _issue_ticket(booking):
        from apps.events.tasks import issue_booking_ticket

        issue_booking_ticket.delay(str(booking.id))

    @staticmethod
    def _to_amount(value):
        try:
            return Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            return None

    # ------------------------------------------------------------------
    # release / refund
    # ------------------------------------------------------------------

    def release(self, booking_id, reason='expired') -> LedgerResult:
        """Cancel an unpaid PENDING booking and return what it held. Idempotent."""
        try:
            with transaction.atomic():
                booking = self._lock_booking(booking_id)
                if booking.status == Booking.CANCELLED:
                    return LedgerResult.success(booking)
                self._release_locked(booking, reason)
        except BookingError as exc:
            logger.info(f"🧹 [LEDGER] Release rejected for {booking_id}: {exc.code}")
            return LedgerResult.failure(exc)

        return LedgerResult.success(booking)

    def _release_locked(self, booking, reason):
        if not booking.can_transition_to(Booking.CANCELLED):
            raise InvalidBookingState(
                f"Booking {booking.code} is {booking.status} and cannot be released.",
                status=booking.status,
            )

        TicketTier.objects.filter(
            id=booking.ticket_tier_id,
            total_sold__gte=booking.quantity,
        ).update(total_sold=F('total_sold') - booking.quantity)

        if booking.coupon_id:
            Coupon.objects.filter(
                id=booking.coupon_id,
                used_count__gt=0,
            ).update(used_count=F('used_count') - 1)

        booking.status = Booking.CANCELLED
        booking.cancelled_at = self.clock()
        booking.cancellation_reason = reason[:255]
        booking.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])

        logger.info(
            f"🧹 [LEDGER] Released {booking.code} ({reason}): "
            f"{booking.quantity} tickets back to tier {booking.ticket_tier_id}"
        )

    def refund(self, booking_id, reason='') -> LedgerResult:
        """Mark a CONFIRMED booking REFUNDED. Sold inventory stays sold."""
        try:
            with transaction.atomic():
                booking = self._lock_booking(booking_id)
                if not booking.can_transition_to(Booking.REFUNDED):
                    raise InvalidBookingState(
                        f"Booking {booking.code} is {booking.status} and cannot be refunded.",
                        status=booking.status,
                    )

                booking.status = Booking.REFUNDED
                booking.refunded_at = self.clock()
                booking.cancellation_reason = reason[:255]
                booking.save(update_fields=['status', 'refunded_at', 'cancellation_reason', 'updated_at'])
                Payment.objects.filter(booking=booking).update(status=Payment.REFUNDED)
        except BookingError as exc:
            logger.info(f"💸 [LEDGER] Refund rejected for {booking_id}: {exc.code}")
            return LedgerResult.failure(exc)

        logger.info(f"💸 [LEDGER] Refunded {booking.code}")
        return LedgerResult.success(booking)

    # ------------------------------------------------------------------
    # expiry sweep
    # ------------------------------------------------------------------

    def release_expired(self, now=None, tier_id=None) -> int:
        """Release every PENDING booking whose hold has run out. Returns the count."""
        now = now or self.clock()
        expired = Booking.objects.filter(status=Booking.PENDING, expires_at__lte=now)
        if tier_id is not None:
            try:
                expired = expired.filter(ticket_tier_id=tier_id)
                expired_ids = list(expired.values_list('id', flat=True))
            except ValidationError:
                return 0
        else:
            expired_ids = list(expired.values_list('id', flat=True))

        released = 0
        for booking_id in expired_ids:
            with transaction.atomic():
                booking = Booking.objects.select_for_update().get(id=booking_id)
                # Confirmed or released since the scan.
                if booking.status != Booking.PENDING or booking.expires_at > now:
                    continue
                self._release_locked(booking, 'expired')
                released += 1

        if released:
            logger.info(f"🧹 [CLEANUP] Released {released} expired pending bookings")
        return released

    # ------------------------------------------------------------------

    @staticmethod
    def _lock_booking(booking_ref):
        """Lock a booking by internal id or external code."""
        queryset = Booking.objects.select_for_update()
        try:
            if isinstance(booking_ref, str) and booking_ref.upper().startswith('BH-'):
                return queryset.get(code=booking_ref.upper())
            return queryset.get(id=booking_ref)
        except (Booking.DoesNotExist, ValidationError):
            raise BookingNotFound(booking=booking_ref)


ledger = ReservationLedger()
