"""Loyalty points: one point per ₹10 paid on a confirmed booking."""

import logging
from decimal import Decimal, ROUND_FLOOR

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F

from apps.events.models import LoyaltyTransaction

logger = logging.getLogger(__name__)

RUPEES_PER_POINT = Decimal('10')


def points_for_amount(amount) -> int:
    if amount is None or Decimal(amount) <= 0:
        return 0
    return int((Decimal(amount) / RUPEES_PER_POINT).to_integral_value(rounding=ROUND_FLOOR))


def award_booking_points(booking, amount=None):
    """
    Credit points for a confirmed booking.

    Runs inside the confirming transaction. Returns the transaction row, or
    None when nothing was awarded (no user, zero amount, already credited).
    """
    if not booking.user_id:
        return None

    points = points_for_amount(booking.total_amount if amount is None else amount)
    if points <= 0:
        return None

    if LoyaltyTransaction.objects.filter(
        booking=booking, reason=LoyaltyTransaction.EVENT_BOOKING
    ).exists():
        logger.info(f"🎁 [LOYALTY] Points for {booking.code} already credited")
        return None

    return _apply(booking.user_id, points, LoyaltyTransaction.EVENT_BOOKING, booking=booking)


def adjust_points(user, points: int, booking=None):
    """Manual credit or debit. A debit larger than the balance is rejected."""
    if points == 0:
        raise ValueError("Adjustment must be non-zero.")

    with transaction.atomic():
        if points < 0:
            User = get_user_model()
            updated = User.objects.filter(
                pk=user.pk, loyalty_points__gte=-points
            ).update(loyalty_points=F('loyalty_points') + points)
            if not updated:
                raise ValueError("Insufficient loyalty points.")
            return LoyaltyTransaction.objects.create(
                user_id=user.pk,
                points=points,
                reason=LoyaltyTransaction.MANUAL_ADJUSTMENT,
                booking=booking,
            )
        return _apply(user.pk, points, LoyaltyTransaction.MANUAL_ADJUSTMENT, booking=booking)


def _apply(user_id, points, reason, booking=None):
    User = get_user_model()
    entry = LoyaltyTransaction.objects.create(
        user_id=user_id, points=points, reason=reason, booking=booking
    )
    User.objects.filter(pk=user_id).update(loyalty_points=F('loyalty_points') + points)
    logger.info(f"🎁 [LOYALTY] {points:+d} points for user {user_id} ({reason})")
    return entry


def get_summary(user, limit=50):
    user.refresh_from_db(fields=['loyalty_points'])
    history = LoyaltyTransaction.objects.filter(user=user).select_related('booking')[:limit]
    return {
        'balance': user.loyalty_points,
        'transactions': list(history),
    }
