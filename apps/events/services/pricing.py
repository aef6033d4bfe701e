"""
Pricing engine.

Computes what a booking costs: base price, automatic group discount by
quantity, then an optional coupon applied to the group-discounted amount.
Every discount step is rounded half-up to whole rupees, and the order
matters: the coupon is computed on the amount left after the group
discount, not on the base.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from django.utils import timezone

from apps.events.exceptions import (
    InvalidCoupon,
    CouponNotApplicable,
    CouponNotStarted,
    CouponExpired,
    CouponExhausted,
)
from apps.events.models import Coupon, normalize_coupon_code

# (minimum quantity, rate); first match wins, so keep highest threshold first.
GROUP_DISCOUNT_TIERS = (
    (10, Decimal('0.20')),
    (5, Decimal('0.15')),
)

ZERO = Decimal('0')


def round_currency(amount) -> Decimal:
    """Round half-up to a whole currency unit."""
    return Decimal(amount).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    base_amount: Decimal
    group_discount_amount: Decimal
    coupon_discount_amount: Decimal
    total_amount: Decimal
    coupon: Optional[Coupon] = field(default=None, compare=False)

    @property
    def after_group_discount(self) -> Decimal:
        return self.base_amount - self.group_discount_amount

    @property
    def total_discount(self) -> Decimal:
        return self.group_discount_amount + self.coupon_discount_amount

    def as_dict(self):
        return {
            'baseAmount': float(self.base_amount),
            'groupDiscountAmount': float(self.group_discount_amount),
            'couponDiscountAmount': float(self.coupon_discount_amount),
            'totalAmount': float(self.total_amount),
            'couponCode': self.coupon.code if self.coupon else None,
        }


def group_discount_rate(quantity: int) -> Decimal:
    for threshold, rate in GROUP_DISCOUNT_TIERS:
        if quantity >= threshold:
            return rate
    return ZERO


def find_coupon(code: str) -> Optional[Coupon]:
    """Default coupon resolver: case-insensitive match on the stored uppercase code."""
    return Coupon.objects.filter(code=normalize_coupon_code(code)).first()


def validate_coupon(coupon: Optional[Coupon], event_id, now=None) -> Coupon:
    """Check a resolved coupon against the booking's event and ``now``, in order."""
    now = now or timezone.now()

    if coupon is None:
        raise InvalidCoupon()

    if coupon.event_id and str(coupon.event_id) != str(event_id):
        raise CouponNotApplicable(code=coupon.code)

    if coupon.valid_from and coupon.valid_from > now:
        raise CouponNotStarted(code=coupon.code, valid_from=coupon.valid_from.isoformat())

    if coupon.valid_until and coupon.valid_until < now:
        raise CouponExpired(code=coupon.code, valid_until=coupon.valid_until.isoformat())

    if coupon.max_usage is not None and coupon.used_count >= coupon.max_usage:
        raise CouponExhausted(code=coupon.code)

    return coupon


def coupon_discount(coupon: Coupon, amount: Decimal) -> Decimal:
    """Discount granted by ``coupon`` on ``amount``; never more than ``amount``."""
    if coupon.percent_off is not None:
        return round_currency(amount * Decimal(coupon.percent_off) / Decimal('100'))
    return min(Decimal(coupon.amount_off), amount)


def calculate_price(
    unit_price,
    quantity: int,
    coupon_code: Optional[str] = None,
    event_id=None,
    now=None,
    coupon_lookup: Callable[[str], Optional[Coupon]] = find_coupon,
) -> PriceBreakdown:
    """
    Price ``quantity`` tickets at ``unit_price`` for ``event_id``.

    ``coupon_lookup`` resolves a code to a Coupon (or None); the ledger
    passes a locking lookup so the coupon row is read for update. Raises
    the coupon errors of ``validate_coupon``.
    """
    base_amount = Decimal(unit_price) * quantity
    group_discount_amount = round_currency(base_amount * group_discount_rate(quantity))
    after_group = base_amount - group_discount_amount

    coupon = None
    coupon_discount_amount = ZERO
    if coupon_code:
        coupon = validate_coupon(coupon_lookup(coupon_code), event_id, now=now)
        coupon_discount_amount = coupon_discount(coupon, after_group)

    total_amount = max(ZERO, after_group - coupon_discount_amount)

    return PriceBreakdown(
        base_amount=base_amount,
        group_discount_amount=group_discount_amount,
        coupon_discount_amount=coupon_discount_amount,
        total_amount=total_amount,
        coupon=coupon,
    )
