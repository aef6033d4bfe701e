"""Catalog lookup: resolve an event's ticket tier and check it can be sold."""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.events.exceptions import (
    EventNotFound,
    TicketTierNotFound,
    EventNotPublished,
    SaleNotStarted,
    SaleEnded,
    InvalidQuantity,
    InsufficientInventory,
)
from apps.events.models import Event, TicketTier

MIN_TICKETS_PER_BOOKING = 1


def max_tickets_per_booking():
    return getattr(settings, 'MAX_TICKETS_PER_BOOKING', 10)


def lookup_tier(event_id, tier_id, queryset=None):
    """
    Return the ticket tier ``tier_id`` with its event loaded.

    Raises ``EventNotFound`` or ``TicketTierNotFound``; a tier that exists
    but belongs to another event is reported as not found. Pass a locking
    ``queryset`` (``select_for_update()``) to read the row for update.
    """
    try:
        if not Event.objects.filter(id=event_id).exists():
            raise EventNotFound(event_id=event_id)
    except ValidationError:
        # Malformed UUID
        raise EventNotFound(event_id=event_id)

    queryset = queryset if queryset is not None else TicketTier.objects.all()
    try:
        return queryset.select_related('event').get(id=tier_id, event_id=event_id)
    except (TicketTier.DoesNotExist, ValidationError):
        raise TicketTierNotFound(event_id=event_id, tier_id=tier_id)


def validate_purchase(tier, quantity, now=None):
    """
    Run the sellability checks in order, failing on the first violation.

    Pure read of ``tier`` and ``tier.event``; no side effects.
    """
    now = now or timezone.now()
    event = tier.event

    if event.status != Event.PUBLISHED:
        raise EventNotPublished(status=event.status)

    if tier.sale_start and tier.sale_start > now:
        raise SaleNotStarted(sale_start=tier.sale_start.isoformat())

    if tier.sale_end and tier.sale_end < now:
        raise SaleEnded(sale_end=tier.sale_end.isoformat())

    upper = max_tickets_per_booking()
    if not isinstance(quantity, int) or isinstance(quantity, bool) or not (
        MIN_TICKETS_PER_BOOKING <= quantity <= upper
    ):
        raise InvalidQuantity(
            f"Quantity must be between {MIN_TICKETS_PER_BOOKING} and {upper} tickets.",
            quantity=quantity,
        )

    if tier.total_sold + quantity > tier.max_quantity:
        raise InsufficientInventory(
            f"Only {tier.remaining} tickets left for {tier.name}.",
            requested=quantity,
            remaining=tier.remaining,
        )

    return tier


def check_availability(event_id, tier_id, quantity, now=None):
    """Lookup and validate in one call (pre-validation, outside any lock)."""
    tier = lookup_tier(event_id, tier_id)
    return validate_purchase(tier, quantity, now=now)
