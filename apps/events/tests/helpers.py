"""Shared builders for booking tests."""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.events.models import Event, TicketTier, Coupon
from apps.users.models import Role

User = get_user_model()


def make_user(email='attendee@eventhive.test', role=Role.ATTENDEE, **extra):
    return User.objects.create_user(
        username=email.split('@')[0],
        email=email,
        password='s3cret-pass',
        role=role,
        **extra
    )


def make_event(organizer=None, status=Event.PUBLISHED, start_at=None, **extra):
    organizer = organizer or make_user('organizer@eventhive.test', role=Role.ORGANIZER)
    return Event.objects.create(
        organizer=organizer,
        title=extra.pop('title', 'Indie Night'),
        location=extra.pop('location', 'Bengaluru'),
        status=status,
        start_at=start_at or timezone.now() + timedelta(days=7),
        **extra
    )


def make_tier(event, price='500.00', max_quantity=100, **extra):
    return TicketTier.objects.create(
        event=event,
        name=extra.pop('name', 'General'),
        price=Decimal(price),
        max_quantity=max_quantity,
        **extra
    )


def make_coupon(code='SAVE10', event=None, percent_off=10, amount_off=None, **extra):
    return Coupon.objects.create(
        code=code,
        event=event,
        percent_off=percent_off if amount_off is None else None,
        amount_off=Decimal(amount_off) if amount_off is not None else None,
        **extra
    )


def make_confirmed_booking(user, tier, quantity=2, payment_ref=None):
    from apps.events.services.ledger import ledger

    result = ledger.reserve(user, tier.event_id, tier.id, quantity)
    booking = result.booking
    ledger.confirm(booking.id, payment_ref or f'pay_{booking.code}', booking.total_amount)
    booking.refresh_from_db()
    return booking
