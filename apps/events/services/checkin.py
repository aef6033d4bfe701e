"""Venue check-in for confirmed bookings."""

import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError
from django.db.models import Sum
from django.utils import timezone

from apps.events.exceptions import (
    BookingNotFound,
    BookingNotConfirmed,
    AlreadyCheckedIn,
    CheckInWindowClosed,
    InvalidTicketToken,
)
from apps.events.models import Booking, CheckIn
from apps.events.qr_generator import decode_ticket_token

logger = logging.getLogger(__name__)

# Doors open two hours before start and close two hours after.
CHECK_IN_WINDOW = timedelta(hours=2)


def check_in(booking_id=None, token=None, scanner=None, now=None) -> CheckIn:
    """
    Record a booking's arrival, by booking id or by scanned ticket token.

    Raises ``BookingNotFound``, ``InvalidTicketToken``, ``BookingNotConfirmed``,
    ``AlreadyCheckedIn`` or ``CheckInWindowClosed``.
    """
    now = now or timezone.now()

    if token:
        claims = decode_ticket_token(token)
        if booking_id and str(booking_id) != claims['bookingId']:
            raise InvalidTicketToken("Ticket does not match this booking.")
        booking_id = claims['bookingId']

    if not booking_id:
        raise BookingNotFound()

    with transaction.atomic():
        try:
            booking = (
                Booking.objects.select_for_update(of=('self',))
                .select_related('event')
                .get(id=booking_id)
            )
        except (Booking.DoesNotExist, ValidationError):
            raise BookingNotFound(booking=booking_id)

        if booking.status != Booking.CONFIRMED:
            raise BookingNotConfirmed(status=booking.status)

        if CheckIn.objects.filter(booking=booking).exists():
            raise AlreadyCheckedIn(booking=booking.code)

        start_at = booking.event.start_at
        if not (start_at - CHECK_IN_WINDOW <= now <= start_at + CHECK_IN_WINDOW):
            raise CheckInWindowClosed(event_start=start_at.isoformat())

        try:
            with transaction.atomic():
                record = CheckIn.objects.create(booking=booking, checked_in_at=now, scanner=scanner)
        except IntegrityError:
            raise AlreadyCheckedIn(booking=booking.code)

    logger.info(
        f"🎫 [CHECKIN] {booking.code} checked in for event {booking.event_id} "
        f"({booking.quantity} tickets, scanner={getattr(scanner, 'pk', None)})"
    )
    return record


def check_in_stats(event, recent=10):
    confirmed = Booking.objects.filter(event=event, status=Booking.CONFIRMED)
    checked_in = confirmed.filter(check_in__isnull=False)

    total_bookings = confirmed.count()
    checked_in_bookings = checked_in.count()
    tickets_sold = confirmed.aggregate(total=Sum('quantity'))['total'] or 0
    tickets_checked_in = checked_in.aggregate(total=Sum('quantity'))['total'] or 0

    rate = round(checked_in_bookings / total_bookings * 100, 2) if total_bookings else 0.0

    recent_check_ins = (
        CheckIn.objects.filter(booking__event=event)
        .select_related('booking', 'booking__user', 'scanner')
        .order_by('-checked_in_at')[:recent]
    )

    return {
        'totalBookings': total_bookings,
        'checkedInBookings': checked_in_bookings,
        'totalTicketsSold': tickets_sold,
        'totalTicketsCheckedIn': tickets_checked_in,
        'checkInRate': rate,
        'pendingCheckIns': total_bookings - checked_in_bookings,
        'recentCheckIns': [
            {
                'bookingCode': entry.booking.code,
                'quantity': entry.booking.quantity,
                'attendee': entry.booking.user.get_full_name() if entry.booking.user else None,
                'checkedInAt': entry.checked_in_at.isoformat(),
                'scannedBy': entry.scanner.email if entry.scanner else None,
            }
            for entry in recent_check_ins
        ],
    }
