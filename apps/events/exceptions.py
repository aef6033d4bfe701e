"""
Typed booking errors.

Each error carries a stable ``code`` that API clients can switch on and a
human readable message for direct display. Catalog lookup and pricing
raise these; the reservation ledger catches them and returns them inside
a ``LedgerResult`` so they never escape the booking core.
"""


class BookingError(Exception):
    """Base class for every recoverable booking failure."""

    code = 'booking_error'
    default_message = "The booking could not be completed."
    http_status = 400

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def as_dict(self):
        data = {'error': self.code, 'detail': self.message}
        if self.context:
            data['context'] = {key: str(value) for key, value in self.context.items()}
        return data


# Bad identifiers

class EventNotFound(BookingError):
    code = 'event_not_found'
    default_message = "Event not found."
    http_status = 404


class TicketTierNotFound(BookingError):
    code = 'ticket_tier_not_found'
    default_message = "Ticket tier not found for this event."
    http_status = 404


class BookingNotFound(BookingError):
    code = 'booking_not_found'
    default_message = "Booking not found."
    http_status = 404


# Timing and state

class EventNotPublished(BookingError):
    code = 'event_not_published'
    default_message = "This event is not open for bookings."


class SaleNotStarted(BookingError):
    code = 'sale_not_started'
    default_message = "Ticket sales for this tier have not started yet."


class SaleEnded(BookingError):
    code = 'sale_ended'
    default_message = "Ticket sales for this tier have ended."


class InvalidBookingState(BookingError):
    code = 'invalid_booking_state'
    default_message = "The booking cannot move to the requested state."
    http_status = 409


# Quantity and capacity

class InvalidQuantity(BookingError):
    code = 'invalid_quantity'
    default_message = "Quantity must be between 1 and 10 tickets."


class InsufficientInventory(BookingError):
    code = 'insufficient_inventory'
    default_message = "Not enough tickets left in this tier."
    http_status = 409


# Coupons

class InvalidCoupon(BookingError):
    code = 'invalid_coupon'
    default_message = "Invalid coupon code."


class CouponNotApplicable(BookingError):
    code = 'coupon_not_applicable'
    default_message = "This coupon is not valid for this event."


class CouponNotStarted(BookingError):
    code = 'coupon_not_started'
    default_message = "This coupon is not yet valid."


class CouponExpired(BookingError):
    code = 'coupon_expired'
    default_message = "This coupon has expired."


class CouponExhausted(BookingError):
    code = 'coupon_exhausted'
    default_message = "This coupon has reached its usage limit."
    http_status = 409


# Confirmation

class AmountMismatch(BookingError):
    code = 'amount_mismatch'
    default_message = "Paid amount does not match the booking total."
    http_status = 409


class PaymentAlreadyUsed(BookingError):
    code = 'payment_already_used'
    default_message = "This payment is already attached to another booking."
    http_status = 409


class AlreadyConfirmed(BookingError):
    """Duplicate confirm; reported as success to callers."""

    code = 'already_confirmed'
    default_message = "Booking was already confirmed."
    http_status = 200


# Check-in

class BookingNotConfirmed(BookingError):
    code = 'booking_not_confirmed'
    default_message = "Booking is not confirmed."


class AlreadyCheckedIn(BookingError):
    code = 'already_checked_in'
    default_message = "This ticket has already been checked in."
    http_status = 409


class CheckInWindowClosed(BookingError):
    code = 'check_in_window_closed'
    default_message = "Check-in is not available yet or has expired."


class InvalidTicketToken(BookingError):
    code = 'invalid_ticket_token'
    default_message = "Invalid QR code."
