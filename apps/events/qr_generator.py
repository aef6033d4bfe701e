"""
Ticket QR codes for EventHive bookings.

A confirmed booking gets one signed ticket token (HS256 JWT) that encodes
who booked what. The QR image carries the token itself, so scanners at the
door can hand it straight to check-in without another lookup.

Usage:
    from apps.events.qr_generator import issue_ticket_token, generate_qr_data_url

    token = issue_ticket_token(booking)
    data_url = generate_qr_data_url(token)
"""

import base64
import io
import logging
from datetime import timedelta

import jwt
import qrcode
from django.conf import settings
from django.utils import timezone

from apps.events.exceptions import InvalidTicketToken

logger = logging.getLogger(__name__)

TICKET_TOKEN_ALGORITHM = 'HS256'
TICKET_TOKEN_LIFETIME = timedelta(days=365)


def _ticket_secret():
    return getattr(settings, 'TICKET_TOKEN_SECRET', None) or settings.SECRET_KEY


def issue_ticket_token(booking, now=None) -> str:
    """Sign a ticket token for ``booking``, valid for one year."""
    now = now or timezone.now()
    payload = {
        'bookingId': str(booking.id),
        'eventId': str(booking.event_id),
        'userId': str(booking.user_id) if booking.user_id else None,
        'quantity': booking.quantity,
        'iat': int(now.timestamp()),
        'exp': int((now + TICKET_TOKEN_LIFETIME).timestamp()),
    }
    return jwt.encode(payload, _ticket_secret(), algorithm=TICKET_TOKEN_ALGORITHM)


def decode_ticket_token(token: str) -> dict:
    """Verify a ticket token and return its claims. Raises ``InvalidTicketToken``."""
    try:
        claims = jwt.decode(token, _ticket_secret(), algorithms=[TICKET_TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("❌ [QR] Expired ticket token presented")
        raise InvalidTicketToken("This ticket has expired.")
    except jwt.PyJWTError as e:
        logger.warning(f"❌ [QR] Rejected ticket token: {e}")
        raise InvalidTicketToken()

    if not claims.get('bookingId'):
        raise InvalidTicketToken()
    return claims


def generate_qr_image(data: str) -> bytes:
    """Render ``data`` as a PNG QR code."""
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        return buffer.getvalue()

    except Exception as e:
        logger.error(f"❌ [QR] Error generating QR code: {e}")
        raise


def generate_qr_data_url(data: str) -> str:
    """QR code as a ``data:image/png;base64,...`` URL for emails and API responses."""
    encoded = base64.b64encode(generate_qr_image(data)).decode('ascii')
    return f"data:image/png;base64,{encoded}"


def ticket_url(booking) -> str:
    frontend_url = getattr(settings, 'FRONTEND_URL', '').rstrip('/')
    return f"{frontend_url}/tickets/{booking.code}"
