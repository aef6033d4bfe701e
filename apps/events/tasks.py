"""
Celery tasks for the booking lifecycle.

- ``release_expired_bookings``: periodic sweep of unpaid holds (beat, every 5 minutes)
- ``issue_booking_ticket``: QR ticket + confirmation email after a booking is confirmed
"""

import logging
from email.mime.image import MIMEImage

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


@shared_task
def release_expired_bookings():
    """
    🚀 ENTERPRISE: Release pending bookings whose hold has expired.

    Returns their tickets and coupon uses to the pool. Bookings are also
    released lazily on the next reserve against the same tier, so this
    sweep only bounds how long stale holds can linger.
    """
    from apps.events.services.ledger import ledger

    try:
        released = ledger.release_expired()
        return {'released_bookings': released}
    except Exception as e:
        logger.error(f"🧹 [CLEANUP] Error in release_expired_bookings: {e}")
        raise


@shared_task(bind=True, max_retries=3)
def issue_booking_ticket(self, booking_id):
    """
    Sign the ticket token for a confirmed booking and email it as a QR code.

    Runs after the confirming transaction commits; confirmation never
    depends on this succeeding.
    """
    from apps.events.models import Booking
    from apps.events.qr_generator import issue_ticket_token, generate_qr_image, ticket_url

    try:
        booking = Booking.objects.select_related('event', 'ticket_tier', 'user').get(id=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"📧 [EMAIL] Booking {booking_id} not found")
        return {'status': 'error', 'reason': 'booking_not_found'}

    if not booking.is_confirmed:
        logger.warning(f"📧 [EMAIL] Booking {booking.code} is {booking.status}, skipping ticket")
        return {'status': 'skipped', 'reason': 'booking_not_confirmed'}

    if not booking.user or not booking.user.email:
        logger.warning(f"📧 [EMAIL] Booking {booking.code} has no recipient, skipping ticket")
        return {'status': 'skipped', 'reason': 'no_recipient'}

    try:
        token = issue_ticket_token(booking)
        qr_png = generate_qr_image(token)

        context = {
            'booking': booking,
            'event': booking.event,
            'tier': booking.ticket_tier,
            'user': booking.user,
            'pricing': booking.pricing,
            'ticket_url': ticket_url(booking),
            'qr_code': 'cid:qr_code',
        }
        html_message = render_to_string('emails/booking_confirmation.html', context)
        text_message = render_to_string('emails/booking_confirmation.txt', context)

        email = EmailMultiAlternatives(
            subject=f"Your tickets for {booking.event.title} - {booking.code}",
            body=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[booking.user.email],
        )
        email.attach_alternative(html_message, "text/html")

        qr_image = MIMEImage(qr_png)
        qr_image.add_header('Content-ID', '<qr_code>')
        qr_image.add_header('Content-Disposition', 'inline', filename=f'{booking.code}.png')
        email.attach(qr_image)

        email.send(fail_silently=False)

    except Exception as exc:
        logger.error(f"📧 [EMAIL] Error sending ticket for booking {booking.code}: {exc}")
        if self.request.retries < self.max_retries:
            countdown = 60 * (2 ** self.request.retries)
            logger.info(f"📧 [EMAIL] Retrying in {countdown}s (attempt {self.request.retries + 1}/{self.max_retries})")
            raise self.retry(exc=exc, countdown=countdown)
        logger.error(f"📧 [EMAIL] Max retries reached for booking {booking.code}, giving up")
        return {'status': 'failed', 'reason': str(exc)}

    logger.info(f"📧 [EMAIL] Ticket for {booking.code} sent to {booking.user.email}")
    return {'status': 'sent', 'booking_id': str(booking.id), 'ticket_token': token}
