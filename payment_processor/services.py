"""
🚀 ENTERPRISE PAYMENT SERVICES
Razorpay REST client and webhook handling for EventHive bookings.
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import Dict, Any, Optional

import requests
from django.conf import settings

from .models import Payment, PaymentTransaction
import logging

logger = logging.getLogger(__name__)

PAISE_PER_RUPEE = Decimal('100')


class PaymentServiceException(Exception):
    """Custom exception for payment service errors"""
    pass


def to_paise(amount) -> int:
    return int((Decimal(amount) * PAISE_PER_RUPEE).to_integral_value())


def from_paise(amount) -> Decimal:
    return (Decimal(int(amount)) / PAISE_PER_RUPEE).quantize(Decimal('0.01'))


class RazorpayService:
    """
    🚀 ENTERPRISE: Razorpay Orders/Payments REST API service.

    Amounts cross the wire in paise; everything the rest of EventHive sees is
    rupees as ``Decimal``.
    """

    base_url = "https://api.razorpay.com/v1"

    def __init__(self, key_id=None, key_secret=None, webhook_secret=None,
                 timeout=None, retry_attempts=None):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        )
        self.timeout = timeout or getattr(settings, 'RAZORPAY_TIMEOUT_SECONDS', 30)
        self.retry_attempts = retry_attempts or getattr(settings, 'RAZORPAY_RETRY_ATTEMPTS', 3)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _make_request(self, method: str, endpoint: str, data: Dict = None) -> Dict[str, Any]:
        """
        🚀 ENTERPRISE: HTTP client with retry logic and exponential backoff
        """
        if not self.key_id or not self.key_secret:
            raise PaymentServiceException("Razorpay configuration missing: key_id or key_secret")

        url = f"{self.base_url}/{endpoint}"
        start_time = time.time()
        last_exception = None

        for attempt in range(self.retry_attempts):
            try:
                logger.info(f"🌐 RAZORPAY: {method} {url} (attempt {attempt + 1})")

                response = requests.request(
                    method=method,
                    url=url,
                    auth=(self.key_id, self.key_secret),
                    json=data,
                    timeout=self.timeout
                )

                duration_ms = int((time.time() - start_time) * 1000)

                if response.status_code == 200:
                    logger.info(f"✅ RAZORPAY: Success in {duration_ms}ms")
                    return {
                        'success': True,
                        'data': response.json(),
                        'duration_ms': duration_ms,
                        'status_code': response.status_code
                    }

                try:
                    error_data = response.json()
                except ValueError:
                    error_data = response.text

                # Client errors will not improve on retry.
                if response.status_code < 500:
                    logger.error(f"❌ RAZORPAY: HTTP {response.status_code} - {error_data}")
                    return {
                        'success': False,
                        'error': error_data,
                        'duration_ms': duration_ms,
                        'status_code': response.status_code
                    }

                last_exception = f"HTTP {response.status_code}"
                logger.warning(f"⚠️ RAZORPAY: HTTP {response.status_code} on attempt {attempt + 1}")

            except requests.exceptions.Timeout:
                last_exception = f"Timeout after {self.timeout}s"
                logger.warning(f"⏰ RAZORPAY: Timeout on attempt {attempt + 1}")

            except requests.exceptions.ConnectionError:
                last_exception = "Connection error"
                logger.warning(f"🔌 RAZORPAY: Connection error on attempt {attempt + 1}")

            if attempt < self.retry_attempts - 1:
                time.sleep(2 ** attempt)

        duration_ms = int((time.time() - start_time) * 1000)
        return {
            'success': False,
            'error': f"All {self.retry_attempts} attempts failed. Last error: {last_exception}",
            'duration_ms': duration_ms,
            'status_code': 0
        }

    def log_transaction(self, transaction_type: str, result: Dict[str, Any],
                        request_data: Dict = None, booking=None, reference: str = ""):
        """Log provider call for audit and debugging"""
        response_data = result.get('data') if result.get('success') else {'error': result.get('error')}
        PaymentTransaction.objects.create(
            booking=booking,
            transaction_type=transaction_type,
            reference=reference,
            request_data=request_data or {},
            response_data=response_data if isinstance(response_data, dict) else {'raw': str(response_data)},
            is_successful=bool(result.get('success')),
            error_message='' if result.get('success') else str(result.get('error', '')),
            duration_ms=result.get('duration_ms'),
        )

    # ------------------------------------------------------------------
    # Orders and payments
    # ------------------------------------------------------------------

    def create_order(self, booking) -> Dict[str, Any]:
        """Create a Razorpay order for the booking total."""
        payload = {
            'amount': to_paise(booking.total_amount),
            'currency': booking.currency,
            'receipt': booking.code,
            'payment_capture': 1,
            'notes': {'bookingId': str(booking.id)},
        }
        result = self._make_request('POST', 'orders', payload)
        self.log_transaction(
            'create_order', result, request_data=payload, booking=booking,
            reference=(result.get('data') or {}).get('id', '') if result['success'] else ''
        )

        if not result['success']:
            raise PaymentServiceException(f"Could not create Razorpay order: {result['error']}")

        logger.info(f"💳 [PAYMENT] Razorpay order {result['data'].get('id')} created for {booking.code}")
        return result['data']

    def fetch_payment(self, payment_id: str, booking=None) -> Dict[str, Any]:
        """
        Fetch a payment from Razorpay.

        Returns the raw payment plus ``amount_rupees`` (the captured amount
        to hand to the ledger as the verified amount).
        """
        result = self._make_request('GET', f'payments/{payment_id}')
        self.log_transaction('fetch_payment', result, booking=booking, reference=payment_id)

        if not result['success']:
            raise PaymentServiceException(f"Could not fetch Razorpay payment {payment_id}: {result['error']}")

        payment = dict(result['data'])
        payment['amount_rupees'] = from_paise(payment.get('amount', 0))
        return payment

    @staticmethod
    def payment_mismatch(payment: Dict[str, Any], order_id: str, booking) -> Optional[str]:
        """
        Check that a fetched payment is captured and belongs to this order and booking.

        Returns an error code, or None when the payment may confirm the booking.
        Payments without a ``bookingId`` note are matched through the order we
        created for the booking.
        """
        if payment.get('status') != Payment.CAPTURED:
            return 'payment_not_captured'
        if payment.get('order_id') != order_id:
            return 'order_mismatch'

        noted_booking = (payment.get('notes') or {}).get('bookingId')
        if noted_booking:
            return None if noted_booking == str(booking.id) else 'booking_mismatch'

        ordered_here = PaymentTransaction.objects.filter(
            transaction_type='create_order', reference=order_id, booking=booking, is_successful=True
        ).exists()
        return None if ordered_here else 'booking_mismatch'

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    @staticmethod
    def _hmac_hex(secret: str, message: bytes) -> str:
        return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()

    def verify_checkout_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Checkout handler signature: HMAC-SHA256(key_secret, "order_id|payment_id")."""
        if not (order_id and payment_id and signature and self.key_secret):
            return False
        expected = self._hmac_hex(self.key_secret, f"{order_id}|{payment_id}".encode('utf-8'))
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, body: bytes, signature: str) -> bool:
        """Webhook signature: HMAC-SHA256(webhook_secret, raw request body)."""
        if not (signature and self.webhook_secret):
            return False
        if isinstance(body, str):
            body = body.encode('utf-8')
        expected = self._hmac_hex(self.webhook_secret, body)
        return hmac.compare_digest(expected, signature)


def handle_webhook_event(event: Dict[str, Any], ledger=None) -> Dict[str, Any]:
    """
    🚀 ENTERPRISE: Apply a verified Razorpay webhook event to the booking ledger.

    ``payment.captured`` confirms the booking named in the payment notes
    (duplicate provider payment ids are ignored); ``payment.failed`` releases
    it. Anything else is acknowledged and ignored.
    """
    if ledger is None:
        from apps.events.services.ledger import ledger

    event_type = event.get('event', '')
    entity = ((event.get('payload') or {}).get('payment') or {}).get('entity') or {}
    payment_id = entity.get('id', '')
    booking_id = (entity.get('notes') or {}).get('bookingId')

    PaymentTransaction.objects.create(
        transaction_type='webhook',
        reference=payment_id,
        request_data={'event': event_type, 'bookingId': booking_id},
        response_data=entity if isinstance(entity, dict) else {},
        is_successful=True,
    )

    if event_type not in ('payment.captured', 'payment.failed'):
        logger.info(f"🔔 [WEBHOOK] Ignoring Razorpay event {event_type}")
        return {'status': 'ignored', 'event': event_type}

    if not booking_id:
        logger.warning(f"🔔 [WEBHOOK] {event_type} for payment {payment_id} has no bookingId note")
        return {'status': 'ignored', 'event': event_type, 'reason': 'missing_booking_id'}

    if event_type == 'payment.captured':
        if Payment.objects.filter(provider_payment_id=payment_id).exists():
            logger.info(f"🔔 [WEBHOOK] Payment {payment_id} already recorded, skipping")
            return {'status': 'duplicate', 'event': event_type}

        result = ledger.confirm(
            booking_id,
            payment_ref=payment_id,
            verified_amount=from_paise(entity.get('amount', 0)),
            provider='razorpay',
            provider_status=Payment.CAPTURED,
            provider_order_id=entity.get('order_id') or '',
        )
    else:
        result = ledger.release(booking_id, reason='payment_failed')

    logger.info(
        f"🔔 [WEBHOOK] {event_type} for booking {booking_id}: "
        f"{'ok' if result.ok else result.error_code}"
    )
    return {
        'status': 'processed' if result.ok else 'rejected',
        'event': event_type,
        'error': result.error_code if not result.ok else None,
    }


def parse_webhook_body(body: bytes) -> Dict[str, Any]:
    try:
        return json.loads(body.decode('utf-8') if isinstance(body, bytes) else body)
    except (ValueError, UnicodeDecodeError) as e:
        raise PaymentServiceException(f"Malformed webhook payload: {e}")
