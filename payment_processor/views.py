"""
🚀 ENTERPRISE PAYMENT VIEWS
Razorpay order creation, checkout verification and webhook endpoints.
"""

from rest_framework import status, permissions
from rest_framework.views import APIView
from rest_framework.response import Response
import logging

from apps.events.models import Booking
from apps.events.services.ledger import ledger
from .models import Payment
from .serializers import CreateOrderSerializer, VerifyPaymentSerializer, PaymentSerializer
from .services import (
    RazorpayService, PaymentServiceException, handle_webhook_event, parse_webhook_body
)

logger = logging.getLogger(__name__)
fraud_logger = logging.getLogger('eventhive.fraud')


def _get_own_booking(request, booking_id):
    """Bookings are only payable by their owner."""
    try:
        return Booking.objects.select_related('event').get(id=booking_id, user=request.user)
    except Booking.DoesNotExist:
        return None


class CreateOrderView(APIView):
    """
    🚀 ENTERPRISE: Create a Razorpay order for a pending booking
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        booking = _get_own_booking(request, serializer.validated_data['booking_id'])
        if booking is None:
            return Response({'success': False, 'error': 'booking_not_found'}, status=status.HTTP_404_NOT_FOUND)

        if not booking.is_pending or booking.is_expired:
            return Response({
                'success': False,
                'error': 'invalid_booking_state',
                'detail': f'Booking is {booking.status} and cannot be paid.'
            }, status=status.HTTP_409_CONFLICT)

        service = RazorpayService()
        try:
            order = service.create_order(booking)
        except PaymentServiceException as e:
            logger.error(f"💥 PAYMENT SERVICE ERROR: {str(e)}")
            return Response({
                'success': False,
                'error': 'payment_provider_error'
            }, status=status.HTTP_502_BAD_GATEWAY)

        return Response({
            'success': True,
            'order': order,
            'keyId': service.key_id,
            'bookingId': str(booking.id),
            'bookingCode': booking.code,
        }, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    """
    🚀 ENTERPRISE: Verify the Razorpay checkout signature and confirm the booking
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        service = RazorpayService()

        if not service.verify_checkout_signature(
            data['razorpay_order_id'], data['razorpay_payment_id'], data['razorpay_signature']
        ):
            fraud_logger.warning(f"🚨 PAYMENT: Invalid checkout signature for booking {data['booking_id']}")
            return Response({'success': False, 'error': 'invalid_signature'}, status=status.HTTP_400_BAD_REQUEST)

        booking = _get_own_booking(request, data['booking_id'])
        if booking is None:
            return Response({'success': False, 'error': 'booking_not_found'}, status=status.HTTP_404_NOT_FOUND)

        try:
            payment = service.fetch_payment(data['razorpay_payment_id'], booking=booking)
        except PaymentServiceException as e:
            logger.error(f"💥 PAYMENT SERVICE ERROR: {str(e)}")
            return Response({'success': False, 'error': 'payment_provider_error'}, status=status.HTTP_502_BAD_GATEWAY)

        mismatch = service.payment_mismatch(payment, data['razorpay_order_id'], booking)
        if mismatch:
            fraud_logger.warning(
                f"🚨 PAYMENT: {mismatch} for booking {booking.code}: payment {data['razorpay_payment_id']} "
                f"status={payment.get('status')} order={payment.get('order_id')} "
                f"notes={payment.get('notes') or {}}"
            )
            mismatch_status = (
                status.HTTP_409_CONFLICT if mismatch == 'payment_not_captured'
                else status.HTTP_400_BAD_REQUEST
            )
            return Response({'success': False, 'error': mismatch}, status=mismatch_status)

        result = ledger.confirm(
            booking.id,
            payment_ref=data['razorpay_payment_id'],
            verified_amount=payment['amount_rupees'],
            provider='razorpay',
            provider_status=payment.get('status') or Payment.CAPTURED,
            provider_order_id=data['razorpay_order_id'],
        )

        if not result.ok:
            return Response(
                {'success': False, **result.error.as_dict()},
                status=result.error.http_status
            )

        return Response({
            'success': True,
            'message': 'Payment verified successfully',
            'alreadyConfirmed': result.already_confirmed,
            'bookingId': str(result.booking.id),
            'bookingCode': result.booking.code,
            'payment': PaymentSerializer(result.booking.payment).data,
        }, status=status.HTTP_200_OK)


class RazorpayWebhookView(APIView):
    """
    🚀 ENTERPRISE: Razorpay webhook receiver, authenticated by body signature
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        body = request.body
        signature = request.headers.get('X-Razorpay-Signature', '')

        if not RazorpayService().verify_webhook_signature(body, signature):
            fraud_logger.warning("🚨 WEBHOOK: Invalid Razorpay signature")
            return Response({'success': False, 'error': 'invalid_signature'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            event = parse_webhook_body(body)
        except PaymentServiceException as e:
            logger.warning(f"🚨 WEBHOOK: {e}")
            return Response({'success': False, 'error': 'invalid_payload'}, status=status.HTTP_400_BAD_REQUEST)

        outcome = handle_webhook_event(event)
        return Response({'success': True, **outcome}, status=status.HTTP_200_OK)
