"""
🚀 ENTERPRISE PAYMENT SERIALIZERS
Request/response serializers for the Razorpay payment API.
"""

from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """Serializer for recorded payments"""

    booking_code = serializers.CharField(source='booking.code', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'booking', 'booking_code', 'provider', 'provider_order_id',
            'provider_payment_id', 'amount', 'currency', 'status', 'captured_at', 'created_at'
        ]
        read_only_fields = fields


class CreateOrderSerializer(serializers.Serializer):
    """
    🚀 ENTERPRISE: Serializer for creating a Razorpay order for a pending booking
    """
    booking_id = serializers.UUIDField()


class VerifyPaymentSerializer(serializers.Serializer):
    """Razorpay checkout handler payload"""

    razorpay_order_id = serializers.CharField(max_length=100)
    razorpay_payment_id = serializers.CharField(max_length=100)
    razorpay_signature = serializers.CharField(max_length=128)
    booking_id = serializers.UUIDField()
