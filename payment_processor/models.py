"""
🚀 ENTERPRISE PAYMENT PROCESSOR MODELS
Razorpay payments for EventHive bookings, with a per-call audit log.
"""

from django.db import models
from core.models import BaseModel


class Payment(BaseModel):
    """
    🚀 ENTERPRISE: Verified payment backing a confirmed booking.

    Created by the reservation ledger when it confirms a booking; at most one
    per booking, and a provider payment id can back only one booking.
    """
    CAPTURED = 'captured'
    FAILED = 'failed'
    REFUNDED = 'refunded'

    PAYMENT_STATUS = [
        (CAPTURED, 'Captured'),
        (FAILED, 'Failed'),
        (REFUNDED, 'Refunded'),
    ]

    PROVIDER_CHOICES = [
        ('razorpay', 'Razorpay'),
        ('manual', 'Manual'),
    ]

    booking = models.OneToOneField('events.Booking', on_delete=models.PROTECT, related_name='payment')
    provider = models.CharField(max_length=30, choices=PROVIDER_CHOICES, default='razorpay')
    provider_order_id = models.CharField(max_length=100, blank=True, db_index=True)
    provider_payment_id = models.CharField(max_length=100, unique=True, help_text="Provider's payment ID")

    # Financial data
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')

    status = models.CharField(max_length=20, choices=PAYMENT_STATUS, default=CAPTURED)
    captured_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='payment_pro_status_4f6e2a_idx'),
        ]

    def __str__(self):
        return f"Payment {self.provider_payment_id} - {self.status} - ₹{self.amount}"

    def is_successful(self):
        return self.status == self.CAPTURED


class PaymentTransaction(BaseModel):
    """
    🚀 ENTERPRISE: Individual provider call or webhook, logged for audit and debugging
    """
    TRANSACTION_TYPES = [
        ('create_order', 'Create Order'),
        ('verify', 'Checkout Verification'),
        ('fetch_payment', 'Fetch Payment'),
        ('webhook', 'Webhook Received'),
    ]

    booking = models.ForeignKey(
        'events.Booking', on_delete=models.SET_NULL, null=True, blank=True, related_name='payment_transactions'
    )
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    reference = models.CharField(max_length=100, blank=True, help_text="Provider order or payment ID")

    # Request/Response data for debugging
    request_data = models.JSONField(default=dict)
    response_data = models.JSONField(default=dict)

    # Status
    is_successful = models.BooleanField(default=False)
    error_message = models.TextField(blank=True)

    # Timing
    duration_ms = models.IntegerField(null=True, blank=True, help_text="Request duration in milliseconds")

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['transaction_type', 'created_at'], name='payment_pro_transac_9b1c7d_idx'),
        ]

    def __str__(self):
        status = "✅" if self.is_successful else "❌"
        return f"{status} {self.transaction_type} - {self.reference}"
