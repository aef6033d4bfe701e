"""Serializers for the bookings API."""

from rest_framework import serializers

from apps.events.models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Read-only view of a booking and its persisted price breakdown."""

    event_title = serializers.CharField(source='event.title', read_only=True)
    ticket_tier_name = serializers.CharField(source='ticket_tier.name', read_only=True)
    coupon_code = serializers.CharField(source='coupon.code', read_only=True, default=None)
    is_checked_in = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'code', 'event', 'event_title', 'ticket_tier', 'ticket_tier_name',
            'quantity', 'status', 'currency', 'base_amount', 'group_discount_amount',
            'coupon_code', 'coupon_discount_amount', 'total_amount', 'expires_at',
            'confirmed_at', 'cancelled_at', 'refunded_at', 'is_checked_in', 'created_at',
        ]
        read_only_fields = fields


class ReserveSerializer(serializers.Serializer):
    """
    Reserve request: ``{eventId, ticketTierId, quantity, couponCode?}``.

    Quantity limits are enforced by the ledger so clients get the typed
    ``invalid_quantity`` error.
    """

    eventId = serializers.UUIDField()
    ticketTierId = serializers.UUIDField()
    quantity = serializers.IntegerField()
    couponCode = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)


class RefundSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
