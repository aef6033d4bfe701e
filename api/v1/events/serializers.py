"""Serializers for the events API."""

from rest_framework import serializers

from apps.events.models import Event, TicketTier
from api.v1.bookings.serializers import BookingSerializer


class TicketTierSerializer(serializers.ModelSerializer):
    """Ticket tier with live availability; ``total_sold`` is owned by the ledger."""

    remaining = serializers.IntegerField(read_only=True)
    is_sold_out = serializers.BooleanField(read_only=True)

    class Meta:
        model = TicketTier
        fields = [
            'id', 'event', 'name', 'price', 'max_quantity', 'total_sold',
            'remaining', 'is_sold_out', 'sale_start', 'sale_end',
        ]
        read_only_fields = ['id', 'event', 'total_sold', 'remaining', 'is_sold_out']

    def validate_max_quantity(self, value):
        if value < 1:
            raise serializers.ValidationError("A tier needs at least one ticket.")
        if self.instance is not None and value < self.instance.total_sold:
            raise serializers.ValidationError(
                f"{self.instance.total_sold} tickets are already sold or held; capacity cannot go below that."
            )
        return value

    def validate(self, attrs):
        sale_start = attrs.get('sale_start', getattr(self.instance, 'sale_start', None))
        sale_end = attrs.get('sale_end', getattr(self.instance, 'sale_end', None))
        if sale_start and sale_end and sale_start > sale_end:
            raise serializers.ValidationError({'sale_end': "Sales cannot end before they start."})
        return attrs

    def update(self, instance, validated_data):
        # Never write total_sold back from this (possibly stale) instance.
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*validated_data, 'updated_at'])
        return instance


class EventSerializer(serializers.ModelSerializer):
    """Event with its ticket tiers. Status moves through the publish/cancel actions."""

    organizer_name = serializers.SerializerMethodField()
    ticket_tiers = TicketTierSerializer(many=True, read_only=True)

    class Meta:
        model = Event
        fields = [
            'id', 'title', 'slug', 'description', 'location', 'status',
            'start_at', 'end_at', 'organizer', 'organizer_name', 'ticket_tiers',
        ]
        read_only_fields = ['id', 'slug', 'status', 'organizer', 'organizer_name', 'ticket_tiers']

    def get_organizer_name(self, obj) -> str:
        return obj.organizer.get_full_name() or obj.organizer.email

    def validate(self, attrs):
        start_at = attrs.get('start_at', getattr(self.instance, 'start_at', None))
        end_at = attrs.get('end_at', getattr(self.instance, 'end_at', None))
        if start_at and end_at and end_at < start_at:
            raise serializers.ValidationError({'end_at': "Event cannot end before it starts."})
        return attrs


class EventBookingSerializer(BookingSerializer):
    """Booking as seen by the event's organizer."""

    attendee_email = serializers.EmailField(source='user.email', read_only=True)
    attendee_name = serializers.CharField(source='user.get_full_name', read_only=True)
    ticket_tier_price = serializers.DecimalField(
        source='ticket_tier.price', max_digits=10, decimal_places=2, read_only=True
    )

    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + ['attendee_email', 'attendee_name', 'ticket_tier_price']
        read_only_fields = fields
