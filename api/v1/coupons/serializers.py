"""Serializers for the coupons API."""

from rest_framework import serializers

from apps.events.models import Coupon, Event
from apps.users.models import Role, has_role


class CouponSerializer(serializers.ModelSerializer):
    """Organizer-facing coupon serializer."""

    remaining_uses = serializers.IntegerField(read_only=True)
    is_global = serializers.BooleanField(read_only=True)

    class Meta:
        model = Coupon
        fields = [
            'id', 'code', 'description', 'event', 'percent_off', 'amount_off',
            'max_usage', 'used_count', 'remaining_uses', 'is_global',
            'valid_from', 'valid_until', 'created_at',
        ]
        read_only_fields = ['id', 'used_count', 'remaining_uses', 'is_global', 'created_at']

    def validate_code(self, value):
        code = value.strip().upper()
        if not code:
            raise serializers.ValidationError("Coupon code is required.")
        duplicates = Coupon.objects.filter(code=code)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError("A coupon with this code already exists.")
        return code

    def validate_event(self, event):
        user = self.context['request'].user
        if event is None:
            if not has_role(user, Role.ADMIN):
                raise serializers.ValidationError("Only admins can create global coupons.")
            return event
        if event.organizer_id != user.pk and not has_role(user, Role.ADMIN):
            raise serializers.ValidationError("You can only create coupons for your own events.")
        return event

    def validate(self, attrs):
        # validate_event() is skipped when the field is omitted.
        event = attrs.get('event', getattr(self.instance, 'event', None))
        if event is None and not has_role(self.context['request'].user, Role.ADMIN):
            raise serializers.ValidationError({'event': "Only admins can create global coupons."})

        percent_off = attrs.get('percent_off', getattr(self.instance, 'percent_off', None))
        amount_off = attrs.get('amount_off', getattr(self.instance, 'amount_off', None))
        if (percent_off is None) == (amount_off is None):
            raise serializers.ValidationError("Set exactly one of percent_off or amount_off.")

        valid_from = attrs.get('valid_from', getattr(self.instance, 'valid_from', None))
        valid_until = attrs.get('valid_until', getattr(self.instance, 'valid_until', None))
        if valid_from and valid_until and valid_from > valid_until:
            raise serializers.ValidationError({'valid_until': "Coupon cannot expire before it starts."})

        max_usage = attrs.get('max_usage')
        if self.instance is not None and max_usage is not None and max_usage < self.instance.used_count:
            raise serializers.ValidationError({'max_usage': "Cannot be lower than the current usage."})
        return attrs


class QuoteSerializer(serializers.Serializer):
    """Price preview request; nothing is reserved."""

    eventId = serializers.UUIDField()
    ticketTierId = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    couponCode = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
