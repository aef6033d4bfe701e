from rest_framework import serializers


class CheckInSerializer(serializers.Serializer):
    """Either the scanned ticket token or a booking id typed in at the door."""

    token = serializers.CharField(required=False, allow_blank=True)
    bookingId = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('token') and not attrs.get('bookingId'):
            raise serializers.ValidationError("Provide a ticket token or a booking id.")
        return attrs
