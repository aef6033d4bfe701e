"""Loyalty balance and history of the current user."""

from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.events.models import LoyaltyTransaction
from apps.events.services.loyalty import get_summary


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    booking_code = serializers.CharField(source='booking.code', read_only=True, default=None)

    class Meta:
        model = LoyaltyTransaction
        fields = ['id', 'points', 'reason', 'booking_code', 'created_at']
        read_only_fields = fields


class LoyaltyView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        summary = get_summary(request.user)
        return Response({
            'success': True,
            'balance': summary['balance'],
            'transactions': LoyaltyTransactionSerializer(summary['transactions'], many=True).data,
        }, status=status.HTTP_200_OK)
