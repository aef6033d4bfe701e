"""Views for the bookings API."""

import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.events.models import Booking
from apps.events.services.ledger import ledger
from core.permissions import IsAdmin
from .serializers import BookingSerializer, ReserveSerializer, RefundSerializer

logger = logging.getLogger(__name__)


def ledger_response(result, success_status=status.HTTP_200_OK):
    if result.ok:
        return Response(result.as_dict(), status=success_status)
    return Response({'success': False, **result.error.as_dict()}, status=result.error.http_status)


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Bookings of the current user.

    ``create`` reserves tickets (PENDING, held for a few minutes until
    payment); ``release`` gives up an unpaid booking; ``refund`` is admin-only.
    """

    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['status', 'event']

    def get_queryset(self):
        queryset = Booking.objects.select_related('event', 'ticket_tier', 'coupon', 'check_in')
        if self.action == 'refund':
            return queryset
        return queryset.filter(user=self.request.user)

    def create(self, request):
        """📦 BOOKING: Reserve tickets for the current user."""
        serializer = ReserveSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        result = ledger.reserve(
            request.user,
            data['eventId'],
            data['ticketTierId'],
            data['quantity'],
            coupon_code=data.get('couponCode') or None,
        )
        return ledger_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def release(self, request, pk=None):
        booking = self.get_object()
        result = ledger.release(booking.id, reason='cancelled_by_user')
        return ledger_response(result)

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsAdmin])
    def refund(self, request, pk=None):
        booking = self.get_object()
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ledger.refund(booking.id, reason=serializer.validated_data['reason'])
        return ledger_response(result)
