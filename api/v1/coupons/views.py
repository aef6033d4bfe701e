"""Views for the coupons API."""

import logging

from django.db.models import Q
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from apps.events.exceptions import BookingError
from apps.events.models import Coupon
from apps.events.services import catalog
from apps.events.services.pricing import calculate_price
from apps.users.models import Role, has_role
from core.permissions import IsOrganizer
from .serializers import CouponSerializer, QuoteSerializer

logger = logging.getLogger(__name__)


class CouponViewSet(viewsets.ModelViewSet):
    """
    API endpoint for coupons.

    Organizers manage coupons for their own events; admins see everything
    and may create global coupons. ``quote`` is public.
    """
    serializer_class = CouponSerializer
    permission_classes = [IsAuthenticated, IsOrganizer]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['code', 'description']
    ordering_fields = ['code', 'used_count', 'valid_until', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = Coupon.objects.select_related('event')
        user = self.request.user
        if has_role(user, Role.ADMIN):
            return queryset
        return queryset.filter(Q(event__organizer=user) | Q(created_by=user))

    def perform_create(self, serializer):
        coupon = serializer.save(created_by=self.request.user)
        logger.info(f"🎟️ [COUPON] {coupon.code} created by user {self.request.user.pk}")

    def destroy(self, request, *args, **kwargs):
        coupon = self.get_object()
        if coupon.bookings.exists():
            return Response({
                'success': False,
                'error': 'coupon_in_use',
                'detail': 'This coupon has bookings; expire it instead of deleting it.'
            }, status=status.HTTP_409_CONFLICT)
        return super().destroy(request, *args, **kwargs)

    @action(detail=False, methods=['post'], permission_classes=[AllowAny])
    def quote(self, request):
        """Price preview for a tier, quantity and optional coupon."""
        serializer = QuoteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            tier = catalog.check_availability(data['eventId'], data['ticketTierId'], data['quantity'])
            pricing = calculate_price(
                tier.price,
                data['quantity'],
                coupon_code=data.get('couponCode') or None,
                event_id=tier.event_id,
            )
        except BookingError as exc:
            return Response({'success': False, **exc.as_dict()}, status=exc.http_status)

        return Response({'success': True, 'pricing': pricing.as_dict()}, status=status.HTTP_200_OK)
