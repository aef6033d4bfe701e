"""Venue check-in endpoints for scanning staff."""

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.events.exceptions import BookingError
from apps.events.models import Event
from apps.events.services.checkin import check_in, check_in_stats
from core.permissions import IsVolunteer
from .serializers import CheckInSerializer

logger = logging.getLogger(__name__)


class CheckInView(APIView):
    """
    POST: check a booking in (ticket token or booking id).
    GET ``?eventId=``: check-in statistics for an event.
    """
    permission_classes = [IsAuthenticated, IsVolunteer]

    def post(self, request):
        serializer = CheckInSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            record = check_in(
                booking_id=data.get('bookingId'),
                token=data.get('token') or None,
                scanner=request.user,
            )
        except BookingError as exc:
            return Response({'success': False, **exc.as_dict()}, status=exc.http_status)

        booking = record.booking
        return Response({
            'success': True,
            'message': 'Check-in successful',
            'booking': {
                'bookingId': str(booking.id),
                'bookingCode': booking.code,
                'eventTitle': booking.event.title,
                'quantity': booking.quantity,
                'attendee': booking.user.get_full_name() if booking.user else None,
                'checkedInAt': record.checked_in_at.isoformat(),
            }
        }, status=status.HTTP_201_CREATED)

    def get(self, request):
        event_id = request.query_params.get('eventId')
        if not event_id:
            return Response({'success': False, 'error': 'eventId is required'}, status=status.HTTP_400_BAD_REQUEST)

        event = get_object_or_404(Event, id=event_id)
        return Response({'success': True, 'stats': check_in_stats(event)}, status=status.HTTP_200_OK)
