"""Views for the events API."""

import logging

from django.db.models import Q
from django.utils import timezone
from rest_framework import viewsets, mixins, permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.events.models import Booking, Event, TicketTier
from apps.users.models import Role, has_role
from core.permissions import IsOrganizer
from .serializers import EventSerializer, TicketTierSerializer, EventBookingSerializer

logger = logging.getLogger(__name__)

PUBLIC_ACTIONS = ('list', 'retrieve')


class EventViewSet(viewsets.ModelViewSet):
    """
    API endpoint for events.

    Anyone can browse published events and their ticket tiers. Organizers
    create events as drafts, add tiers, publish or cancel them and list the
    bookings of their own events; admins can do this for every event.
    Events are cancelled, never deleted.
    """
    serializer_class = EventSerializer
    permission_classes = [permissions.IsAuthenticated, IsOrganizer]
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = Event.objects.select_related('organizer').prefetch_related('ticket_tiers')
        user = self.request.user

        if self.action == 'list':
            queryset = queryset.filter(status=Event.PUBLISHED, start_at__gte=timezone.now())
            location = self.request.query_params.get('location')
            if location:
                queryset = queryset.filter(location__icontains=location)
            return queryset

        if self.action == 'retrieve':
            # Organizers can open their own drafts; everyone else sees published events.
            if user.is_authenticated and has_role(user, Role.ADMIN):
                return queryset
            if user.is_authenticated:
                return queryset.filter(Q(status=Event.PUBLISHED) | Q(organizer=user))
            return queryset.filter(status=Event.PUBLISHED)

        if has_role(user, Role.ADMIN):
            return queryset
        return queryset.filter(organizer=user)

    def perform_create(self, serializer):
        event = serializer.save(organizer=self.request.user, status=Event.DRAFT)
        logger.info(f"📅 [EVENTS] Event {event.slug} created by user {self.request.user.pk}")

    @action(detail=False, methods=['get'])
    def organizer(self, request):
        """Events of the current organizer in every status (all events for admins)."""
        events = self.get_queryset().order_by('-start_at')
        status_filter = request.query_params.getlist('status')
        if status_filter:
            events = events.filter(status__in=status_filter)

        page = self.paginate_queryset(events)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(events, many=True).data)

    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        event = self.get_object()

        if event.status != Event.DRAFT:
            return Response({
                'success': False,
                'error': 'invalid_event_state',
                'detail': f'Only draft events can be published; this one is {event.status}.'
            }, status=status.HTTP_409_CONFLICT)

        if not event.ticket_tiers.exists():
            return Response({
                'success': False,
                'error': 'no_ticket_tiers',
                'detail': 'Add at least one ticket tier before publishing.'
            }, status=status.HTTP_400_BAD_REQUEST)

        event.status = Event.PUBLISHED
        event.save(update_fields=['status', 'updated_at'])
        logger.info(f"📅 [EVENTS] Event {event.slug} published")

        return Response({'status': Event.PUBLISHED, 'message': 'Event published.'})

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        event = self.get_object()

        if event.status == Event.CANCELLED:
            return Response({'status': Event.CANCELLED, 'message': 'Event was already cancelled.'})

        event.status = Event.CANCELLED
        event.save(update_fields=['status', 'updated_at'])
        logger.warning(
            f"📅 [EVENTS] Event {event.slug} cancelled by user {request.user.pk} "
            f"with {event.bookings.filter(status=Booking.CONFIRMED).count()} confirmed bookings"
        )

        return Response({'status': Event.CANCELLED, 'message': 'Event cancelled.'})

    @action(detail=True, methods=['post'])
    def tiers(self, request, pk=None):
        """Add a ticket tier to the event."""
        event = self.get_object()

        serializer = TicketTierSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        tier = serializer.save(event=event)
        logger.info(f"📅 [EVENTS] Tier '{tier.name}' x{tier.max_quantity} added to {event.slug}")
        return Response(TicketTierSerializer(tier).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def bookings(self, request, pk=None):
        """Bookings for the event, newest first; ``?status=`` narrows them."""
        event = self.get_object()

        bookings = (
            Booking.objects.filter(event=event)
            .select_related('user', 'event', 'ticket_tier', 'coupon', 'check_in')
            .order_by('-created_at')
        )
        status_filter = request.query_params.getlist('status')
        if status_filter:
            bookings = bookings.filter(status__in=status_filter)

        page = self.paginate_queryset(bookings)
        if page is not None:
            return self.get_paginated_response(EventBookingSerializer(page, many=True).data)
        return Response(EventBookingSerializer(bookings, many=True).data)


class TicketTierViewSet(mixins.ListModelMixin,
                        mixins.RetrieveModelMixin,
                        mixins.UpdateModelMixin,
                        viewsets.GenericViewSet):
    """
    Ticket tiers of the organizer's events.

    Tiers are created through ``events/{id}/tiers/``. They cannot be
    deleted once created because bookings reference them.
    """
    serializer_class = TicketTierSerializer
    permission_classes = [permissions.IsAuthenticated, IsOrganizer]
    filterset_fields = ['event']

    def get_queryset(self):
        queryset = TicketTier.objects.select_related('event')
        user = self.request.user
        if has_role(user, Role.ADMIN):
            return queryset
        return queryset.filter(event__organizer=user)

    def perform_update(self, serializer):
        tier = serializer.save()
        logger.info(
            f"📅 [EVENTS] Tier {tier.id} updated by user {self.request.user.pk}: "
            f"price={tier.price} max={tier.max_quantity}"
        )
