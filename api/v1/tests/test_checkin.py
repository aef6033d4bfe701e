from datetime import timedelta
from unittest import mock

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.events.qr_generator import issue_ticket_token
from apps.events.tests.helpers import make_user, make_event, make_tier, make_confirmed_booking
from apps.users.models import Role


class CheckInApiTests(APITestCase):
    def setUp(self):
        self.event = make_event(start_at=timezone.now() + timedelta(minutes=30))
        self.tier = make_tier(self.event)
        self.booking = make_confirmed_booking(make_user(), self.tier, quantity=2)
        self.volunteer = make_user('door@eventhive.test', role=Role.VOLUNTEER)
        self.url = reverse('checkin')

    def test_volunteer_scans_ticket(self):
        self.client.force_authenticate(self.volunteer)

        response = self.client.post(self.url, {'token': issue_ticket_token(self.booking)}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['booking']['bookingCode'], self.booking.code)

        again = self.client.post(self.url, {'bookingId': str(self.booking.id)}, format='json')
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data['error'], 'already_checked_in')

    def test_attendees_cannot_scan(self):
        self.client.force_authenticate(make_user('guest@eventhive.test'))
        response = self.client.post(self.url, {'bookingId': str(self.booking.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_outside_window(self):
        self.client.force_authenticate(self.volunteer)
        later = timezone.now() + timedelta(hours=5)
        with mock.patch('apps.events.services.checkin.timezone.now', return_value=later):
            response = self.client.post(self.url, {'bookingId': str(self.booking.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'check_in_window_closed')

    def test_empty_request(self):
        self.client.force_authenticate(self.volunteer)
        self.assertEqual(self.client.post(self.url, {}, format='json').status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats(self):
        self.client.force_authenticate(self.volunteer)
        self.client.post(self.url, {'bookingId': str(self.booking.id)}, format='json')

        response = self.client.get(self.url, {'eventId': str(self.event.id)})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stats']['checkedInBookings'], 1)
        self.assertEqual(response.data['stats']['checkInRate'], 100.0)
