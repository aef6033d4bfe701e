from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.events.models import Booking
from apps.events.services.ledger import ledger
from apps.events.tests.helpers import make_user, make_event, make_tier, make_coupon
from apps.users.models import Role


class BookingApiTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.event = make_event()
        self.tier = make_tier(self.event, price='500.00', max_quantity=8)
        self.client.force_authenticate(self.user)

    def reserve(self, quantity, **extra):
        return self.client.post(reverse('booking-list'), {
            'eventId': str(self.event.id),
            'ticketTierId': str(self.tier.id),
            'quantity': quantity,
            **extra,
        }, format='json')

    def test_reserve(self):
        make_coupon('FLAT100', event=self.event, amount_off='100.00')

        response = self.reserve(5, couponCode='flat100')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertTrue(response.data['bookingCode'].startswith('BH-'))
        self.assertEqual(Decimal(response.data['pricing']['totalAmount']), Decimal('2025'))

    def test_reserve_errors_are_typed(self):
        too_many = self.reserve(11)
        self.assertEqual(too_many.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(too_many.data['error'], 'invalid_quantity')

        self.reserve(8)
        sold_out = self.reserve(1)
        self.assertEqual(sold_out.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(sold_out.data['error'], 'insufficient_inventory')

        malformed = self.client.post(reverse('booking-list'), {'quantity': 1}, format='json')
        self.assertEqual(malformed.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('eventId', malformed.data['errors'])

    def test_list_only_own_bookings(self):
        mine = self.reserve(1).data['bookingId']
        ledger.reserve(make_user('other@eventhive.test'), self.event.id, self.tier.id, 1)

        response = self.client.get(reverse('booking-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(str(response.data['results'][0]['id']), mine)

    def test_release_own_booking(self):
        booking_id = self.reserve(3).data['bookingId']

        response = self.client.post(reverse('booking-release', args=[booking_id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'CANCELLED')
        self.assertEqual(Booking.objects.get(id=booking_id).cancellation_reason, 'cancelled_by_user')
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 0)

    def test_cannot_release_someone_elses_booking(self):
        other = ledger.reserve(make_user('other@eventhive.test'), self.event.id, self.tier.id, 1).booking
        response = self.client.post(reverse('booking-release', args=[other.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_refund_is_admin_only(self):
        booking = ledger.reserve(self.user, self.event.id, self.tier.id, 2).booking
        ledger.confirm(booking.id, 'pay_1', booking.total_amount)
        url = reverse('booking-refund', args=[booking.id])

        self.assertEqual(self.client.post(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(make_user('admin@eventhive.test', role=Role.ADMIN))
        response = self.client.post(url, {'reason': 'duplicate purchase'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'REFUNDED')
        self.tier.refresh_from_db()
        self.assertEqual(self.tier.total_sold, 2)

    def test_anonymous_cannot_reserve(self):
        self.client.force_authenticate(None)
        self.assertEqual(self.reserve(1).status_code, status.HTTP_401_UNAUTHORIZED)
