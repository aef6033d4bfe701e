from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.events.services import loyalty
from apps.events.tests.helpers import make_user, make_event, make_tier, make_confirmed_booking


class AuthApiTests(APITestCase):
    def test_register_and_login(self):
        response = self.client.post(reverse('register'), {
            'email': 'New.Fan@EventHive.test',
            'first_name': 'New',
            'last_name': 'Fan',
            'password': 'correct-horse-42',
            'password_confirm': 'correct-horse-42',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], 'Attendee')
        user = get_user_model().objects.get(email='new.fan@eventhive.test')
        self.assertEqual(user.username, 'new.fan')

        login = self.client.post(reverse('token_obtain_pair'), {
            'email': 'new.fan@eventhive.test',
            'password': 'correct-horse-42',
        }, format='json')
        self.assertEqual(login.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")
        me = self.client.get(reverse('user_profile'))
        self.assertEqual(me.data['email'], 'new.fan@eventhive.test')

    def test_bad_credentials(self):
        make_user()
        response = self.client.post(reverse('token_obtain_pair'), {
            'email': 'attendee@eventhive.test',
            'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_password_mismatch(self):
        response = self.client.post(reverse('register'), {
            'email': 'x@eventhive.test',
            'first_name': 'X',
            'password': 'correct-horse-42',
            'password_confirm': 'correct-horse-43',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class LoyaltyApiTests(APITestCase):
    def test_balance_and_history(self):
        user = make_user()
        booking = make_confirmed_booking(user, make_tier(make_event(), price='300.00'), quantity=1)
        loyalty.adjust_points(user, 5)
        self.client.force_authenticate(user)

        response = self.client.get(reverse('loyalty'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['balance'], 35)
        codes = [entry['booking_code'] for entry in response.data['transactions']]
        self.assertIn(booking.code, codes)
        self.assertIn(None, codes)
