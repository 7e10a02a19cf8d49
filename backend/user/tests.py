from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from locations.models import Location
from .backends import AdminCredentialsBackend, password_matches

User = get_user_model()


@override_settings(ADMIN_USERNAME='curator', ADMIN_PASSWORD='lekker-secret')
class AdminCredentialsBackendTests(TestCase):
    def setUp(self):
        self.backend = AdminCredentialsBackend()

    def test_valid_credentials_create_staff_user(self):
        user = self.backend.authenticate(None, username='curator', password='lekker-secret')
        self.assertIsNotNone(user)
        self.assertTrue(user.is_staff)
        self.assertFalse(user.has_usable_password())
        self.assertEqual(self.backend.get_user(user.pk), user)

    def test_wrong_credentials(self):
        self.assertIsNone(self.backend.authenticate(None, username='curator', password='nope'))
        self.assertIsNone(self.backend.authenticate(None, username='someone', password='lekker-secret'))
        self.assertFalse(User.objects.exists())

    @override_settings(ADMIN_PASSWORD=None)
    def test_unconfigured_password_never_matches(self):
        self.assertIsNone(self.backend.authenticate(None, username='curator', password=''))

    def test_hashed_password(self):
        hashed = make_password('lekker-secret')
        self.assertTrue(password_matches('lekker-secret', hashed))
        self.assertFalse(password_matches('wrong', hashed))
        self.assertTrue(password_matches('plain', 'plain'))


@override_settings(ADMIN_USERNAME='curator', ADMIN_PASSWORD='lekker-secret', INDEXNOW_API_KEY=None)
class AuthAPITests(APITestCase):
    def setUp(self):
        self.login_url = reverse('login')
        self.logout_url = reverse('logout')
        self.user_url = reverse('current-user')

    def test_login_logout_cycle(self):
        response = self.client.post(
            self.login_url, {'username': 'curator', 'password': 'lekker-secret'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'curator')

        response = self.client.get(self.user_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'curator')

        response = self.client.post(self.logout_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(self.user_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_credentials(self):
        response = self.client.post(
            self.login_url, {'username': 'curator', 'password': 'guess'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'message': 'Invalid credentials'})

    def test_missing_fields(self):
        response = self.client.post(self.login_url, {'username': 'curator'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_anonymous_current_user(self):
        response = self.client.get(self.user_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_create_location_end_to_end(self):
        """401 without a session, 201 with one, and the new location is reachable by its slug."""
        locations_url = reverse('locations:location-list')
        payload = {
            'name': 'Cause Effect',
            'category': 'Bar',
            'neighborhood': 'CBD',
            'description': 'Cocktail bar',
            'latitude': '-33.9221',
            'longitude': '18.4231',
            'tags': ['Cocktails', 'Nightlife'],
        }

        response = self.client.post(locations_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.post(self.login_url, {'username': 'curator', 'password': 'lekker-secret'}, format='json')
        response = self.client.post(reverse('locations:category-list'), {'name': 'Bar'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(locations_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        slug_url = reverse('locations:location-by-slug', kwargs={'slug': response.data['slug']})
        response = self.client.get(slug_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Cause Effect')
        self.assertEqual(Location.objects.count(), 1)

        search = self.client.get(reverse('locations:location-search'), {'q': 'cause'})
        self.assertEqual([item['slug'] for item in search.data], ['cause-effect'])
        tags = self.client.get(reverse('locations:popular-tags'))
        self.assertIn({'tag': 'Cocktails', 'count': 1}, tags.data)
