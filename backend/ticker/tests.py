from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from .models import TickerItem
from .services import TickerService

User = get_user_model()


class TickerServiceTests(TestCase):
    def setUp(self):
        now = timezone.now()
        self.low = TickerItem.objects.create(title="Low", category='tips', priority='9')
        self.high = TickerItem.objects.create(title="High", category='featured', priority='80')
        self.expired = TickerItem.objects.create(
            title="Expired", category='events', priority='100',
            end_date=now - timedelta(days=1), is_active=True,
        )
        self.future = TickerItem.objects.create(
            title="Running", category='offers', priority='50',
            end_date=now + timedelta(days=1),
        )
        self.disabled = TickerItem.objects.create(
            title="Disabled", category='updates', priority='90', is_active=False,
        )

    def test_all_items_ordered_by_integer_priority(self):
        """Priority compares as a number, so '80' ranks above '9'."""
        titles = [item.title for item in TickerService.get_all_ticker_items()]
        self.assertEqual(titles, ["Expired", "Disabled", "High", "Running", "Low"])

    def test_expired_item_excluded_from_active(self):
        """An active item whose end date has passed is only in the full list."""
        active = list(TickerService.get_active_ticker_items())
        self.assertNotIn(self.expired, active)
        self.assertIn(self.expired, list(TickerService.get_all_ticker_items()))
        self.assertEqual(active, [self.high, self.future, self.low])

    def test_same_priority_newest_first(self):
        TickerItem.objects.create(title="Newer", category='tips', priority='9')
        titles = [item.title for item in TickerService.get_active_ticker_items()]
        self.assertLess(titles.index("Newer"), titles.index("Low"))

    def test_priority_validated_on_model(self):
        """Admin edits go through full_clean, which rejects priorities the ordering cannot cast."""
        for priority in ('hi', '101', '-1', '7.5'):
            with self.subTest(priority=priority):
                with self.assertRaises(ValidationError) as ctx:
                    TickerItem(title="Bad", category='tips', priority=priority).full_clean()
                self.assertIn('priority', ctx.exception.message_dict)

        TickerItem(title="Good", category='tips', priority='100').full_clean()


class TickerAPITests(APITestCase):
    def setUp(self):
        self.curator = User.objects.create_user(username='curator', password='unused', is_staff=True)
        self.item = TickerItem.objects.create(title="New spot: Cause Effect", category='new-spots')
        TickerItem.objects.create(title="Hidden", category='tips', is_active=False)
        self.public_url = reverse('ticker:active-ticker')
        self.admin_list_url = reverse('ticker:ticker-item-list')
        self.admin_detail_url = reverse('ticker:ticker-item-detail', args=[self.item.id])

    def test_public_ticker_shows_active_items(self):
        response = self.client.get(self.public_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['title'] for item in response.data], ["New spot: Cause Effect"])

    def test_admin_requires_session(self):
        response = self.client.get(self.admin_list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_lists_everything(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.get(self.admin_list_url)
        self.assertEqual(len(response.data), 2)

    def test_create_with_blank_optionals(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.post(self.admin_list_url, {
            'title': "Summer markets are back",
            'category': 'seasonal',
            'link_url': '',
            'end_date': '',
            'priority': '70',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item = TickerItem.objects.get(title="Summer markets are back")
        self.assertIsNone(item.link_url)
        self.assertIsNone(item.end_date)
        self.assertEqual(item.priority, '70')

    def test_create_validation(self):
        self.client.force_authenticate(user=self.curator)
        cases = [
            {'title': 'x' * 151, 'category': 'tips'},
            {'title': 'Bad category', 'category': 'gossip'},
            {'title': 'Bad priority', 'category': 'tips', 'priority': '101'},
            {'title': 'Bad priority', 'category': 'tips', 'priority': 'high'},
        ]
        for payload in cases:
            with self.subTest(payload=payload):
                response = self.client.post(self.admin_list_url, payload, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_and_delete(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.put(self.admin_detail_url, {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertFalse(self.item.is_active)

        response = self.client.delete(self.admin_detail_url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(TickerItem.objects.filter(pk=self.item.pk).exists())
