from io import StringIO
from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from locations.models import Location
from locations.services import LocationQueryService
from .services import SocialTrendsService, calculate_trending_score

User = get_user_model()


def make_location(name, **kwargs):
    data = {
        'name': name,
        'category': 'Beach',
        'neighborhood': 'Camps Bay',
        'description': f"{name} description",
        'latitude': '-33.9509',
        'longitude': '18.3779',
    }
    data.update(kwargs)
    return Location.objects.create(**data)


def provider_response(payload, status_code=200):
    response = MagicMock(status_code=status_code, ok=200 <= status_code < 300, text='')
    response.json.return_value = payload
    return response


class TrendingScoreTests(TestCase):

    def test_first_posts_score_100(self):
        self.assertEqual(calculate_trending_score(25, 0), 100)

    def test_no_posts_score_0(self):
        self.assertEqual(calculate_trending_score(0, 0), 0)

    def test_growth_percentage(self):
        self.assertEqual(calculate_trending_score(150, 100), 50)
        self.assertEqual(calculate_trending_score(50, 100), -50)


@override_settings(APIFY_API_KEY='apify-token')
class FetchHashtagTests(TestCase):
    def setUp(self):
        self.service = SocialTrendsService(delay_seconds=0)

    @patch('trends.services.requests.post')
    def test_posts_count(self, mock_post):
        mock_post.return_value = provider_response([{'postsCount': 1234}])
        self.assertEqual(self.service.fetch_hashtag_post_count('#CampsBay'), 1234)

        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs['json'], {'hashtags': ['campsbay'], 'resultsLimit': 1})
        self.assertEqual(kwargs['params'], {'token': 'apify-token'})

    @patch('trends.services.requests.post')
    def test_media_edge_count(self, mock_post):
        mock_post.return_value = provider_response([{'edge_hashtag_to_media': {'count': 77}}])
        self.assertEqual(self.service.fetch_hashtag_post_count('campsbay'), 77)

    @patch('trends.services.requests.post')
    def test_failures_return_none(self, mock_post):
        cases = [
            provider_response([]),
            provider_response([{'tagName': 'campsbay'}]),
            provider_response({'error': 'quota'}, status_code=402),
        ]
        for response in cases:
            with self.subTest(status=response.status_code):
                mock_post.return_value = response
                self.assertIsNone(self.service.fetch_hashtag_post_count('campsbay'))

        for payload in ([{'postsCount': '1.2k'}], [{'postsCount': {'value': 3}}],
                        [{'edge_hashtag_to_media': 'many'}]):
            with self.subTest(payload=payload):
                mock_post.return_value = provider_response(payload)
                self.assertIsNone(self.service.fetch_hashtag_post_count('campsbay'))

        mock_post.side_effect = requests.ConnectionError("offline")
        self.assertIsNone(self.service.fetch_hashtag_post_count('campsbay'))

    @override_settings(APIFY_API_KEY=None)
    @patch('trends.services.requests.post')
    def test_unconfigured_token(self, mock_post):
        self.assertIsNone(SocialTrendsService().fetch_hashtag_post_count('campsbay'))
        mock_post.assert_not_called()


class UpdateAllTests(TestCase):
    def setUp(self):
        self.camps_bay = make_location("Camps Bay Beach", instagram_hashtag='campsbay', current_post_count=100)
        self.llandudno = make_location("Llandudno", instagram_hashtag='llandudno')
        self.no_tag = make_location("Quiet Cove")
        self.sleep = MagicMock()
        self.service = SocialTrendsService(api_token='token', delay_seconds=1.5, sleep=self.sleep)

    def test_failure_of_one_location_does_not_stop_batch(self):
        """A failed fetch is counted and left stale while the others update."""
        counts = {'campsbay': 150, 'llandudno': None}
        with patch.object(self.service, 'fetch_hashtag_post_count', side_effect=lambda tag: counts[tag]):
            summary = self.service.update_all()

        self.assertEqual(summary['success'], 1)
        self.assertEqual(summary['failed'], 1)
        self.assertEqual(summary['skipped'], 0)
        self.assertEqual(summary['results'][0]['location_name'], "Camps Bay Beach")

        self.camps_bay.refresh_from_db()
        self.assertEqual(self.camps_bay.previous_post_count, 100)
        self.assertEqual(self.camps_bay.current_post_count, 150)
        self.assertEqual(self.camps_bay.trending_score, 50)
        self.assertIsNotNone(self.camps_bay.social_last_updated)

        self.llandudno.refresh_from_db()
        self.assertIsNone(self.llandudno.social_last_updated)
        self.assertEqual(self.sleep.call_count, 2)
        self.sleep.assert_called_with(1.5)

    @patch('trends.services.requests.post')
    def test_malformed_count_does_not_abort_batch(self, mock_post):
        """An unparseable count from the provider fails that location only."""
        mock_post.side_effect = [
            provider_response([{'postsCount': '1.2k'}]),
            provider_response([{'postsCount': 40}]),
        ]
        summary = self.service.update_all()

        self.assertEqual(summary['success'], 1)
        self.assertEqual(summary['failed'], 1)
        self.assertEqual(summary['results'][0]['location_name'], "Llandudno")

        self.camps_bay.refresh_from_db()
        self.assertIsNone(self.camps_bay.social_last_updated)
        self.llandudno.refresh_from_db()
        self.assertEqual(self.llandudno.current_post_count, 40)

    def test_blank_hashtag_skipped(self):
        make_location("Hash only", instagram_hashtag='#')
        with patch.object(self.service, 'fetch_hashtag_post_count', return_value=10) as mock_fetch:
            summary = self.service.update_all()
        self.assertEqual(summary['skipped'], 1)
        self.assertEqual(mock_fetch.call_count, 2)

    def test_trending_uses_refreshed_scores(self):
        counts = {'campsbay': 110, 'llandudno': 40}
        with patch.object(self.service, 'fetch_hashtag_post_count', side_effect=lambda tag: counts[tag]):
            self.service.update_all()

        trending = list(LocationQueryService.trending(5))
        self.assertEqual(trending, [self.llandudno, self.camps_bay])

    def test_management_command(self):
        out = StringIO()
        with patch('trends.management.commands.update_social_trends.SocialTrendsService') as mock_service:
            mock_service.return_value.update_all.return_value = {
                'success': 2, 'failed': 0, 'skipped': 1, 'results': [],
            }
            call_command('update_social_trends', '--delay', '0', stdout=out)

        mock_service.assert_called_once_with(delay_seconds=0.0)
        self.assertIn('2 success, 0 failed, 1 skipped', out.getvalue())


class RefreshEndpointTests(APITestCase):
    def setUp(self):
        self.url = reverse('trends:social-trends-refresh')
        self.curator = User.objects.create_user(username='curator', password='unused', is_staff=True)

    def test_requires_session(self):
        response = self.client.post(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @patch('trends.views.SocialTrendsService')
    def test_returns_summary(self, mock_service):
        mock_service.return_value.update_all.return_value = {
            'success': 1, 'failed': 0, 'skipped': 0, 'results': [],
        }
        self.client.force_authenticate(user=self.curator)
        response = self.client.post(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['success'], 1)
