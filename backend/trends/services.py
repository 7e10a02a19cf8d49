"""
SocialTrendsService: refreshes Instagram hashtag post counts for locations
and turns the change between two refreshes into a trending score.
"""
import logging
import time
from typing import Callable, Dict, Optional

import requests
from django.conf import settings
from django.utils import timezone

from locations.models import Location

logger = logging.getLogger(__name__)


def calculate_trending_score(current_count: int, previous_count: int) -> float:
    """
    Percentage growth of the post count since the previous refresh.
    A hashtag seen for the first time with posts scores 100.
    """
    if previous_count == 0:
        return 100.0 if current_count > 0 else 0.0
    return (current_count - previous_count) / previous_count * 100


class SocialTrendsService:
    """
    Background Service: walks every location with an Instagram hashtag,
    one provider call at a time, and stores the new counts and score.
    A failed fetch leaves that location's data as it was.
    """

    ACTOR_ID = 'apify~instagram-hashtag-scraper'
    API_URL = 'https://api.apify.com/v2/acts/{actor}/run-sync-get-dataset-items'
    REQUEST_TIMEOUT = 120  # seconds; the actor run is synchronous

    def __init__(self, api_token: Optional[str] = None, delay_seconds: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            api_token: Apify token, defaults to settings.APIFY_API_KEY
            delay_seconds: Pause after each provider call, defaults to settings.SOCIAL_TRENDS_DELAY_SECONDS
            sleep: Sleep function, replaceable in tests
        """
        self.api_token = api_token if api_token is not None else settings.APIFY_API_KEY
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None else settings.SOCIAL_TRENDS_DELAY_SECONDS
        )
        self.sleep = sleep

    @staticmethod
    def clean_hashtag(hashtag: str) -> str:
        return hashtag.strip().lstrip('#').lower()

    def fetch_hashtag_post_count(self, hashtag: str) -> Optional[int]:
        """
        Current number of posts for a hashtag.

        Returns:
            Post count, or None when the provider is unconfigured, fails or
            answers without a count
        """
        if not self.api_token:
            logger.error("APIFY_API_KEY not configured, cannot fetch #%s", hashtag)
            return None

        tag = self.clean_hashtag(hashtag)
        url = self.API_URL.format(actor=self.ACTOR_ID)

        try:
            response = requests.post(
                url,
                params={'token': self.api_token},
                json={'hashtags': [tag], 'resultsLimit': 1},
                timeout=self.REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error("Failed to fetch hashtag data for #%s: %s", tag, e)
            return None

        if not response.ok:
            logger.error("Apify error for #%s: %s %s", tag, response.status_code, response.text[:200])
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Apify returned a non-JSON body for #%s", tag)
            return None

        if isinstance(data, list) and data and isinstance(data[0], dict):
            item = data[0]
            media = item.get('edge_hashtag_to_media')
            count = item.get('postsCount')
            if count is None and isinstance(media, dict):
                count = media.get('count')
            if count is not None:
                try:
                    return int(count)
                except (TypeError, ValueError):
                    logger.error("Malformed post count for #%s: %r", tag, count)
                    return None

        logger.warning("No post count found for #%s", tag)
        return None

    def update_location(self, location: Location, current_count: int) -> Dict:
        previous_count = location.current_post_count or 0
        score = calculate_trending_score(current_count, previous_count)

        # update() keeps the curator's updated_at untouched.
        Location.objects.filter(pk=location.pk).update(
            current_post_count=current_count,
            previous_post_count=previous_count,
            trending_score=score,
            social_last_updated=timezone.now(),
        )
        return {
            'location_id': str(location.id),
            'location_name': location.name,
            'hashtag': location.instagram_hashtag,
            'previous_count': previous_count,
            'current_count': current_count,
            'trending_score': score,
        }

    def update_all(self) -> Dict:
        """
        Refreshes every location carrying a hashtag.

        Returns:
            {'success': int, 'failed': int, 'skipped': int, 'results': [...]}
        """
        locations = list(Location.objects.with_hashtags().order_by('name'))
        summary = {'success': 0, 'failed': 0, 'skipped': 0, 'results': []}
        logger.info("Starting social trends update for %d locations", len(locations))

        for location in locations:
            if not self.clean_hashtag(location.instagram_hashtag or ''):
                summary['skipped'] += 1
                continue

            count = self.fetch_hashtag_post_count(location.instagram_hashtag)
            if count is None:
                summary['failed'] += 1
            else:
                try:
                    result = self.update_location(location, count)
                except Exception:
                    logger.exception("Failed to store social data for %s", location.name)
                    summary['failed'] += 1
                else:
                    summary['results'].append(result)
                    summary['success'] += 1
                    logger.info(
                        "Updated %s: %d -> %d (%.2f%%)",
                        location.name, result['previous_count'], count, result['trending_score']
                    )

            if self.delay_seconds:
                self.sleep(self.delay_seconds)

        logger.info(
            "Social trends update complete: %d success, %d failed, %d skipped",
            summary['success'], summary['failed'], summary['skipped']
        )
        return summary
