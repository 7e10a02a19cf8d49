"""
IndexNow client: tells participating search engines that a page changed.
"""
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, urlsplit

import requests
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)

INDEXNOW_ENDPOINT = "https://api.indexnow.org/indexnow"
REQUEST_TIMEOUT_SECONDS = 10
NOTIFY_TIMEOUT_SECONDS = 3
SUCCESS_STATUS_CODES = (200, 202)


@dataclass
class IndexNowResult:
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


def get_api_key() -> Optional[str]:
    return settings.INDEXNOW_API_KEY or None


def build_location_url(slug: str) -> str:
    return f"{settings.CANONICAL_BASE_URL}/location/{quote(slug, safe='')}"


def submit_url(url: str, timeout: float = REQUEST_TIMEOUT_SECONDS) -> IndexNowResult:
    """
    Submit a single URL.

    Args:
        url: Absolute URL on the canonical domain
        timeout: Seconds to wait for the IndexNow endpoint

    Returns:
        IndexNowResult; never raises for network or HTTP failures
    """
    api_key = get_api_key()
    if not api_key:
        logger.warning("IndexNow API key not configured, skipping submission of %s", url)
        return IndexNowResult(success=False, error="API key not configured")

    try:
        response = requests.get(
            INDEXNOW_ENDPOINT,
            params={'url': url, 'key': api_key},
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error("IndexNow submission of %s failed: %s", url, e)
        return IndexNowResult(success=False, error=str(e))

    if response.status_code in SUCCESS_STATUS_CODES:
        logger.info("IndexNow accepted %s (status %s)", url, response.status_code)
        return IndexNowResult(success=True, status_code=response.status_code)

    logger.error("IndexNow rejected %s (status %s)", url, response.status_code)
    return IndexNowResult(
        success=False,
        status_code=response.status_code,
        error=f"HTTP {response.status_code}",
    )


def submit_urls(urls: List[str]) -> IndexNowResult:
    """Submit a batch of URLs in one POST request."""
    api_key = get_api_key()
    if not api_key:
        logger.warning("IndexNow API key not configured, skipping submission of %d URLs", len(urls))
        return IndexNowResult(success=False, error="API key not configured")

    if not urls:
        return IndexNowResult(success=True)

    payload = {
        'host': urlsplit(settings.CANONICAL_BASE_URL).netloc,
        'key': api_key,
        'urlList': list(urls),
    }
    try:
        response = requests.post(INDEXNOW_ENDPOINT, json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.error("IndexNow batch submission failed: %s", e)
        return IndexNowResult(success=False, error=str(e))

    if response.status_code in SUCCESS_STATUS_CODES:
        logger.info("IndexNow accepted %d URLs (status %s)", len(urls), response.status_code)
        return IndexNowResult(success=True, status_code=response.status_code)

    logger.error("IndexNow rejected %d URLs (status %s)", len(urls), response.status_code)
    return IndexNowResult(
        success=False,
        status_code=response.status_code,
        error=f"HTTP {response.status_code}",
    )


def ping_in_background(url: str) -> threading.Thread:
    thread = threading.Thread(
        target=submit_url,
        args=(url,),
        kwargs={'timeout': NOTIFY_TIMEOUT_SECONDS},
        name='indexnow-ping',
        daemon=True,
    )
    thread.start()
    return thread


def notify_location_changed(slug: str):
    """
    Called after a location is created, updated or deleted. The ping runs on
    a worker thread once the write has committed, so the curator's request
    never waits on IndexNow.
    """
    url = build_location_url(slug)
    transaction.on_commit(lambda: ping_in_background(url))
