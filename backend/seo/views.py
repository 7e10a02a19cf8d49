"""
Site-level views: the SPA shell, sitemap, robots.txt, IndexNow key file and
the branded error pages.
"""
import logging
from pathlib import Path
from urllib.parse import quote, urlsplit

from django.conf import settings
from django.contrib.sitemaps import Sitemap
from django.http import Http404, HttpResponse, JsonResponse
from django.shortcuts import render
from django.template.loader import render_to_string
from django.utils import timezone
from django.views.decorators.http import require_GET

from locations.models import Location

logger = logging.getLogger(__name__)


def load_shell() -> str:
    """The built client index.html, or the bundled minimal shell when no build exists."""
    index_path = Path(settings.SPA_INDEX_PATH)
    if index_path.is_file():
        return index_path.read_text(encoding='utf-8')
    return render_to_string('seo/index.html', {'site_name': settings.SITE_NAME})


@require_GET
def spa_shell(request, *args, **kwargs):
    # Base URL and location meta are filled in by HtmlMetaRewriterMiddleware.
    return HttpResponse(load_shell(), content_type='text/html; charset=utf-8')


class CanonicalSitemap(Sitemap):
    """Sitemap whose URLs always use the canonical domain, whatever host was requested."""

    def get_protocol(self, protocol=None):
        return urlsplit(settings.CANONICAL_BASE_URL).scheme or 'https'

    def get_domain(self, site=None):
        return urlsplit(settings.CANONICAL_BASE_URL).netloc


class StaticViewSitemap(CanonicalSitemap):
    changefreq = 'daily'

    PAGES = {
        '/': 1.0,
        '/categories': 0.9,
        '/map': 0.9,
    }

    def items(self):
        return list(self.PAGES)

    def location(self, item):
        return item

    def priority(self, item):
        return self.PAGES[item]

    def lastmod(self, item):
        return timezone.now()


class LocationSitemap(CanonicalSitemap):
    changefreq = 'weekly'
    priority = 0.8

    def items(self):
        return Location.objects.order_by('created_at', 'id')

    def location(self, item):
        return f"/location/{quote(item.slug, safe='')}"

    def lastmod(self, item):
        return item.updated_at


SITEMAPS = {
    'static': StaticViewSitemap,
    'locations': LocationSitemap,
}


@require_GET
def robots_txt(request):
    lines = [
        f"# {settings.SITE_NAME} - Cape Town Hidden Gems",
        "User-agent: *",
        "Allow: /",
        "Disallow: /admin/",
        "Disallow: /api/",
        "",
        f"Sitemap: {settings.CANONICAL_BASE_URL}/sitemap.xml",
        "",
    ]
    return HttpResponse("\n".join(lines), content_type='text/plain')


@require_GET
def indexnow_key(request, key):
    """Ownership proof for search engines: served only for the configured key."""
    if not settings.INDEXNOW_API_KEY or key != settings.INDEXNOW_API_KEY:
        raise Http404("Unknown key file")
    return HttpResponse(settings.INDEXNOW_API_KEY, content_type='text/plain')


def wants_json(request) -> bool:
    if request.path.startswith('/api'):
        return True
    accept = request.META.get('HTTP_ACCEPT', '')
    return 'application/json' in accept and 'text/html' not in accept


def error_response(request, status_code: int, message: str, json_message: str):
    if wants_json(request):
        return JsonResponse({'message': json_message}, status=status_code)
    context = {
        'status_code': status_code,
        'message': message,
        'site_name': settings.SITE_NAME,
    }
    return render(request, 'seo/error.html', context, status=status_code)


def page_not_found(request, exception=None):
    return error_response(request, 404, 'Page not found', 'Not found')


def server_error(request):
    logger.error("Server error while handling %s %s", request.method, request.path)
    return error_response(request, 500, 'Something went wrong', 'Internal server error')
