"""
Middleware that resolves location meta for detail pages and rewrites the
HTML shell on its way out.
"""
import logging
import re

from .injector import render_document
from .meta import resolve_base_url, resolve_location_meta

logger = logging.getLogger(__name__)

LOCATION_PATH_RE = re.compile(r'^/location/([^/]+)$')
SKIPPED_PATH_PREFIXES = ('/api/', '/objects/')


def accepts_html(request) -> bool:
    accept = request.META.get('HTTP_ACCEPT', '')
    return 'text/html' in accept or '*/*' in accept


class LocationMetaMiddleware:
    """
    Attaches `request.location_meta` for GET /location/<slug> navigations.
    Lookup failures leave it as None; the page is then served unenhanced.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.location_meta = None

        match = LOCATION_PATH_RE.match(request.path)
        if request.method == 'GET' and match and accepts_html(request):
            try:
                request.location_meta = resolve_location_meta(request, match.group(1))
            except Exception:
                logger.exception("Could not resolve meta for %s", request.path)

        return self.get_response(request)


class HtmlMetaRewriterMiddleware:
    """
    Buffers every text/html response outside the API and object paths,
    renders it once through the HTML Injector and recomputes Content-Length.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        if request.path.startswith(SKIPPED_PATH_PREFIXES):
            return response
        if 'text/html' not in response.get('Content-Type', ''):
            return response
        if response.has_header('Content-Encoding'):
            return response

        try:
            self.rewrite(request, response)
        except Exception:
            logger.exception("HTML rewrite failed for %s, serving original document", request.path)
        return response

    def rewrite(self, request, response):
        if response.streaming:
            original = b''.join(response.streaming_content)
        else:
            original = response.content

        charset = response.charset or 'utf-8'
        try:
            html = original.decode(charset)
            document = render_document(
                html,
                resolve_base_url(request),
                getattr(request, 'location_meta', None),
            )
            body = document.encode(charset)
        except Exception:
            # Streaming content was consumed above, so put it back untouched.
            self.write_body(response, original)
            raise

        self.write_body(response, body)

    @staticmethod
    def write_body(response, body: bytes):
        if response.streaming:
            response.streaming_content = [body]
        else:
            response.content = body
        response['Content-Length'] = str(len(body))
