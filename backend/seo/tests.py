import json
from unittest.mock import MagicMock, patch

import requests
from django.http import HttpResponse, StreamingHttpResponse
from django.test import RequestFactory, TestCase, override_settings

from locations.models import InsiderTip, Location
from .indexnow import (
    NOTIFY_TIMEOUT_SECONDS,
    build_location_url,
    notify_location_changed,
    submit_url,
    submit_urls,
)
from .injector import BASE_URL_TOKEN, inject_base_url, render_document
from .meta import (
    build_structured_data,
    resolve_base_url,
    resolve_location_meta,
    script_safe_json,
)
from .middleware import HtmlMetaRewriterMiddleware

SHELL = (
    '<!DOCTYPE html><html><head>'
    '<title>LekkerSpots</title>'
    '<meta name="description" content="Default description">'
    '<meta property="og:image" content="__BASE_URL__/og-image.jpg">'
    '<meta name="twitter:card" content="summary">'
    '<link rel="canonical" href="__BASE_URL__/">'
    '</head><body><div id="root"></div></body></html>'
)


def make_location(name, **kwargs):
    data = {
        'name': name,
        'category': 'Bar',
        'neighborhood': 'CBD',
        'description': 'Cocktails in the city bowl',
        'latitude': '-33.9221',
        'longitude': '18.4231',
    }
    data.update(kwargs)
    return Location.objects.create(**data)


@override_settings(SEO_USE_CANONICAL_BASE_URL=False)
class BaseUrlTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    @override_settings(SEO_USE_CANONICAL_BASE_URL=True, CANONICAL_BASE_URL='https://lekkerspots.co.za')
    def test_canonical_in_production(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_HOST='preview.example.com')
        self.assertEqual(resolve_base_url(request), 'https://lekkerspots.co.za')

    def test_request_host(self):
        request = self.factory.get('/')
        self.assertEqual(resolve_base_url(request), 'http://testserver')

    def test_forwarded_headers_first_value(self):
        request = self.factory.get(
            '/',
            HTTP_X_FORWARDED_PROTO='https, http',
            HTTP_X_FORWARDED_HOST='spots.example.com:8443, proxy.internal',
        )
        self.assertEqual(resolve_base_url(request), 'https://spots.example.com:8443')

    def test_unknown_protocol_becomes_https(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_PROTO='javascript')
        self.assertEqual(resolve_base_url(request), 'https://testserver')

    def test_invalid_host_falls_back(self):
        """Injection-shaped host headers are never echoed into the page."""
        for host in ['evil.com"><script>', 'a b.com', '-bad.com', 'host:123456']:
            with self.subTest(host=host):
                request = self.factory.get('/', HTTP_X_FORWARDED_HOST=host)
                self.assertEqual(resolve_base_url(request), 'http://testserver')


class ScriptSafeJsonTests(TestCase):

    def test_escapes_script_breakers(self):
        encoded = script_safe_json({'name': "</script><b>'&"})
        for char in '<>&\'':
            self.assertNotIn(char, encoded)
        self.assertEqual(json.loads(encoded), {'name': "</script><b>'&"})


@override_settings(SEO_USE_CANONICAL_BASE_URL=False)
class MetaResolverTests(TestCase):
    def setUp(self):
        self.request = RequestFactory().get('/location/cause-effect')
        self.location = make_location(
            "Cause Effect",
            address="Wale Street",
            images=['https://cdn.example.com/cause.jpg'],
            tags=['Cocktails'],
        )

    def test_unknown_slug(self):
        self.assertIsNone(resolve_location_meta(self.request, 'missing'))

    def test_title_description_and_image(self):
        meta = resolve_location_meta(self.request, 'cause-effect')
        self.assertEqual(meta.title, "Cause Effect - Bar in CBD | LekkerSpots")
        self.assertEqual(meta.description, "Cocktails in the city bowl")
        self.assertEqual(meta.url, "http://testserver/location/cause-effect")
        self.assertEqual(meta.og_image, "https://cdn.example.com/cause.jpg")

    def test_long_description_clipped(self):
        self.location.description = 'x' * 161
        self.location.images = []
        self.location.save()
        meta = resolve_location_meta(self.request, 'cause-effect')
        self.assertEqual(meta.description, 'x' * 157 + '...')
        self.assertEqual(meta.og_image, "http://testserver/og-image.jpg")

    def test_description_at_limit_kept(self):
        self.location.description = 'y' * 160
        self.location.save()
        meta = resolve_location_meta(self.request, 'cause-effect')
        self.assertEqual(meta.description, 'y' * 160)

    def test_structured_data_with_two_tips(self):
        """Two insider tips give exactly one FAQPage holding two questions."""
        InsiderTip.objects.create(location=self.location, question="Parking & access?", answer="Street parking", sort_order='1')
        InsiderTip.objects.create(location=self.location, question="Dress code?", answer="Smart casual", sort_order='2')

        meta = resolve_location_meta(self.request, 'cause-effect')
        graph = json.loads(meta.structured_data)['@graph']

        faq_pages = [node for node in graph if node['@type'] == 'FAQPage']
        self.assertEqual(len(faq_pages), 1)
        questions = faq_pages[0]['mainEntity']
        self.assertEqual([q['name'] for q in questions], ["Parking &amp; access?", "Dress code?"])
        self.assertEqual(questions[1]['acceptedAnswer']['text'], "Smart casual")

        business = graph[0]
        self.assertEqual(business['@type'], 'LocalBusiness')
        self.assertEqual(business['address']['addressRegion'], 'Western Cape')
        self.assertEqual(business['address']['addressCountry'], 'ZA')
        self.assertEqual(business['geo']['latitude'], '-33.9221')

    def test_structured_data_without_tips_or_address(self):
        self.location.address = None
        data = build_structured_data(self.location, [], 'https://lekkerspots.co.za')
        self.assertEqual(data['@context'], 'https://schema.org')
        self.assertEqual([node['@type'] for node in data['@graph']], ['LocalBusiness'])
        self.assertNotIn('address', data['@graph'][0])

    def test_location_data_includes_tips_and_related(self):
        other = make_location("Other Bar")
        self.location.related_location_ids = [str(other.id)]
        self.location.save()
        InsiderTip.objects.create(location=self.location, question="Q", answer="A")

        data = json.loads(resolve_location_meta(self.request, 'cause-effect').location_data)
        self.assertEqual(data['slug'], 'cause-effect')
        self.assertEqual(len(data['insider_tips']), 1)
        self.assertEqual(data['related_locations'][0]['name'], "Other Bar")


@override_settings(SEO_USE_CANONICAL_BASE_URL=False)
class InjectorTests(TestCase):
    def setUp(self):
        self.request = RequestFactory().get('/location/script-alert-1-script')
        self.location = make_location(
            "<script>alert(1)</script>",
            description='Say "hi" & <b>bye</b>',
            tags=['<i>tag</i>'],
        )
        self.meta = resolve_location_meta(self.request, self.location.slug)

    def test_base_url_replaced_everywhere(self):
        document = inject_base_url(SHELL, 'https://spots.test')
        self.assertNotIn(BASE_URL_TOKEN, document)
        self.assertEqual(document.count('https://spots.test'), 2)

    def test_shell_without_meta_only_gets_base_url(self):
        document = render_document(SHELL, 'https://spots.test')
        self.assertIn('<title>LekkerSpots</title>', document)
        self.assertIn('Default description', document)

    def test_meta_spliced_and_escaped(self):
        document = render_document(SHELL, 'http://testserver', self.meta)

        self.assertNotIn(BASE_URL_TOKEN, document)
        self.assertNotIn('<script>alert(1)</script>', document)
        self.assertIn('<title>&lt;script&gt;alert(1)&lt;/script&gt; - Bar in CBD | LekkerSpots</title>', document)
        self.assertIn('Say &quot;hi&quot; &amp; &lt;b&gt;bye&lt;/b&gt;', document)
        self.assertIn('<li>&lt;i&gt;tag&lt;/i&gt;</li>', document)
        self.assertNotIn('Default description', document)
        self.assertEqual(document.count('<title>'), 1)
        self.assertEqual(document.count('property="og:image"'), 1)
        self.assertEqual(document.count('rel="canonical"'), 1)
        self.assertEqual(document.count('<script type="application/ld+json">'), 1)
        self.assertIn('window.__LOCATION_DATA__ = ', document)
        self.assertIn('<div id="root"><!-- location-summary:start -->', document)

    def test_idempotent(self):
        once = render_document(SHELL, 'http://testserver', self.meta)
        twice = render_document(once, 'http://testserver', self.meta)
        self.assertEqual(once, twice)

    def test_summary_falls_back_to_body(self):
        shell = '<html><head><title>x</title></head><body><main></main></body></html>'
        document = render_document(shell, 'http://testserver', self.meta)
        self.assertIn('<body><!-- location-summary:start -->', document)


class RewriterMiddlewareTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def run_middleware(self, path, response):
        request = self.factory.get(path)
        request.location_meta = None
        middleware = HtmlMetaRewriterMiddleware(lambda req: response)
        return middleware(request)

    @override_settings(SEO_USE_CANONICAL_BASE_URL=False)
    def test_content_length_recomputed(self):
        body = '<html><head></head><body>__BASE_URL__ ünïcode __BASE_URL__</body></html>'
        response = HttpResponse(body, content_type='text/html; charset=utf-8')
        response['Content-Length'] = str(len(body.encode('utf-8')))

        response = self.run_middleware('/', response)
        self.assertNotIn(b'__BASE_URL__', response.content)
        self.assertEqual(response['Content-Length'], str(len(response.content)))

    @override_settings(SEO_USE_CANONICAL_BASE_URL=False)
    def test_streaming_html(self):
        response = StreamingHttpResponse(
            iter([b'<html>__BASE_URL__', b'/og.jpg</html>']), content_type='text/html'
        )
        response = self.run_middleware('/', response)
        content = b''.join(response.streaming_content)
        self.assertEqual(content, b'<html>http://testserver/og.jpg</html>')
        self.assertEqual(response['Content-Length'], str(len(content)))

    def test_non_html_untouched(self):
        response = HttpResponse('{"x": "__BASE_URL__"}', content_type='application/json')
        response = self.run_middleware('/data.json', response)
        self.assertEqual(response.content, b'{"x": "__BASE_URL__"}')

    def test_api_and_object_paths_skipped(self):
        for path in ['/api/locations', '/objects/uploads/a.html']:
            with self.subTest(path=path):
                response = HttpResponse('<p>__BASE_URL__</p>', content_type='text/html')
                response = self.run_middleware(path, response)
                self.assertEqual(response.content, b'<p>__BASE_URL__</p>')

    @patch('seo.middleware.render_document', side_effect=RuntimeError("broken"))
    def test_rewrite_failure_serves_original(self, mock_render):
        response = HttpResponse('<p>__BASE_URL__</p>', content_type='text/html')
        response = self.run_middleware('/', response)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b'<p>__BASE_URL__</p>')


@override_settings(
    SEO_USE_CANONICAL_BASE_URL=False,
    SPA_INDEX_PATH='/nonexistent/index.html',
    INDEXNOW_API_KEY=None,
)
class SitePagesTests(TestCase):
    def setUp(self):
        self.location = make_location("Cause Effect", tags=['Cocktails'])

    def test_spa_shell(self):
        response = self.client.get('/', HTTP_ACCEPT='text/html')
        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, BASE_URL_TOKEN)
        self.assertContains(response, 'href="http://testserver/"')

    def test_location_page_gets_meta(self):
        response = self.client.get('/location/cause-effect', HTTP_ACCEPT='text/html')
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, '<title>Cause Effect - Bar in CBD | LekkerSpots</title>')
        self.assertContains(response, 'application/ld+json')
        self.assertEqual(response['Content-Length'], str(len(response.content)))

    def test_location_page_without_html_accept(self):
        response = self.client.get('/location/cause-effect', HTTP_ACCEPT='application/json')
        self.assertNotContains(response, 'application/ld+json')

    def test_unknown_location_serves_plain_shell(self):
        response = self.client.get('/location/nowhere', HTTP_ACCEPT='text/html')
        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, 'application/ld+json')

    @patch('seo.middleware.resolve_location_meta', side_effect=RuntimeError("db down"))
    def test_meta_failure_serves_plain_shell(self, mock_resolve):
        response = self.client.get('/location/cause-effect', HTTP_ACCEPT='text/html')
        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, 'application/ld+json')

    @override_settings(CANONICAL_BASE_URL='https://lekkerspots.co.za')
    def test_sitemap(self):
        response = self.client.get('/sitemap.xml')
        self.assertEqual(response.status_code, 200)
        self.assertIn('xml', response['Content-Type'])
        self.assertContains(response, '<loc>https://lekkerspots.co.za/</loc>')
        self.assertContains(response, '<loc>https://lekkerspots.co.za/map</loc>')
        self.assertContains(response, '<loc>https://lekkerspots.co.za/location/cause-effect</loc>')
        self.assertContains(response, '<changefreq>weekly</changefreq>')
        self.assertContains(response, '<priority>0.8</priority>')
        self.assertContains(response, '<priority>1.0</priority>')

    @override_settings(CANONICAL_BASE_URL='https://lekkerspots.co.za')
    def test_robots(self):
        response = self.client.get('/robots.txt')
        self.assertEqual(response['Content-Type'], 'text/plain')
        self.assertContains(response, 'Disallow: /admin/')
        self.assertContains(response, 'Disallow: /api/')
        self.assertContains(response, 'Sitemap: https://lekkerspots.co.za/sitemap.xml')

    def test_indexnow_key_file(self):
        with self.settings(INDEXNOW_API_KEY='a1b2c3'):
            response = self.client.get('/a1b2c3.txt')
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.content, b'a1b2c3')

            self.assertEqual(self.client.get('/ffff.txt').status_code, 404)

        self.assertEqual(self.client.get('/a1b2c3.txt').status_code, 404)

    def test_branded_404_and_api_404(self):
        with self.settings(INDEXNOW_API_KEY='a1b2c3'):
            response = self.client.get('/ffff.txt', HTTP_ACCEPT='text/html')
        self.assertContains(response, 'Page not found', status_code=404)
        self.assertContains(response, 'href="/"', status_code=404)

        response = self.client.get('/api/nothing-here')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'message': 'Not found'})


@override_settings(INDEXNOW_API_KEY='a1b2c3', CANONICAL_BASE_URL='https://lekkerspots.co.za')
class IndexNowTests(TestCase):

    def test_build_location_url(self):
        self.assertEqual(build_location_url('cause-effect'), 'https://lekkerspots.co.za/location/cause-effect')

    @patch('seo.indexnow.requests.get')
    def test_submit_url_accepted(self, mock_get):
        mock_get.return_value = MagicMock(status_code=202)
        result = submit_url('https://lekkerspots.co.za/location/cause-effect')

        self.assertTrue(result.success)
        self.assertEqual(result.status_code, 202)
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['params'], {'url': 'https://lekkerspots.co.za/location/cause-effect', 'key': 'a1b2c3'})

    @patch('seo.indexnow.requests.get')
    def test_submit_url_rejected(self, mock_get):
        mock_get.return_value = MagicMock(status_code=403)
        result = submit_url('https://lekkerspots.co.za/')
        self.assertFalse(result.success)
        self.assertEqual(result.error, 'HTTP 403')

    @patch('seo.indexnow.requests.get', side_effect=requests.Timeout("slow"))
    def test_submit_url_network_error(self, mock_get):
        self.assertFalse(submit_url('https://lekkerspots.co.za/').success)

    @override_settings(INDEXNOW_API_KEY=None)
    @patch('seo.indexnow.requests.get')
    def test_submit_without_key(self, mock_get):
        result = submit_url('https://lekkerspots.co.za/')
        self.assertFalse(result.success)
        self.assertEqual(result.error, 'API key not configured')
        mock_get.assert_not_called()

    @patch('seo.indexnow.requests.post')
    def test_submit_urls_batch(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        urls = ['https://lekkerspots.co.za/', 'https://lekkerspots.co.za/map']

        self.assertTrue(submit_urls(urls).success)
        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs['json'], {'host': 'lekkerspots.co.za', 'key': 'a1b2c3', 'urlList': urls})

    @patch('seo.indexnow.requests.post')
    def test_submit_no_urls(self, mock_post):
        self.assertTrue(submit_urls([]).success)
        mock_post.assert_not_called()

    @patch('seo.indexnow.threading.Thread')
    def test_location_ping_deferred_until_commit(self, mock_thread):
        """The ping is queued for after the write commits and runs off the request thread."""
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            notify_location_changed('cause-effect')
        mock_thread.assert_not_called()
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        _, kwargs = mock_thread.call_args
        self.assertIs(kwargs['target'], submit_url)
        self.assertEqual(kwargs['args'], ('https://lekkerspots.co.za/location/cause-effect',))
        self.assertEqual(kwargs['kwargs'], {'timeout': NOTIFY_TIMEOUT_SECONDS})
        self.assertTrue(kwargs['daemon'])
        mock_thread.return_value.start.assert_called_once()
