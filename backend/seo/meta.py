"""
Meta Resolver: builds the SEO metadata of a location detail page.

Every string on LocationMeta is HTML-ready: text fields are escaped, and the
two JSON payloads are safe to place inside an inline <script> element.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import DisallowedHost
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.html import escape
from django.utils.safestring import SafeString, mark_safe

from locations.models import InsiderTip, Location
from locations.serializers import InsiderTipSerializer, LocationSerializer
from locations.services import LocationQueryService

logger = logging.getLogger(__name__)

HOST_PATTERN = re.compile(
    r'[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?'
    r'(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*'
    r'(:\d{1,5})?'
)
FALLBACK_HOST = 'localhost:8000'
DESCRIPTION_LIMIT = 160
DESCRIPTION_CLIP = 157

# Characters that could close or confuse an inline <script> element.
SCRIPT_ESCAPES = {ord(c): '\\' + 'u%04X' % ord(c) for c in '<>&\''}


@dataclass
class LocationMeta:
    title: SafeString
    description: SafeString
    url: SafeString
    og_image: SafeString
    location_name: SafeString
    category: SafeString
    neighborhood: SafeString
    body: SafeString
    address: Optional[SafeString] = None
    tags: List[SafeString] = field(default_factory=list)
    structured_data: SafeString = mark_safe('{}')
    location_data: SafeString = mark_safe('{}')


def escape_text(text) -> SafeString:
    """HTML-escape &, <, >, double and single quotes."""
    return escape('' if text is None else str(text))


def script_safe_json(data) -> SafeString:
    """Serialize `data` so it can sit inside an inline script element."""
    return mark_safe(json.dumps(data, cls=DjangoJSONEncoder).translate(SCRIPT_ESCAPES))


def is_valid_host(host: str) -> bool:
    return bool(host) and HOST_PATTERN.fullmatch(host) is not None


def first_header_value(request, meta_key: str) -> str:
    return request.META.get(meta_key, '').split(',')[0].strip()


def resolve_base_url(request) -> str:
    """
    Public origin of the current request.

    The canonical domain is used whenever SEO_USE_CANONICAL_BASE_URL is on.
    Otherwise the origin comes from forwarding headers, validated so a spoofed
    header can never reach the rendered page.
    """
    if settings.SEO_USE_CANONICAL_BASE_URL:
        return settings.CANONICAL_BASE_URL

    protocol = first_header_value(request, 'HTTP_X_FORWARDED_PROTO') or request.scheme
    if protocol not in ('http', 'https'):
        protocol = 'https'

    host = first_header_value(request, 'HTTP_X_FORWARDED_HOST') or request.META.get('HTTP_HOST', '')
    if not is_valid_host(host):
        try:
            host = request.get_host()
        except DisallowedHost:
            host = FALLBACK_HOST
        if not is_valid_host(host):
            host = FALLBACK_HOST

    return f"{protocol}://{host}"


def clip_description(text: str) -> str:
    if len(text) > DESCRIPTION_LIMIT:
        return f"{text[:DESCRIPTION_CLIP]}..."
    return text


def build_structured_data(location: Location, tips, base_url: str) -> dict:
    """
    JSON-LD graph: a LocalBusiness node plus, when the location has insider
    tips, one FAQPage node with a Question per tip.
    """
    page_url = f"{base_url}/location/{location.slug}"
    images = list(location.images) if location.images else [f"{base_url}{settings.SEO_FALLBACK_IMAGE}"]

    business = {
        '@type': 'LocalBusiness',
        'name': escape_text(location.name),
        'description': escape_text(location.description),
        'image': images,
    }
    if location.address:
        business['address'] = {
            '@type': 'PostalAddress',
            'streetAddress': escape_text(location.address),
            'addressLocality': escape_text(location.neighborhood),
            'addressRegion': settings.SEO_ADDRESS_REGION,
            'addressCountry': settings.SEO_ADDRESS_COUNTRY,
        }
    business['geo'] = {
        '@type': 'GeoCoordinates',
        'latitude': location.latitude,
        'longitude': location.longitude,
    }
    business['url'] = page_url

    graph = [business]
    if tips:
        graph.append({
            '@type': 'FAQPage',
            'mainEntity': [
                {
                    '@type': 'Question',
                    'name': escape_text(tip.question),
                    'acceptedAnswer': {
                        '@type': 'Answer',
                        'text': escape_text(tip.answer),
                    },
                }
                for tip in tips
            ],
        })

    return {'@context': 'https://schema.org', '@graph': graph}


def build_location_data(location: Location, tips, related) -> dict:
    """Full location payload handed to the client through window.__LOCATION_DATA__."""
    data = dict(LocationSerializer(location).data)
    data['insider_tips'] = InsiderTipSerializer(tips, many=True).data
    data['related_locations'] = LocationSerializer(related, many=True).data
    return data


def resolve_location_meta(request, slug: str) -> Optional[LocationMeta]:
    """
    Collects everything the HTML Injector needs for /location/<slug>.

    Returns:
        LocationMeta, or None when no location has this slug
    """
    location = Location.objects.filter(slug=slug).first()
    if location is None:
        return None

    tips = list(InsiderTip.for_location(location.id))
    related = LocationQueryService.by_ids(location.related_location_ids)
    base_url = resolve_base_url(request)

    page_url = f"{base_url}/location/{location.slug}"
    og_image = location.thumbnail or f"{base_url}{settings.SEO_FALLBACK_IMAGE}"
    title = f"{location.name} - {location.category} in {location.neighborhood} | {settings.SITE_NAME}"

    return LocationMeta(
        title=escape_text(title),
        description=escape_text(clip_description(location.description)),
        url=escape_text(page_url),
        og_image=escape_text(og_image),
        location_name=escape_text(location.name),
        category=escape_text(location.category),
        neighborhood=escape_text(location.neighborhood),
        body=escape_text(location.description),
        address=escape_text(location.address) if location.address else None,
        tags=[escape_text(tag) for tag in location.tags],
        structured_data=script_safe_json(build_structured_data(location, tips, base_url)),
        location_data=script_safe_json(build_location_data(location, tips, related)),
    )
