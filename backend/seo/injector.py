"""
HTML Injector: rewrites the single-page-app shell for one request.

The shell carries a base URL placeholder token and, for location pages, gets
the resolved LocationMeta spliced into <head> together with a crawler summary
inside the root element. Blocks written here are wrapped in marker comments,
so running the injector over its own output replaces them instead of adding
a second copy.
"""
import re
from typing import Optional

from django.conf import settings
from django.utils.html import format_html, format_html_join
from django.utils.safestring import mark_safe

from .meta import LocationMeta

BASE_URL_TOKEN = '__BASE_URL__'

HEAD_START = '<!-- location-meta:start -->'
HEAD_END = '<!-- location-meta:end -->'
SUMMARY_START = '<!-- location-summary:start -->'
SUMMARY_END = '<!-- location-summary:end -->'

HEAD_BLOCK_RE = re.compile(re.escape(HEAD_START) + r'.*?' + re.escape(HEAD_END) + r'\s*', re.S)
SUMMARY_BLOCK_RE = re.compile(re.escape(SUMMARY_START) + r'.*?' + re.escape(SUMMARY_END), re.S)
TITLE_RE = re.compile(r'<title\b[^>]*>.*?</title>', re.I | re.S)
DEFAULT_META_RE = re.compile(
    r'<meta\s+(?:name|property)\s*=\s*["\'](?:description|og:[\w:]+|twitter:[\w:]+)["\'][^>]*>\s*',
    re.I
)
CANONICAL_RE = re.compile(r'<link\s+rel\s*=\s*["\']canonical["\'][^>]*>\s*', re.I)
HEAD_CLOSE_RE = re.compile(r'</head\s*>', re.I)
ROOT_OPEN_RE = re.compile(r'<div\s+id\s*=\s*["\']root["\'][^>]*>', re.I)
BODY_OPEN_RE = re.compile(r'<body\b[^>]*>', re.I)


def inject_base_url(html: str, base_url: str) -> str:
    return html.replace(BASE_URL_TOKEN, base_url)


def render_head_block(meta: LocationMeta) -> str:
    return format_html(
        '{start}\n'
        '<meta name="description" content="{description}">\n'
        '<link rel="canonical" href="{url}">\n'
        '<meta property="og:type" content="place">\n'
        '<meta property="og:site_name" content="{site_name}">\n'
        '<meta property="og:title" content="{title}">\n'
        '<meta property="og:description" content="{description}">\n'
        '<meta property="og:url" content="{url}">\n'
        '<meta property="og:image" content="{og_image}">\n'
        '<meta name="twitter:card" content="summary_large_image">\n'
        '<meta name="twitter:title" content="{title}">\n'
        '<meta name="twitter:description" content="{description}">\n'
        '<meta name="twitter:image" content="{og_image}">\n'
        '<script type="application/ld+json">{structured_data}</script>\n'
        '<script>window.__LOCATION_DATA__ = {location_data};</script>\n'
        '{end}\n',
        start=mark_safe(HEAD_START),
        end=mark_safe(HEAD_END),
        site_name=settings.SITE_NAME,
        title=meta.title,
        description=meta.description,
        url=meta.url,
        og_image=meta.og_image,
        structured_data=meta.structured_data,
        location_data=meta.location_data,
    )


def render_summary_block(meta: LocationMeta) -> str:
    address = format_html('<p class="location-address">{}</p>', meta.address) if meta.address else ''
    tags = ''
    if meta.tags:
        tags = format_html(
            '<ul class="location-tags">{}</ul>',
            format_html_join('', '<li>{}</li>', ((tag,) for tag in meta.tags)),
        )
    return format_html(
        '{start}<article class="location-summary">'
        '<h1>{name}</h1>'
        '<span class="category-badge">{category}</span>'
        '<p class="location-neighborhood">{neighborhood}</p>'
        '<p class="location-description">{body}</p>'
        '{address}{tags}'
        '</article>{end}',
        start=mark_safe(SUMMARY_START),
        end=mark_safe(SUMMARY_END),
        name=meta.location_name,
        category=meta.category,
        neighborhood=meta.neighborhood,
        body=meta.body,
        address=address,
        tags=tags,
    )


def inject_location_meta(html: str, meta: LocationMeta) -> str:
    """
    Splices `meta` into the shell: page title, meta/Open Graph/Twitter tags,
    canonical link, JSON-LD and hydration data in <head>, and the crawler
    summary at the top of the root element.
    """
    html = HEAD_BLOCK_RE.sub('', html)
    html = SUMMARY_BLOCK_RE.sub('', html)

    title_tag = format_html('<title>{}</title>', meta.title)
    if TITLE_RE.search(html):
        html = TITLE_RE.sub(lambda m: title_tag, html, count=1)
    else:
        html = HEAD_CLOSE_RE.sub(lambda m: title_tag + '\n' + m.group(0), html, count=1)

    html = DEFAULT_META_RE.sub('', html)
    html = CANONICAL_RE.sub('', html)

    head_block = render_head_block(meta)
    html = HEAD_CLOSE_RE.sub(lambda m: head_block + m.group(0), html, count=1)

    summary = render_summary_block(meta)
    anchor = ROOT_OPEN_RE if ROOT_OPEN_RE.search(html) else BODY_OPEN_RE
    return anchor.sub(lambda m: m.group(0) + summary, html, count=1)


def render_document(html: str, base_url: str, meta: Optional[LocationMeta] = None) -> str:
    """
    Full per-request rewrite of the shell.
    Rendering its own output again gives the same document.
    """
    if meta is not None:
        html = inject_location_meta(html, meta)
    return inject_base_url(html, base_url)
