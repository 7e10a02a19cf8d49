"""
URL routing for site-level pages. Include last: the final pattern serves the
SPA shell for every path not claimed by the API or Django admin.
"""
from django.contrib.sitemaps.views import sitemap
from django.urls import path, re_path
from .views import SITEMAPS, indexnow_key, robots_txt, spa_shell

app_name = 'seo'

urlpatterns = [
    path('sitemap.xml', sitemap, {'sitemaps': SITEMAPS}, name='sitemap'),
    path('robots.txt', robots_txt, name='robots'),
    re_path(r'^(?P<key>[a-f0-9]+)\.txt$', indexnow_key, name='indexnow-key'),
    re_path(r'^(?!api/|objects/|django-admin/|static/).*$', spa_shell, name='spa-shell'),
]
