"""
URL routing for locations app.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CategoryViewSet, InsiderTipAdminViewSet, LocationViewSet, PopularTagsView

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False
router.register(r'locations', LocationViewSet, basename='location')
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'admin/insider-tips', InsiderTipAdminViewSet, basename='insider-tip')

app_name = 'locations'

urlpatterns = [
    path('tags', PopularTagsView.as_view(), name='popular-tags'),
    path('', include(router.urls)),
]
