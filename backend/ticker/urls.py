from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ActiveTickerView, TickerItemAdminViewSet

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False
router.register(r'admin/ticker', TickerItemAdminViewSet, basename='ticker-item')

app_name = 'ticker'

urlpatterns = [
    path('ticker', ActiveTickerView.as_view(), name='active-ticker'),
    path('', include(router.urls)),
]
