from django.urls import path
from .views import SocialTrendsRefreshView

app_name = 'trends'

urlpatterns = [
    path('admin/social-trends/refresh', SocialTrendsRefreshView.as_view(), name='social-trends-refresh'),
]
