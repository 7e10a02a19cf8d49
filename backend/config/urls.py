from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('django-admin/', admin.site.urls),
    path('api/auth/', include('user.urls')),
    path('api/', include('locations.urls')),
    path('api/', include('ticker.urls')),
    path('api/', include('trends.urls')),
    path('', include('seo.urls')),
]

handler404 = 'seo.views.page_not_found'
handler500 = 'seo.views.server_error'
