"""
URL configuration for the Legal Newsroom project.
"""

from django.contrib import admin
from django.urls import path, include

from apps.core.urls import auth_urlpatterns, users_urlpatterns
from apps.articles.urls import publish_urlpatterns, sections_urlpatterns

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('rest_framework.urls')),
    # Auth endpoints
    path('api/auth/', include((auth_urlpatterns, 'auth'))),
    # User administration
    path('api/users/', include((users_urlpatterns, 'users'))),
    # Editorial dashboard
    path('api/articles/', include('apps.articles.urls')),
    path('api/sections/', include((sections_urlpatterns, 'sections'))),
    # External publication trigger
    path('api/publish-scheduled/', include((publish_urlpatterns, 'publication'))),
    # Observability endpoints
    path('', include('apps.core.urls')),
]

# Customize admin site
admin.site.site_header = "Legal Newsroom Administration"
admin.site.site_title = "Legal Newsroom Admin"
admin.site.index_title = "Editorial administration"
