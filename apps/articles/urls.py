"""
Editorial dashboard API URLs.
"""

from django.urls import include, path

from config.routers import SafeDefaultRouter
from .views import ArticleViewSet, PublishScheduledView, SectionViewSet

app_name = 'articles'

router = SafeDefaultRouter()
router.register(r'', ArticleViewSet, basename='article')

urlpatterns = [
    path('', include(router.urls)),
]

# Mounted at /api/sections/ in main urls.py
sections_router = SafeDefaultRouter()
sections_router.register(r'', SectionViewSet, basename='section')
sections_urlpatterns = [
    path('', include(sections_router.urls)),
]

# Mounted at /api/publish-scheduled/ in main urls.py
publish_urlpatterns = [
    path('', PublishScheduledView.as_view(), name='publish-scheduled'),
]
