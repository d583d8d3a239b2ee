"""
Rate Limiting / Throttling for the newsroom API.

Usage in views:
    from apps.core.throttling import StateChangeThrottle

    class ArticleViewSet(viewsets.ModelViewSet):
        throttle_classes = [BurstThrottle]

Rates come from REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']; each class falls
back to its own default when its scope is not configured.
"""

from django.core.exceptions import ImproperlyConfigured
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class _DefaultRateMixin:
    default_rate = None

    def get_rate(self):
        try:
            return super().get_rate()
        except ImproperlyConfigured:
            return self.default_rate


class BurstThrottle(_DefaultRateMixin, UserRateThrottle):
    """
    Burst throttle for the dashboard API.

    Default: 100 requests/minute
    """
    scope = 'burst'
    default_rate = '100/minute'


class StateChangeThrottle(_DefaultRateMixin, UserRateThrottle):
    """
    Throttle for editorial workflow transitions and comments.

    Applies to:
    - POST /api/articles/{id}/submit|approve|request-revisions|publish|schedule/
    - POST /api/articles/{id}/comments/

    Default: 30 requests/minute
    """
    scope = 'state_change'
    default_rate = '30/minute'


class CronTriggerThrottle(_DefaultRateMixin, AnonRateThrottle):
    """
    Throttle for the external publication trigger (keyed by client IP).

    Default: 12 requests/minute
    """
    scope = 'cron_trigger'
    default_rate = '12/minute'
