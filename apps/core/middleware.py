"""
Request ID middleware for the newsroom API.

Generates and propagates a unique request ID per request so that dashboard
requests, editorial transitions and the Celery publication tasks they
trigger can be correlated in the logs.

- Accepts an incoming X-Request-ID header (must be a UUID)
- Adds the request ID to response headers
- Keeps request context in thread-local storage for logging
- Records HTTP request metrics
"""

import threading
import time
import uuid
import logging
from django.utils.deprecation import MiddlewareMixin

from apps.core.metrics import increment_http_request, observe_http_duration

logger = logging.getLogger(__name__)

# Thread-local storage for request context
_request_context = threading.local()


def get_request_id():
    """
    Get the current request ID from thread-local storage.

    Returns None if called outside of a request context.
    """
    return getattr(_request_context, 'request_id', None)


def set_request_context(request_id, user_id=None, path=None):
    """
    Set request context in thread-local storage.

    Used by Celery tasks and management commands that have no request.
    """
    _request_context.request_id = request_id
    _request_context.user_id = user_id
    _request_context.path = path


def clear_request_context():
    """Clear request context from thread-local storage."""
    _request_context.request_id = None
    _request_context.user_id = None
    _request_context.path = None


class RequestIDMiddleware(MiddlewareMixin):
    """
    Attach a request ID to every request and response.

    The ID is stored on ``request.request_id`` and in thread-local storage,
    and echoed back in the ``X-Request-ID`` response header.
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    RESPONSE_HEADER = 'X-Request-ID'

    def process_request(self, request):
        request_id = request.META.get(self.REQUEST_ID_HEADER)

        if request_id:
            try:
                uuid.UUID(request_id)
            except (ValueError, TypeError):
                request_id = str(uuid.uuid4())
        else:
            request_id = str(uuid.uuid4())

        user_id = None
        if hasattr(request, 'user') and request.user.is_authenticated:
            user_id = str(request.user.pk)

        set_request_context(request_id, user_id=user_id, path=request.path)
        request.request_id = request_id
        request._request_started = time.perf_counter()

        return None

    def process_response(self, request, response):
        request_id = getattr(request, 'request_id', None)

        if request_id:
            response[self.RESPONSE_HEADER] = request_id

        started = getattr(request, '_request_started', None)
        if started is not None:
            observe_http_duration(time.perf_counter() - started)
        increment_http_request(response.status_code)

        clear_request_context()

        return response


class RequestIDFilter(logging.Filter):
    """
    Logging filter that adds request_id to log records.

    Referenced from the LOGGING setting:

        'filters': {
            'request_id': {'()': 'apps.core.middleware.RequestIDFilter'},
        },
    """

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        return True


def setup_celery_request_context(headers):
    """Set up request context in a Celery task from its headers."""
    request_id = headers.get('request_id')
    if request_id:
        set_request_context(request_id)
    else:
        set_request_context(str(uuid.uuid4()))
