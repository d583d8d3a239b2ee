"""
Prometheus metrics for the newsroom.

Metrics included:
- newsroom_publication_sweeps_total: Counter for sweeps, by outcome
- newsroom_articles_published_total: Counter for articles published, by trigger
- newsroom_publication_sweep_failures_total: Counter for rows a sweep failed to publish
- newsroom_publication_sweep_duration_seconds: Histogram for sweep duration
- newsroom_editorial_transitions_total: Counter for workflow transitions, by action
- newsroom_http_requests_total: Counter for HTTP requests, by status class

Cardinality Guidelines:
- All labels MUST be low-cardinality (small, bounded set of values)
- ALLOWED label values: outcome enums, transition actions, trigger types
- FORBIDDEN label values: article IDs, slugs, user IDs
- If per-article detail is needed, use logging instead

Usage:
    from apps.core.metrics import observe_sweep_duration, increment_sweeps

    with observe_sweep_duration():
        result = PublicationSweep().run()
    increment_sweeps(outcome='success')
"""

import time
from contextlib import contextmanager
import logging

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

publication_sweeps_total = Counter(
    'newsroom_publication_sweeps_total',
    'Total publication sweeps run',
    ['outcome']  # outcome: success/partial/error/locked
)

articles_published_total = Counter(
    'newsroom_articles_published_total',
    'Total articles moved to PUBLISHED',
    ['trigger']  # trigger: sweep/editor
)

publication_sweep_failures_total = Counter(
    'newsroom_publication_sweep_failures_total',
    'Scheduled articles a sweep failed to publish',
)

publication_sweep_duration_seconds = Histogram(
    'newsroom_publication_sweep_duration_seconds',
    'Duration of publication sweeps',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0]
)

editorial_transitions_total = Counter(
    'newsroom_editorial_transitions_total',
    'Editorial workflow transitions applied',
    ['action']
)

http_requests_total = Counter(
    'newsroom_http_requests_total',
    'Total HTTP requests',
    ['status_class']
)

http_request_duration_seconds = Histogram(
    'newsroom_http_request_duration_seconds',
    'HTTP request latency',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)


# ============================================================================
# Helper Functions
# ============================================================================

def increment_sweeps(outcome='success'):
    publication_sweeps_total.labels(outcome=outcome).inc()


def increment_articles_published(count=1, trigger='sweep'):
    if count:
        articles_published_total.labels(trigger=trigger).inc(count)


def increment_sweep_failures(count=1):
    if count:
        publication_sweep_failures_total.inc(count)


def increment_transition(action):
    editorial_transitions_total.labels(action=action).inc()


def _status_code_to_class(status_code) -> str:
    """Convert status code to class label (2xx, 3xx, etc.)."""
    try:
        code = int(status_code)
    except (ValueError, TypeError):
        return 'error'
    if 200 <= code < 300:
        return '2xx'
    elif 300 <= code < 400:
        return '3xx'
    elif 400 <= code < 500:
        return '4xx'
    elif 500 <= code < 600:
        return '5xx'
    return 'other'


def increment_http_request(status_code):
    http_requests_total.labels(status_class=_status_code_to_class(status_code)).inc()


def observe_http_duration(duration_seconds):
    http_request_duration_seconds.observe(duration_seconds)


@contextmanager
def observe_sweep_duration():
    """Context manager to time a publication sweep."""
    start = time.perf_counter()
    try:
        yield
    finally:
        publication_sweep_duration_seconds.observe(time.perf_counter() - start)


# ============================================================================
# Metrics View
# ============================================================================

def metrics_view(request):
    """Expose metrics in Prometheus text format."""
    from django.http import HttpResponse

    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
