"""
Celery tasks for scheduled publication.
"""

import logging

from celery import shared_task
from django.conf import settings
from django.core.cache import cache

from .services import PublicationSweep

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = 'articles:publication-sweep-lock'


@shared_task(soft_time_limit=120)
def publish_scheduled_articles(trigger: str = 'beat'):
    """
    Run one publication sweep.

    Run this periodically via Celery beat. Ticks never overlap: a tick that
    finds another sweep holding the lock returns without sweeping. Errors are
    logged and returned; the next tick retries.
    """
    timeout = getattr(settings, 'PUBLICATION_SWEEP_LOCK_TIMEOUT', 240)
    if not cache.add(SWEEP_LOCK_KEY, 'locked', timeout):
        logger.info("Publication sweep already running; skipping this tick")
        return {"status": "skipped", "reason": "locked"}

    try:
        result = PublicationSweep(trigger=trigger).run()
    except Exception as exc:
        logger.error("Publication sweep failed: %s", exc)
        return {"status": "error", "error": str(exc)}
    finally:
        cache.delete(SWEEP_LOCK_KEY)

    return {"status": "completed", **result.to_dict()}
