"""
Staff account updates.

All changes to a user's account or profile go through ``update_staff_user``
so that subscribers of the ``user_updated`` channel see every change.
"""

import logging
from typing import Any, Dict

from django.db import transaction

from .events import UserUpdated, user_updated
from .models import StaffProfile

logger = logging.getLogger(__name__)

USER_FIELDS = ('first_name', 'last_name', 'email', 'is_active')
PROFILE_FIELDS = ('role', 'bio')


def update_staff_user(user, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply ``data`` to ``user`` and its StaffProfile.

    Only values that actually change are written. Returns the changes as
    ``{field: new_value}`` and publishes them on ``user_updated`` once the
    transaction has committed.
    """
    changes = {}

    with transaction.atomic():
        profile, _ = StaffProfile.objects.select_for_update().get_or_create(user=user)

        user_dirty = []
        for name in USER_FIELDS:
            if name in data and getattr(user, name) != data[name]:
                setattr(user, name, data[name])
                user_dirty.append(name)
                changes[name] = data[name]

        profile_dirty = []
        for name in PROFILE_FIELDS:
            if name in data and getattr(profile, name) != data[name]:
                setattr(profile, name, data[name])
                profile_dirty.append(name)
                changes[name] = data[name]

        if user_dirty:
            user.save(update_fields=user_dirty)
        if profile_dirty:
            profile.save(update_fields=profile_dirty + ['updated_at'])

        if changes:
            payload = UserUpdated(user_id=user.pk, changes=dict(changes))
            transaction.on_commit(
                lambda: user_updated.publish(sender=StaffProfile, payload=payload)
            )

    if changes:
        logger.info("User %s updated: %s", user.pk, sorted(changes))
    return changes
