"""
Role-Based Permissions for the newsroom.

Maps StaffProfile.role to DRF permission classes.

Roles:
- CONTRIBUTOR: writes articles, sees and edits only their own
- EDITOR: reviews, approves, schedules and publishes any article
- ADMIN: everything an editor can do, plus user administration and deletes

Usage:
    from apps.core.permissions import IsEditor, IsAdmin, IsStaffMember

    class MyView(APIView):
        permission_classes = [IsAuthenticated, IsEditor]
"""

import logging

from django.conf import settings
from django.core.cache import cache
from rest_framework.permissions import BasePermission

from apps.core.events import user_updated
from apps.core.models import Role, StaffProfile

logger = logging.getLogger(__name__)

ROLE_CACHE_KEY = 'staff-role:{user_id}'

ROLE_LEVELS = {
    Role.CONTRIBUTOR: 1,
    Role.EDITOR: 2,
    Role.ADMIN: 3,
}


def _role_cache_key(user_id):
    return ROLE_CACHE_KEY.format(user_id=user_id)


def get_user_role(user):
    """
    Resolve the caller's editorial role.

    Returns None for anonymous users. Superusers are ADMIN; a user without a
    profile is a CONTRIBUTOR. Lookups are cached for ROLE_CACHE_TTL seconds
    and invalidated through the ``user_updated`` channel.
    """
    if not user or not user.is_authenticated:
        return None

    if user.is_superuser:
        return Role.ADMIN

    key = _role_cache_key(user.pk)
    role = cache.get(key)
    if role is None:
        role = (
            StaffProfile.objects.filter(user_id=user.pk)
            .values_list('role', flat=True)
            .first()
        ) or Role.CONTRIBUTOR
        cache.set(key, str(role), getattr(settings, 'ROLE_CACHE_TTL', 300))
    return Role(role)


def has_role(user, required_role):
    """
    Check if user has at least the required role level.

    Role hierarchy: ADMIN > EDITOR > CONTRIBUTOR
    """
    user_role = get_user_role(user)
    if not user_role:
        return False
    return ROLE_LEVELS[user_role] >= ROLE_LEVELS[Role(required_role)]


def invalidate_cached_role(sender, payload, **kwargs):
    """``user_updated`` subscriber: drop the cached role after a role change."""
    if payload.role_changed:
        cache.delete(_role_cache_key(payload.user_id))
        logger.info("Role cache cleared for user %s", payload.user_id)


def connect_role_cache_invalidation():
    """Subscribe the role cache to user updates. Called from CoreConfig.ready()."""
    return user_updated.subscribe(
        invalidate_cached_role,
        dispatch_uid='core.invalidate_cached_role',
    )


class RolePermission(BasePermission):
    """Base class for role-based permissions."""

    required_role = Role.CONTRIBUTOR

    def has_permission(self, request, view):
        return has_role(request.user, self.required_role)


class IsStaffMember(RolePermission):
    """Any newsroom staff user (contributor or higher)."""
    required_role = Role.CONTRIBUTOR
    message = "Newsroom staff access required."


class IsEditor(RolePermission):
    """
    Editors and admins.

    Editors can:
    - See every article
    - Approve, request revisions, schedule, publish
    - Write editorial comments
    """
    required_role = Role.EDITOR
    message = "Editor access required."


class IsAdmin(RolePermission):
    """
    Admins only.

    Admins can additionally:
    - Manage users and their roles
    - Delete any article
    """
    required_role = Role.ADMIN
    message = "Admin access required."
