"""
Tests for the staff profile admin.
"""

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from apps.core.events import user_updated
from apps.core.models import Role, StaffProfile
from apps.core.permissions import _role_cache_key, get_user_role

User = get_user_model()


@pytest.fixture
def desk_editor(db):
    user = User.objects.create_user(username='desk', password='testpass123')
    StaffProfile.objects.filter(user=user).update(role=Role.EDITOR)
    return user


def change_url(user):
    return f'/admin/core/staffprofile/{user.staff_profile.pk}/change/'


@pytest.mark.django_db
class TestStaffProfileAdmin:

    def test_demotion_clears_cached_role(self, admin_client, desk_editor, django_capture_on_commit_callbacks):
        assert get_user_role(desk_editor) is Role.EDITOR
        received = []

        with user_updated.subscribed(lambda sender, payload, **kw: received.append(payload)):
            with django_capture_on_commit_callbacks(execute=True):
                response = admin_client.post(change_url(desk_editor), {'role': 'CONTRIBUTOR', 'bio': ''})

        assert response.status_code == 302
        assert cache.get(_role_cache_key(desk_editor.pk)) is None
        assert get_user_role(desk_editor) is Role.CONTRIBUTOR
        assert [p.changes for p in received] == [{'role': 'CONTRIBUTOR'}]

    def test_bio_edit_keeps_cached_role(self, admin_client, desk_editor, django_capture_on_commit_callbacks):
        get_user_role(desk_editor)

        with django_capture_on_commit_callbacks(execute=True):
            admin_client.post(change_url(desk_editor), {'role': 'EDITOR', 'bio': 'Covers the Supreme Court'})

        desk_editor.staff_profile.refresh_from_db()
        assert desk_editor.staff_profile.bio == 'Covers the Supreme Court'
        assert cache.get(_role_cache_key(desk_editor.pk)) == 'EDITOR'

    def test_user_is_read_only_on_change(self, admin_client, desk_editor):
        response = admin_client.get(change_url(desk_editor))
        assert 'user' not in response.context['adminform'].form.fields
