"""
Shared fixtures for the articles tests.
"""

import itertools

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.articles.models import Article, Section
from apps.articles.state_machine import ArticleStatus
from apps.core.models import Role, StaffProfile

User = get_user_model()

_counter = itertools.count(1)


def make_staff(username, role):
    user = User.objects.create_user(
        username=username,
        email=f'{username}@newsroom.test',
        password='testpass123',
    )
    StaffProfile.objects.filter(user=user).update(role=role)
    return user


@pytest.fixture
def contributor(db):
    return make_staff('contributor', Role.CONTRIBUTOR)


@pytest.fixture
def other_contributor(db):
    return make_staff('other', Role.CONTRIBUTOR)


@pytest.fixture
def editor(db):
    return make_staff('editor', Role.EDITOR)


@pytest.fixture
def admin(db):
    return make_staff('chief', Role.ADMIN)


@pytest.fixture
def section(db):
    return Section.objects.create(name='Constitutional', slug='constitutional')


@pytest.fixture
def make_article(section, contributor):
    """Factory: make_article(status=..., author=..., **fields)."""
    def _make(status=ArticleStatus.DRAFT, author=None, **fields):
        n = next(_counter)
        fields.setdefault('title', f'Supreme Court ruling {n}')
        fields.setdefault('body', 'The court held that ' * 50)
        return Article.objects.create(
            status=status.value if isinstance(status, ArticleStatus) else status,
            author=author or contributor,
            section=fields.pop('section', section),
            **fields,
        )
    return _make


@pytest.fixture
def client_for():
    """Factory returning an APIClient authenticated as ``user``."""
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client
