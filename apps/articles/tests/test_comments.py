"""
Tests for editorial comments and revision notes.
"""

from unittest.mock import patch

import pytest
from rest_framework import status

from apps.articles.models import EditorialComment
from apps.articles.state_machine import ArticleStatus
from apps.core.throttling import StateChangeThrottle


def comments_url(article):
    return f'/api/articles/{article.pk}/comments/'


def notes_url(article):
    return f'/api/articles/{article.pk}/revision-notes/'


@pytest.mark.django_db
class TestCreateComments:

    def test_editor_adds_revision_note(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)

        response = client_for(editor).post(
            comments_url(article), {'comment': 'Add the bench composition'}, format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['is_internal'] is False
        assert response.data['editor']['id'] == editor.pk

    def test_admin_adds_internal_note(self, client_for, admin, make_article):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)

        response = client_for(admin).post(
            comments_url(article), {'comment': 'Run past legal', 'is_internal': True}, format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert EditorialComment.objects.get(article=article).is_internal is True

    def test_revision_note_on_approved_article_fails(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.APPROVED)

        response = client_for(editor).post(comments_url(article), {'comment': 'Too late'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error']['code'] == 'STATE_CONFLICT'
        assert not EditorialComment.objects.exists()

    def test_author_cannot_comment(self, client_for, contributor, make_article):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)

        response = client_for(contributor).post(comments_url(article), {'comment': 'Done'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_blank_comment_rejected(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)

        response = client_for(editor).post(comments_url(article), {'comment': '   '}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_revision_notes_shortcut(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)

        response = client_for(editor).post(notes_url(article), {'notes': '  Shorten the dek  '}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['message'] == 'Revision notes sent successfully'
        note = EditorialComment.objects.get(article=article)
        assert note.comment == 'Shorten the dek'
        assert note.is_internal is False

    def test_revision_notes_shortcut_requires_needs_revisions(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.IN_REVIEW)
        response = client_for(editor).post(notes_url(article), {'notes': 'Shorten'}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_comment_on_missing_article(self, client_for, editor):
        response = client_for(editor).post(
            '/api/articles/00000000-0000-0000-0000-000000000000/comments/',
            {'comment': 'Hello'}, format='json',
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestListComments:

    @pytest.fixture
    def article_with_notes(self, make_article, editor):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)
        EditorialComment.objects.create(article=article, editor=editor, comment='Visible', is_internal=False)
        EditorialComment.objects.create(article=article, editor=editor, comment='Hidden', is_internal=True)
        return article

    def test_editor_sees_all(self, client_for, editor, article_with_notes):
        response = client_for(editor).get(comments_url(article_with_notes))
        assert response.data['count'] == 2

    def test_author_sees_only_revision_notes(self, client_for, contributor, article_with_notes):
        response = client_for(contributor).get(comments_url(article_with_notes))
        assert [c['comment'] for c in response.data['results']] == ['Visible']

    def test_other_contributor_cannot_see_comments(self, client_for, other_contributor, article_with_notes):
        response = client_for(other_contributor).get(comments_url(article_with_notes))
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestMyRevisionNotes:

    def test_grouped_by_article(self, client_for, contributor, other_contributor, editor, make_article):
        first = make_article(status=ArticleStatus.NEEDS_REVISIONS)
        second = make_article(status=ArticleStatus.NEEDS_REVISIONS)
        theirs = make_article(status=ArticleStatus.NEEDS_REVISIONS, author=other_contributor)
        EditorialComment.objects.create(article=first, editor=editor, comment='One', is_internal=False)
        EditorialComment.objects.create(article=first, editor=editor, comment='Two', is_internal=False)
        EditorialComment.objects.create(article=first, editor=editor, comment='Secret', is_internal=True)
        EditorialComment.objects.create(article=second, editor=editor, comment='Three', is_internal=False)
        EditorialComment.objects.create(article=theirs, editor=editor, comment='Not yours', is_internal=False)

        response = client_for(contributor).get('/api/articles/revision-notes/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_count'] == 3
        by_article = {
            entry['article']['id']: sorted(n['comment'] for n in entry['notes'])
            for entry in response.data['revision_notes']
        }
        assert by_article == {str(first.pk): ['One', 'Two'], str(second.pk): ['Three']}


@pytest.mark.django_db
class TestCommentThrottling:

    @pytest.fixture
    def exhausted_state_changes(self):
        with patch.object(StateChangeThrottle, 'allow_request', return_value=False), \
                patch.object(StateChangeThrottle, 'wait', return_value=None):
            yield

    def test_reading_comments_is_not_state_change_throttled(
        self, client_for, editor, make_article, exhausted_state_changes,
    ):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)
        response = client_for(editor).get(comments_url(article))
        assert response.status_code == status.HTTP_200_OK

    def test_writing_comments_is_state_change_throttled(
        self, client_for, editor, make_article, exhausted_state_changes,
    ):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)

        response = client_for(editor).post(comments_url(article), {'comment': 'Cite the bench'}, format='json')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert not EditorialComment.objects.exists()
