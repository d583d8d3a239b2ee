"""
Tests for the Django admin: it must not get around the editorial workflow.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.articles.models import EditorialComment
from apps.articles.state_machine import ArticleStatus


def change_url(article):
    return f'/admin/articles/article/{article.pk}/change/'


def inline_management(total=0, prefix='editorial_comments'):
    return {
        f'{prefix}-TOTAL_FORMS': str(total),
        f'{prefix}-INITIAL_FORMS': '0',
        f'{prefix}-MIN_NUM_FORMS': '0',
        f'{prefix}-MAX_NUM_FORMS': '1000',
    }


@pytest.mark.django_db
class TestArticleAdmin:

    def test_scheduled_article_cannot_be_edited(self, admin_client, make_article, editor):
        article = make_article(status=ArticleStatus.SCHEDULED, scheduled_at=timezone.now() + timedelta(days=1))
        original_title = article.title
        data = {
            'title': 'Edited while scheduled',
            'body': 'Replaced body',
            **inline_management(total=1),
            'editorial_comments-0-editor': str(editor.pk),
            'editorial_comments-0-comment': 'Added from the admin',
        }

        response = admin_client.post(change_url(article), data)

        assert response.status_code < 500
        article.refresh_from_db()
        assert article.title == original_title
        assert article.status == ArticleStatus.SCHEDULED.value
        assert not EditorialComment.objects.filter(article=article).exists()

    def test_draft_content_is_editable(self, admin_client, make_article, contributor, section):
        article = make_article()
        data = {
            'title': 'Corrected headline',
            'slug': article.slug,
            'dek': '',
            'body': article.body,
            'section': str(section.pk),
            'author': str(contributor.pk),
            **inline_management(),
        }

        response = admin_client.post(change_url(article), data)

        assert response.status_code == 302
        article.refresh_from_db()
        assert article.title == 'Corrected headline'

    def test_scheduled_change_form_renders_content_read_only(self, admin_client, make_article):
        article = make_article(status=ArticleStatus.SCHEDULED, scheduled_at=timezone.now() + timedelta(hours=2))

        response = admin_client.get(change_url(article))

        assert response.status_code == 200
        assert 'title' not in response.context['adminform'].form.fields


@pytest.mark.django_db
class TestEditorialCommentAdmin:

    def test_comments_cannot_be_added(self, admin_client):
        response = admin_client.get('/admin/articles/editorialcomment/add/')
        assert response.status_code == 403

    def test_comments_can_be_viewed(self, admin_client, make_article, editor):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)
        note = EditorialComment.objects.create(article=article, editor=editor, comment='Check the citation')

        response = admin_client.get(f'/admin/articles/editorialcomment/{note.pk}/change/')

        assert response.status_code == 200
        response = admin_client.post(
            f'/admin/articles/editorialcomment/{note.pk}/change/', {'comment': 'Rewritten'},
        )
        note.refresh_from_db()
        assert note.comment == 'Check the citation'
