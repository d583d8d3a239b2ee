"""
Tests for the editorial dashboard API: article CRUD and workflow transitions.
"""

from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.utils import timezone
from prometheus_client import REGISTRY
from rest_framework import status

from apps.articles.models import Article, EditorialComment
from apps.articles.services import EditorialWorkflow, PublicationSweep
from apps.articles.state_machine import Actor, ArticleStatus
from apps.core.events import article_transitioned


def url(article=None, action=None):
    if article is None:
        return '/api/articles/'
    base = f'/api/articles/{article.pk}/'
    return f'{base}{action}/' if action else base


def error_code(response):
    return response.data['error']['code']


@pytest.mark.django_db
class TestCreateAndRead:

    def test_contributor_creates_draft(self, client_for, contributor, section):
        response = client_for(contributor).post(url(), {
            'title': 'High Court Strikes Down Levy',
            'dek': 'A landmark ruling',
            'body': 'word ' * 450,
            'section': str(section.pk),
            'status': 'PUBLISHED',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'DRAFT'
        assert response.data['slug'] == 'high-court-strikes-down-levy'
        assert response.data['reading_time'] == 3
        assert response.data['author']['id'] == contributor.pk
        assert response.data['allowed_actions'] == ['submit']

    def test_duplicate_titles_get_distinct_slugs(self, client_for, contributor, section):
        client = client_for(contributor)
        payload = {'title': 'Bail Reform', 'body': 'text', 'section': str(section.pk)}

        first = client.post(url(), payload, format='json')
        second = client.post(url(), payload, format='json')

        assert first.data['slug'] == 'bail-reform'
        assert second.data['slug'] == 'bail-reform-2'

    def test_explicit_duplicate_slug_rejected(self, client_for, contributor, section, make_article):
        existing = make_article()
        response = client_for(contributor).post(url(), {
            'title': 'Another', 'body': 'text', 'section': str(section.pk), 'slug': existing.slug,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['field'] == 'slug'

    def test_unauthenticated_rejected(self, db):
        from rest_framework.test import APIClient
        response = APIClient().get(url())
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_contributor_lists_only_own_articles(self, client_for, contributor, other_contributor, make_article):
        mine = make_article()
        make_article(author=other_contributor)

        response = client_for(contributor).get(url())

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.data['results']] == [str(mine.pk)]

    def test_editor_lists_everything(self, client_for, editor, other_contributor, make_article):
        make_article()
        make_article(author=other_contributor)

        response = client_for(editor).get(url())

        assert response.data['count'] == 2

    def test_filters(self, client_for, editor, make_article):
        in_review = make_article(status=ArticleStatus.IN_REVIEW, title='Tax tribunal decision')
        make_article(status=ArticleStatus.DRAFT, title='Tax tribunal appeal')
        client = client_for(editor)

        by_status = client.get(url(), {'status': 'IN_REVIEW'})
        by_search = client.get(url(), {'search': 'appeal'})

        assert [item['id'] for item in by_status.data['results']] == [str(in_review.pk)]
        assert by_search.data['count'] == 1

    def test_contributor_cannot_read_others_article(self, client_for, contributor, other_contributor, make_article):
        theirs = make_article(author=other_contributor)
        response = client_for(contributor).get(url(theirs))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_article_is_404(self, client_for, editor):
        response = client_for(editor).get('/api/articles/00000000-0000-0000-0000-000000000000/')
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestTransitions:

    def test_contributor_cannot_publish_own_draft(self, client_for, contributor, make_article):
        article = make_article()

        response = client_for(contributor).post(url(article, 'publish'))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert error_code(response) == 'PERMISSION_DENIED'
        article.refresh_from_db()
        assert article.status == 'DRAFT'
        assert article.published_at is None

    def test_editor_cannot_publish_draft(self, client_for, editor, make_article):
        article = make_article()

        response = client_for(editor).post(url(article, 'publish'))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert error_code(response) == 'STATE_CONFLICT'
        article.refresh_from_db()
        assert article.status == 'DRAFT'

    def test_full_review_and_publish_flow(self, client_for, contributor, editor, make_article):
        article = make_article()

        submitted = client_for(contributor).post(url(article, 'submit'))
        assert submitted.status_code == status.HTTP_200_OK
        assert submitted.data['status'] == 'IN_REVIEW'

        approved = client_for(editor).post(url(article, 'approve'))
        assert approved.data['status'] == 'APPROVED'
        assert sorted(approved.data['allowed_actions']) == ['publish', 'schedule']

        before = timezone.now()
        published = client_for(editor).post(url(article, 'publish'))
        assert published.data['status'] == 'PUBLISHED'

        article.refresh_from_db()
        assert article.published_at >= before
        assert article.scheduled_at is None

    def test_request_revisions_records_note(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.IN_REVIEW)

        response = client_for(editor).post(
            url(article, 'request-revisions'), {'notes': 'Cite the judgment number'}, format='json',
        )

        assert response.data['status'] == 'NEEDS_REVISIONS'
        note = EditorialComment.objects.get(article=article)
        assert note.comment == 'Cite the judgment number'
        assert note.is_internal is False
        assert note.editor == editor

    def test_request_revisions_without_notes(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.IN_REVIEW)

        response = client_for(editor).post(url(article, 'request-revisions'))

        assert response.data['status'] == 'NEEDS_REVISIONS'
        assert not EditorialComment.objects.filter(article=article).exists()

    def test_schedule_requires_time(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.APPROVED)

        response = client_for(editor).post(url(article, 'schedule'), {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        article.refresh_from_db()
        assert article.status == 'APPROVED'

    def test_schedule_then_sweep_publishes(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.APPROVED)
        when = timezone.now() + timedelta(hours=2)

        response = client_for(editor).post(
            url(article, 'schedule'), {'scheduled_at': when.isoformat()}, format='json',
        )
        assert response.data['status'] == 'SCHEDULED'
        assert response.data['allowed_actions'] == []

        PublicationSweep().run(now=when - timedelta(minutes=1))
        article.refresh_from_db()
        assert article.status == 'SCHEDULED'

        PublicationSweep().run(now=when + timedelta(minutes=1))
        article.refresh_from_db()
        assert article.status == 'PUBLISHED'
        assert article.published_at >= when

    def test_past_schedule_is_accepted(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.APPROVED)
        past = timezone.now() - timedelta(hours=1)

        response = client_for(editor).post(
            url(article, 'schedule'), {'scheduled_at': past.isoformat()}, format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        PublicationSweep().run()
        article.refresh_from_db()
        assert article.status == 'PUBLISHED'

    def test_transition_event_and_metric(self, client_for, editor, make_article, django_capture_on_commit_callbacks):
        article = make_article(status=ArticleStatus.IN_REVIEW)
        received = []
        before = REGISTRY.get_sample_value('newsroom_editorial_transitions_total', {'action': 'approve'}) or 0

        def receiver(sender, payload, **kwargs):
            received.append(payload)

        with article_transitioned.subscribed(receiver):
            with django_capture_on_commit_callbacks(execute=True):
                client_for(editor).post(url(article, 'approve'))

        assert len(received) == 1
        assert received[0].article_id == article.pk
        assert received[0].from_status == 'IN_REVIEW'
        assert received[0].to_status == 'APPROVED'
        assert received[0].actor_id == editor.pk
        after = REGISTRY.get_sample_value('newsroom_editorial_transitions_total', {'action': 'approve'})
        assert after == before + 1

    def test_denied_transition_emits_nothing(self, client_for, contributor, make_article,
                                             django_capture_on_commit_callbacks):
        article = make_article(status=ArticleStatus.IN_REVIEW)
        received = []

        with article_transitioned.subscribed(lambda sender, payload, **kw: received.append(payload)):
            with django_capture_on_commit_callbacks(execute=True):
                client_for(contributor).post(url(article, 'approve'))

        assert received == []


@pytest.mark.django_db
class TestContentEdits:

    def test_author_edits_own_article(self, client_for, contributor, make_article):
        article = make_article()

        response = client_for(contributor).patch(url(article), {'body': 'word ' * 600}, format='json')

        assert response.status_code == status.HTTP_200_OK
        article.refresh_from_db()
        assert article.reading_time == 3
        assert article.status == 'DRAFT'

    def test_author_cannot_edit_others_article(self, client_for, contributor, other_contributor, make_article):
        theirs = make_article(author=other_contributor)
        response = client_for(contributor).patch(url(theirs), {'title': 'Mine now'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_editor_edits_any_article(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.IN_REVIEW)
        response = client_for(editor).patch(url(article), {'dek': 'Tightened dek'}, format='json')
        assert response.data['dek'] == 'Tightened dek'
        assert response.data['status'] == 'IN_REVIEW'

    def test_scheduled_article_is_locked(self, client_for, editor, make_article):
        article = make_article(status=ArticleStatus.SCHEDULED, scheduled_at=timezone.now() + timedelta(days=1))
        response = client_for(editor).patch(url(article), {'title': 'Late change'}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_status_cannot_be_patched(self, client_for, editor, make_article):
        article = make_article()
        response = client_for(editor).patch(url(article), {'status': 'PUBLISHED'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        article.refresh_from_db()
        assert article.status == 'DRAFT'

    def test_title_is_stripped_on_edit(self, editor, make_article):
        article = make_article(status=ArticleStatus.IN_REVIEW)

        EditorialWorkflow().update_content(Actor.for_user(editor), article.pk, title='  Padded headline  ')

        article.refresh_from_db()
        assert article.title == 'Padded headline'

    def test_edit_in_revisions_clears_revision_notes(self, client_for, contributor, editor, make_article):
        article = make_article(status=ArticleStatus.NEEDS_REVISIONS)
        EditorialComment.objects.create(article=article, editor=editor, comment='Fix intro', is_internal=False)
        internal = EditorialComment.objects.create(article=article, editor=editor, comment='Legal check', is_internal=True)

        client_for(contributor).patch(url(article), {'body': 'Rewritten intro'}, format='json')

        assert list(EditorialComment.objects.filter(article=article)) == [internal]


@pytest.mark.django_db
class TestDelete:

    def test_author_deletes_own_draft(self, client_for, contributor, make_article):
        article = make_article()
        response = client_for(contributor).delete(url(article))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Article.objects.filter(pk=article.pk).exists()

    def test_author_cannot_delete_submitted_article(self, client_for, contributor, make_article):
        article = make_article(status=ArticleStatus.IN_REVIEW)
        response = client_for(contributor).delete(url(article))
        assert response.status_code == status.HTTP_409_CONFLICT
        assert Article.objects.filter(pk=article.pk).exists()

    def test_editor_cannot_delete_others_article(self, client_for, editor, make_article):
        article = make_article()
        response = client_for(editor).delete(url(article))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_deletes_published_article(self, client_for, admin, make_article):
        article = make_article(status=ArticleStatus.PUBLISHED, published_at=timezone.now())
        response = client_for(admin).delete(url(article))
        assert response.status_code == status.HTTP_204_NO_CONTENT


@pytest.mark.django_db
class TestCalendar:

    def test_groups_scheduled_articles_by_utc_day(self, client_for, editor, other_contributor, make_article):
        first = make_article(status=ArticleStatus.SCHEDULED,
                             scheduled_at=datetime(2031, 3, 4, 23, 30, tzinfo=dt_timezone.utc))
        second = make_article(status=ArticleStatus.SCHEDULED, author=other_contributor,
                              scheduled_at=datetime(2031, 3, 4, 8, 0, tzinfo=dt_timezone.utc))
        make_article(status=ArticleStatus.SCHEDULED,
                     scheduled_at=datetime(2031, 4, 1, 0, 0, tzinfo=dt_timezone.utc))

        response = client_for(editor).get('/api/articles/calendar/', {'month': 3, 'year': 2031})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total'] == 2
        assert list(response.data['days']) == ['2031-03-04']
        assert [a['id'] for a in response.data['days']['2031-03-04']] == [str(second.pk), str(first.pk)]

    def test_contributor_sees_own_only(self, client_for, contributor, other_contributor, make_article):
        make_article(status=ArticleStatus.SCHEDULED, author=other_contributor,
                     scheduled_at=datetime(2031, 3, 10, 12, 0, tzinfo=dt_timezone.utc))

        response = client_for(contributor).get('/api/articles/calendar/', {'month': 3, 'year': 2031})

        assert response.data['total'] == 0

    def test_month_out_of_range(self, client_for, editor):
        response = client_for(editor).get('/api/articles/calendar/', {'month': 13, 'year': 2031})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestSections:

    def test_staff_list_sections(self, client_for, contributor, section):
        response = client_for(contributor).get('/api/sections/')
        assert response.status_code == status.HTTP_200_OK
        assert [s['slug'] for s in response.data] == ['constitutional']

    def test_only_admin_creates_sections(self, client_for, editor, admin):
        payload = {'name': 'Corporate', 'slug': 'corporate', 'color': '#112233'}
        assert client_for(editor).post('/api/sections/', payload, format='json').status_code == 403
        assert client_for(admin).post('/api/sections/', payload, format='json').status_code == 201

    def test_section_with_articles_cannot_be_deleted(self, client_for, admin, section, make_article):
        make_article()
        response = client_for(admin).delete(f'/api/sections/{section.pk}/')
        assert response.status_code == status.HTTP_409_CONFLICT
