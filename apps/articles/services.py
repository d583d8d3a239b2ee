"""
Editorial workflow and scheduled publication services.

``EditorialWorkflow`` performs every status change requested by staff users:
it locks the article row, re-checks the transition guard against the locked
row and writes the new status in one transaction.

``PublicationSweep`` promotes SCHEDULED articles whose ``scheduled_at`` has
passed. Each article is published by its own conditional UPDATE, so a row
already published by a concurrent sweep is skipped rather than published
twice, and a failure on one row does not stop the others.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.events import ArticleTransitioned, article_transitioned
from apps.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from apps.core.metrics import (
    increment_articles_published,
    increment_sweep_failures,
    increment_sweeps,
    increment_transition,
    observe_sweep_duration,
)
from .models import Article, EditorialComment, Section, slugify_title
from .state_machine import (
    SYSTEM_ACTOR,
    Actor,
    ArticleStatus,
    EditorialTransitionGuard,
    TransitionAction,
)

logger = logging.getLogger(__name__)

CONTENT_FIELDS = ('title', 'slug', 'dek', 'body', 'section')


def _load_article(article_id, lock: bool = False) -> Article:
    queryset = Article.objects.select_related('section', 'author')
    if lock:
        queryset = Article.objects.select_for_update()
    try:
        return queryset.get(pk=article_id)
    except (Article.DoesNotExist, DjangoValidationError):
        raise NotFoundError("Article not found", details={'article_id': str(article_id)}) from None


def _resolve_section(value) -> Section:
    if isinstance(value, Section):
        return value
    try:
        return Section.objects.get(pk=value)
    except (Section.DoesNotExist, DjangoValidationError):
        raise ValidationError("Unknown section", field='section') from None


def unique_article_slug(title: str, exclude_pk=None) -> str:
    """Slug derived from ``title``, suffixed with -2, -3, ... until unused."""
    base = slugify_title(title) or 'article'
    candidate = base
    suffix = 2
    existing = Article.objects.all()
    if exclude_pk is not None:
        existing = existing.exclude(pk=exclude_pk)
    while existing.filter(slug=candidate).exists():
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def _emit_transition(article_id, action: TransitionAction, from_status, to_status, at, actor_id=None):
    payload = ArticleTransitioned(
        article_id=article_id,
        action=action.value,
        from_status=from_status.value,
        to_status=to_status.value,
        at=at,
        actor_id=actor_id,
    )
    transaction.on_commit(lambda: article_transitioned.publish(sender=Article, payload=payload))


def record_transition(sender, payload: ArticleTransitioned, **kwargs):
    """``article_transitioned`` subscriber: log and count every transition."""
    increment_transition(payload.action)
    logger.info(
        "Article %s: %s -> %s (%s by %s)",
        payload.article_id, payload.from_status, payload.to_status,
        payload.action, payload.actor_id or 'system',
    )


class EditorialWorkflow:
    """
    Staff-initiated operations on articles.

    All methods take an ``Actor`` and raise the API exceptions from
    ``apps.core.exceptions`` (or the guard's subclasses of them), so views can
    let them propagate to the exception handler.
    """

    def __init__(self, guard: Optional[EditorialTransitionGuard] = None):
        self.guard = guard or EditorialTransitionGuard()

    def create(self, actor: Actor, title: str, body: str, section, dek: str = '',
               slug: Optional[str] = None) -> Article:
        """Create a DRAFT article authored by ``actor``."""
        if actor.is_system or actor.role is None:
            raise PermissionDeniedError("Only staff members can create articles")
        if not (title or '').strip():
            raise ValidationError("Title is required", field='title')

        section = _resolve_section(section)
        if slug:
            if Article.objects.filter(slug=slug).exists():
                raise ValidationError("An article with this slug already exists", field='slug')
        else:
            slug = unique_article_slug(title)

        try:
            with transaction.atomic():
                article = Article.objects.create(
                    title=title.strip(),
                    slug=slug,
                    dek=dek or '',
                    body=body or '',
                    section=section,
                    author_id=actor.user_id,
                    status=ArticleStatus.DRAFT.value,
                )
        except IntegrityError:
            raise ValidationError("An article with this slug already exists", field='slug') from None

        logger.info("Article %s created by user %s", article.pk, actor.user_id)
        return article

    def transition(self, actor: Actor, article_id, action, scheduled_at: Optional[datetime] = None,
                   notes: Optional[str] = None) -> Article:
        """
        Move an article to the status ``action`` leads to.

        Args:
            actor: Who is asking
            article_id: Article primary key
            action: TransitionAction or its string value
            scheduled_at: Required for ``schedule``; a past value is accepted
            notes: Optional author-visible note for ``request_revisions``

        Raises:
            NotFoundError: no such article
            TransitionPermissionError / TransitionConflictError: from the guard
            ValidationError: ``schedule`` without ``scheduled_at``
        """
        if isinstance(action, str):
            try:
                action = TransitionAction.from_string(action)
            except ValueError:
                raise ValidationError(f"Unknown transition: {action}", field='action') from None

        if action is TransitionAction.SCHEDULE:
            if scheduled_at is None:
                raise ValidationError("scheduled_at is required to schedule an article", field='scheduled_at')
            if timezone.is_naive(scheduled_at):
                scheduled_at = timezone.make_aware(scheduled_at, dt_timezone.utc)

        with transaction.atomic():
            article = _load_article(article_id, lock=True)
            from_status = article.status_enum
            target = self.guard.check(actor, article, action)
            now = timezone.now()

            article.status = target.value
            if target is ArticleStatus.PUBLISHED:
                article.published_at = now
                article.scheduled_at = None
            elif target is ArticleStatus.SCHEDULED:
                article.scheduled_at = scheduled_at
            article.save(update_fields=['status', 'scheduled_at', 'published_at', 'updated_at'])

            if action is TransitionAction.REQUEST_REVISIONS and (notes or '').strip():
                EditorialComment.objects.create(
                    article=article,
                    editor_id=actor.user_id,
                    comment=notes.strip(),
                    is_internal=False,
                )

            _emit_transition(article.pk, action, from_status, target, now, actor.user_id)

        if target is ArticleStatus.PUBLISHED:
            increment_articles_published(1, trigger='editor')
        return article

    def add_comment(self, actor: Actor, article_id, comment: str, is_internal: bool = False) -> EditorialComment:
        """Record an editorial comment on an article in NEEDS_REVISIONS."""
        with transaction.atomic():
            article = _load_article(article_id, lock=True)
            text = self.guard.check_comment(actor, article, is_internal, comment)
            note = EditorialComment.objects.create(
                article=article,
                editor_id=actor.user_id,
                comment=text,
                is_internal=bool(is_internal),
            )

        logger.info(
            "%s note added to article %s by user %s",
            'Internal' if note.is_internal else 'Revision', article.pk, actor.user_id,
        )
        return note

    def visible_comments(self, actor: Actor, article_id):
        """Editors see every comment; the author sees only revision notes."""
        article = _load_article(article_id)
        comments = article.editorial_comments.select_related('editor').order_by('-created_at')
        if actor.is_editor:
            return comments
        if actor.is_author_of(article):
            return comments.filter(is_internal=False)
        raise PermissionDeniedError("You cannot view comments on this article")

    def update_content(self, actor: Actor, article_id, **fields) -> Article:
        """
        Edit an article's content. Never changes its status.

        Editing an article in NEEDS_REVISIONS clears its author-visible
        revision notes; internal notes are kept.
        """
        unknown = set(fields) - set(CONTENT_FIELDS)
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                details={'fields': sorted(unknown)},
            )

        with transaction.atomic():
            article = _load_article(article_id, lock=True)

            if not (actor.is_editor or actor.is_author_of(article)):
                raise PermissionDeniedError("You can only edit your own articles")
            if not article.status_enum.is_editable:
                raise StateConflictError(
                    "Scheduled articles cannot be edited",
                    details={'current_status': article.status},
                )

            changed = []
            for name, value in fields.items():
                if name == 'section':
                    value = _resolve_section(value)
                    if value.pk != article.section_id:
                        article.section = value
                        changed.append('section')
                    continue
                if name == 'title':
                    value = (value or '').strip()
                    if not value:
                        raise ValidationError("Title is required", field='title')
                if name == 'slug':
                    if not value:
                        continue
                    if Article.objects.filter(slug=value).exclude(pk=article.pk).exists():
                        raise ValidationError("An article with this slug already exists", field='slug')
                if getattr(article, name) != value:
                    setattr(article, name, value)
                    changed.append(name)

            if not changed:
                return article

            if 'body' in changed:
                changed.append('reading_time')
            article.save(update_fields=changed + ['updated_at'])

            if article.status_enum is ArticleStatus.NEEDS_REVISIONS:
                cleared, _ = article.editorial_comments.filter(is_internal=False).delete()
                if cleared:
                    logger.info("Cleared %d revision notes on article %s after edit", cleared, article.pk)

        logger.info("Article %s edited by user %s: %s", article.pk, actor.user_id, sorted(changed))
        return article

    def delete(self, actor: Actor, article_id) -> None:
        """ADMIN deletes any article; an author deletes only their own DRAFT."""
        with transaction.atomic():
            article = _load_article(article_id, lock=True)

            if not actor.is_admin:
                if not actor.is_author_of(article):
                    raise PermissionDeniedError("Only admins can delete other users' articles")
                if article.status_enum is not ArticleStatus.DRAFT:
                    raise StateConflictError(
                        "Authors can only delete their own drafts",
                        details={'current_status': article.status},
                    )

            article.delete()

        logger.info("Article %s deleted by user %s", article_id, actor.user_id)


def revision_notes_for(user) -> List[Dict[str, Any]]:
    """
    Author-visible revision notes on ``user``'s articles, grouped by article.

    Returns ``[{'article': {...}, 'notes': [...]}, ...]`` with the most
    recently noted article first.
    """
    notes = (
        EditorialComment.objects
        .filter(article__author=user, is_internal=False)
        .select_related('article', 'editor')
        .order_by('-created_at')
    )

    grouped: Dict[Any, Dict[str, Any]] = {}
    for note in notes:
        entry = grouped.get(note.article_id)
        if entry is None:
            entry = grouped[note.article_id] = {
                'article': {
                    'id': str(note.article.pk),
                    'title': note.article.title,
                    'slug': note.article.slug,
                    'status': note.article.status,
                },
                'notes': [],
            }
        entry['notes'].append({
            'id': str(note.pk),
            'comment': note.comment,
            'created_at': note.created_at.isoformat(),
            'editor': {
                'id': note.editor_id,
                'name': note.editor.get_full_name() or note.editor.get_username(),
                'email': note.editor.email,
            },
        })
    return list(grouped.values())


def scheduled_calendar(actor: Actor, year: int, month: int) -> Dict[str, List[Article]]:
    """
    SCHEDULED articles whose ``scheduled_at`` falls in the given UTC month,
    keyed by ``YYYY-MM-DD`` in ascending order. Contributors only see their
    own articles.
    """
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12", field='month')
    if not 1 <= year <= 9999:
        raise ValidationError("year is out of range", field='year')

    start = datetime(year, month, 1, tzinfo=dt_timezone.utc)
    end = start + timedelta(days=calendar.monthrange(year, month)[1])

    queryset = (
        Article.objects
        .filter(
            status=ArticleStatus.SCHEDULED.value,
            scheduled_at__gte=start,
            scheduled_at__lt=end,
        )
        .select_related('section', 'author')
        .order_by('scheduled_at')
    )
    if not actor.is_editor:
        queryset = queryset.filter(author_id=actor.user_id)

    days: Dict[str, List[Article]] = {}
    for article in queryset:
        key = article.scheduled_at.astimezone(dt_timezone.utc).strftime('%Y-%m-%d')
        days.setdefault(key, []).append(article)
    return days


@dataclass
class SweepResult:
    """Outcome of one publication sweep."""
    started_at: datetime
    published: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def published_count(self) -> int:
        return len(self.published)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'started_at': self.started_at.isoformat(),
            'published_count': self.published_count,
            'published': [
                {
                    **item,
                    'id': str(item['id']),
                    'scheduled_at': item['scheduled_at'].isoformat(),
                    'published_at': item['published_at'].isoformat(),
                }
                for item in self.published
            ],
            'skipped': list(self.skipped),
            'failed': list(self.failed),
        }


class PublicationSweep:
    """
    Publish every SCHEDULED article whose ``scheduled_at`` is due.

    Usage:
        result = PublicationSweep(trigger='beat').run()
    """

    def __init__(self, trigger: str = 'sweep', stale_after: Optional[int] = None):
        self.trigger = trigger
        if stale_after is None:
            stale_after = getattr(settings, 'PUBLICATION_STALE_WARNING_SECONDS', 86400)
        self.stale_after = timedelta(seconds=stale_after)

    def due_articles(self, now: datetime):
        return (
            Article.objects
            .filter(status=ArticleStatus.SCHEDULED.value, scheduled_at__lte=now)
            .order_by('scheduled_at')
            .values('id', 'title', 'slug', 'scheduled_at')
        )

    def run(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one sweep against a single timestamp.

        Raises only when the due articles cannot be listed at all; per-row
        failures are logged and reported in ``SweepResult.failed``.
        """
        now = now or timezone.now()
        result = SweepResult(started_at=now)

        with observe_sweep_duration():
            try:
                due = list(self.due_articles(now))
            except Exception:
                increment_sweeps('error')
                logger.exception("Publication sweep could not list scheduled articles")
                raise

            for row in due:
                lag = now - row['scheduled_at']
                if lag > self.stale_after:
                    logger.warning(
                        "Article %s was due %s ago (scheduled for %s); publishing now",
                        row['id'], lag, row['scheduled_at'].isoformat(),
                    )

                try:
                    updated = self._publish_row(row['id'], now)
                except Exception as exc:
                    logger.exception("Failed to publish scheduled article %s", row['id'])
                    result.failed.append({'id': str(row['id']), 'error': str(exc)})
                    continue

                if not updated:
                    logger.info("Article %s no longer due; skipped", row['id'])
                    result.skipped.append(str(row['id']))
                    continue

                result.published.append({**row, 'published_at': now})
                _emit_transition(
                    row['id'], TransitionAction.PUBLISH_SCHEDULED,
                    ArticleStatus.SCHEDULED, ArticleStatus.PUBLISHED, now, SYSTEM_ACTOR.user_id,
                )

        if result.published_count:
            increment_articles_published(result.published_count, trigger=self.trigger)
        if result.failed:
            increment_sweep_failures(len(result.failed))
        increment_sweeps('partial' if result.failed else 'success')

        logger.info(
            "Publication sweep at %s: %d published, %d skipped, %d failed",
            now.isoformat(), result.published_count, len(result.skipped), len(result.failed),
        )
        return result

    def _publish_row(self, article_id, now: datetime) -> int:
        with transaction.atomic():
            return (
                Article.objects
                .filter(pk=article_id, status=ArticleStatus.SCHEDULED.value, scheduled_at__lte=now)
                .update(
                    status=ArticleStatus.PUBLISHED.value,
                    published_at=now,
                    scheduled_at=None,
                    updated_at=now,
                )
            )
