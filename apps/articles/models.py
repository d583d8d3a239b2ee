"""
Article models for the Legal Newsroom.
Manages legal sections, articles and editorial comments.
"""

import math

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.text import slugify

from apps.core.models import BaseModel

from .state_machine import ArticleStatus


WORDS_PER_MINUTE = 200


def slugify_title(title: str) -> str:
    """URL slug for ``title``; empty when the title has no usable characters."""
    return slugify(title or '')


def estimate_reading_time(body: str) -> int:
    """Minutes to read ``body`` at WORDS_PER_MINUTE, at least 1."""
    words = len((body or '').split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


class Section(BaseModel):
    """
    A legal section articles are filed under (e.g. Constitutional, Corporate).
    """

    name = models.CharField(
        max_length=100,
        verbose_name='Name',
    )

    slug = models.SlugField(
        max_length=100,
        unique=True,
        verbose_name='Slug',
    )

    description = models.TextField(
        blank=True,
        verbose_name='Description',
    )

    color = models.CharField(
        max_length=7,
        default='#6B7280',
        verbose_name='Color',
        help_text='Hex color used by the dashboard'
    )

    class Meta:
        db_table = 'legal_sections'
        ordering = ['name']

    def __str__(self):
        return self.name


class Article(BaseModel):
    """
    A newsroom article moving through the editorial workflow.

    ``scheduled_at`` is set only while SCHEDULED and ``published_at`` only
    once PUBLISHED; both are enforced by check constraints.
    """

    STATUS_CHOICES = ArticleStatus.choices()

    title = models.CharField(
        max_length=255,
        verbose_name='Title',
    )

    slug = models.SlugField(
        max_length=255,
        unique=True,
        db_index=True,
        verbose_name='Slug',
        help_text='URL slug, derived from the title when omitted'
    )

    dek = models.TextField(
        blank=True,
        verbose_name='Dek',
        help_text='Summary shown under the headline'
    )

    body = models.TextField(
        verbose_name='Body',
    )

    reading_time = models.PositiveIntegerField(
        default=1,
        verbose_name='Reading Time',
        help_text='Estimated minutes to read'
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=ArticleStatus.DRAFT.value,
        db_index=True,
        verbose_name='Status',
        help_text='Editorial workflow status'
    )

    scheduled_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name='Scheduled At',
        help_text='When the publication sweep should publish this article'
    )

    published_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name='Published At',
    )

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='articles',
        verbose_name='Author',
    )

    section = models.ForeignKey(
        Section,
        on_delete=models.PROTECT,
        related_name='articles',
        verbose_name='Section',
    )

    class Meta:
        db_table = 'articles'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'scheduled_at'], name='articles_status_sched_idx'),
            models.Index(fields=['author', 'status'], name='articles_author_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status=ArticleStatus.SCHEDULED.value) | Q(scheduled_at__isnull=True),
                name='articles_scheduled_at_only_when_scheduled',
            ),
            models.CheckConstraint(
                condition=Q(status=ArticleStatus.PUBLISHED.value) | Q(published_at__isnull=True),
                name='articles_published_at_only_when_published',
            ),
        ]

    def __str__(self):
        return f"{self.title} [{self.status}]"

    @property
    def status_enum(self) -> ArticleStatus:
        return ArticleStatus.from_string(self.status)

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify_title(self.title) or str(self.id)
        self.reading_time = estimate_reading_time(self.body)
        super().save(*args, **kwargs)


class EditorialComment(BaseModel):
    """
    An editor's note on an article under revision.

    ``is_internal`` notes are for reviewers only; the others are revision
    notes shown to the author.
    """

    article = models.ForeignKey(
        Article,
        on_delete=models.CASCADE,
        related_name='editorial_comments',
        verbose_name='Article',
    )

    editor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='editorial_comments',
        verbose_name='Editor',
    )

    comment = models.TextField(
        verbose_name='Comment',
    )

    is_internal = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name='Internal',
        help_text='Reviewer-only note; hidden from the author'
    )

    class Meta:
        db_table = 'editorial_comments'
        ordering = ['-created_at']

    def __str__(self):
        kind = 'internal' if self.is_internal else 'revision note'
        return f"{kind} on {self.article_id}"
