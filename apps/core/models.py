"""
Core models for the Legal Newsroom project.
Base classes and staff profiles.
"""

import uuid
from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone


class BaseModel(models.Model):
    """
    Abstract base model with common fields for all newsroom models.
    Provides UUID primary key and timestamp tracking.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name='ID',
        help_text='Unique identifier (UUID)'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name='Created At',
        help_text='Timestamp when record was created'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Updated At',
        help_text='Timestamp when record was last updated'
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        """
        Default string representation.
        Should be overridden in child classes.
        """
        return f"{self.__class__.__name__} ({self.id})"


class Role(models.TextChoices):
    """Newsroom staff roles, lowest privilege first."""
    CONTRIBUTOR = 'CONTRIBUTOR', 'Contributor'
    EDITOR = 'EDITOR', 'Editor'
    ADMIN = 'ADMIN', 'Administrator'


class StaffProfile(BaseModel):
    """
    Newsroom profile for a staff user.
    Linked 1:1 with Django User model; carries the editorial role.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='staff_profile',
        verbose_name='User',
        help_text='The associated Django user account'
    )

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CONTRIBUTOR,
        db_index=True,
        verbose_name='Role',
        help_text='Editorial role determining permitted workflow actions'
    )

    bio = models.TextField(
        blank=True,
        verbose_name='Bio',
        help_text='Short author biography'
    )

    # Session tracking
    last_active_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Last Active',
        help_text='When user was last active in the dashboard'
    )

    class Meta:
        db_table = 'staff_profiles'
        verbose_name = 'Staff Profile'
        verbose_name_plural = 'Staff Profiles'

    def __str__(self):
        return f"{self.user.username} ({self.role})"

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def is_editor(self):
        """Editors and admins both review articles."""
        return self.role in (Role.EDITOR, Role.ADMIN)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_staff_profile(sender, instance, created, **kwargs):
    """Auto-create StaffProfile when a new User is created."""
    if created:
        StaffProfile.objects.create(user=instance)
