import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Section',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('slug', models.SlugField(max_length=100, unique=True, verbose_name='Slug')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('color', models.CharField(default='#6B7280', help_text='Hex color used by the dashboard', max_length=7, verbose_name='Color')),
            ],
            options={
                'db_table': 'legal_sections',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Article',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('title', models.CharField(max_length=255, verbose_name='Title')),
                ('slug', models.SlugField(help_text='URL slug, derived from the title when omitted', max_length=255, unique=True, verbose_name='Slug')),
                ('dek', models.TextField(blank=True, help_text='Summary shown under the headline', verbose_name='Dek')),
                ('body', models.TextField(verbose_name='Body')),
                ('reading_time', models.PositiveIntegerField(default=1, help_text='Estimated minutes to read', verbose_name='Reading Time')),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('IN_REVIEW', 'In Review'), ('NEEDS_REVISIONS', 'Needs Revisions'), ('APPROVED', 'Approved'), ('SCHEDULED', 'Scheduled'), ('PUBLISHED', 'Published')], db_index=True, default='DRAFT', help_text='Editorial workflow status', max_length=20, verbose_name='Status')),
                ('scheduled_at', models.DateTimeField(blank=True, db_index=True, help_text='When the publication sweep should publish this article', null=True, verbose_name='Scheduled At')),
                ('published_at', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Published At')),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='articles', to=settings.AUTH_USER_MODEL, verbose_name='Author')),
                ('section', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='articles', to='articles.section', verbose_name='Section')),
            ],
            options={
                'db_table': 'articles',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'scheduled_at'], name='articles_status_sched_idx'),
                    models.Index(fields=['author', 'status'], name='articles_author_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('status', 'SCHEDULED'), ('scheduled_at__isnull', True), _connector='OR'), name='articles_scheduled_at_only_when_scheduled'),
                    models.CheckConstraint(condition=models.Q(('status', 'PUBLISHED'), ('published_at__isnull', True), _connector='OR'), name='articles_published_at_only_when_published'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EditorialComment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('comment', models.TextField(verbose_name='Comment')),
                ('is_internal', models.BooleanField(db_index=True, default=False, help_text='Reviewer-only note; hidden from the author', verbose_name='Internal')),
                ('article', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='editorial_comments', to='articles.article', verbose_name='Article')),
                ('editor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='editorial_comments', to=settings.AUTH_USER_MODEL, verbose_name='Editor')),
            ],
            options={
                'db_table': 'editorial_comments',
                'ordering': ['-created_at'],
            },
        ),
    ]
