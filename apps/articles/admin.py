"""
Admin interface for articles, sections and editorial comments.

Status is read-only here; it changes only through the editorial workflow.
Scheduled articles are locked for editing, and editorial comments are
view-only since they are written through the guarded API.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import Article, EditorialComment, Section
from .state_machine import ArticleStatus

CONTENT_FIELDS = ('title', 'slug', 'dek', 'body', 'section', 'author')


class NoWriteAdminMixin:
    """
    No add or change. Delete stays allowed so that deleting an article can
    cascade to its comments.
    """

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Section)
class SectionAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'color_swatch']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}

    def color_swatch(self, obj):
        return format_html(
            '<span style="display:inline-block;width:1em;height:1em;background:{};"></span> {}',
            obj.color, obj.color,
        )
    color_swatch.short_description = 'Color'


class EditorialCommentInline(NoWriteAdminMixin, admin.TabularInline):
    model = EditorialComment
    extra = 0
    fields = ['editor', 'comment', 'is_internal', 'created_at']
    readonly_fields = ['created_at']
    raw_id_fields = ['editor']


@admin.register(Article)
class ArticleAdmin(admin.ModelAdmin):
    list_display = ['title_short', 'section', 'author', 'status', 'scheduled_at', 'published_at']
    list_filter = ['status', 'section', ('scheduled_at', admin.DateFieldListFilter)]
    search_fields = ['title', 'slug', 'dek']
    readonly_fields = ['id', 'status', 'scheduled_at', 'published_at', 'reading_time', 'created_at', 'updated_at']
    raw_id_fields = ['author']
    date_hierarchy = 'created_at'
    inlines = [EditorialCommentInline]

    fieldsets = (
        ('Content', {
            'fields': CONTENT_FIELDS
        }),
        ('Workflow', {
            'fields': ('status', 'scheduled_at', 'published_at', 'reading_time')
        }),
        ('Metadata', {
            'fields': ('id', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None and obj.status == ArticleStatus.SCHEDULED.value:
            readonly.extend(CONTENT_FIELDS)
        return readonly

    def title_short(self, obj):
        return obj.title[:60] + '...' if len(obj.title) > 60 else obj.title
    title_short.short_description = 'Title'


@admin.register(EditorialComment)
class EditorialCommentAdmin(NoWriteAdminMixin, admin.ModelAdmin):
    list_display = ['article', 'editor', 'is_internal', 'created_at']
    list_filter = ['is_internal']
    search_fields = ['comment', 'article__title']
    raw_id_fields = ['article', 'editor']
