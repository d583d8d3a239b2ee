"""
Serializers for the editorial dashboard API.
"""

from rest_framework import serializers

from .models import Article, EditorialComment, Section


class SectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Section
        fields = ['id', 'name', 'slug', 'description', 'color']


class AuthorSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.SerializerMethodField()
    email = serializers.EmailField()

    def get_name(self, user):
        return user.get_full_name() or user.get_username()


class ArticleListSerializer(serializers.ModelSerializer):
    """Compact serializer for article lists."""

    author = AuthorSerializer(read_only=True)
    section_name = serializers.CharField(source='section.name', read_only=True)

    class Meta:
        model = Article
        fields = [
            'id',
            'title',
            'slug',
            'dek',
            'status',
            'reading_time',
            'scheduled_at',
            'published_at',
            'author',
            'section',
            'section_name',
            'created_at',
            'updated_at',
        ]


class ArticleDetailSerializer(ArticleListSerializer):
    """
    Full article, plus the workflow actions the requesting user may take.

    Expects ``allowed_actions`` in the serializer context.
    """

    allowed_actions = serializers.SerializerMethodField()

    class Meta(ArticleListSerializer.Meta):
        fields = ArticleListSerializer.Meta.fields + ['body', 'allowed_actions']

    def get_allowed_actions(self, article):
        return self.context.get('allowed_actions', [])


class ArticleCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=255, required=False, allow_blank=True)
    dek = serializers.CharField(required=False, allow_blank=True, default='')
    body = serializers.CharField(allow_blank=True)
    section = serializers.PrimaryKeyRelatedField(queryset=Section.objects.all())


class ArticleUpdateSerializer(serializers.Serializer):
    """
    Content fields only. Status changes go through the transition endpoints.
    """

    title = serializers.CharField(max_length=255, required=False)
    slug = serializers.SlugField(max_length=255, required=False)
    dek = serializers.CharField(required=False, allow_blank=True)
    body = serializers.CharField(required=False, allow_blank=True)
    section = serializers.PrimaryKeyRelatedField(queryset=Section.objects.all(), required=False)

    def validate(self, attrs):
        unknown = set(self.initial_data) - set(self.fields)
        if 'status' in unknown:
            raise serializers.ValidationError(
                {'status': 'Status is changed through the workflow actions'}
            )
        return attrs


class ScheduleSerializer(serializers.Serializer):
    scheduled_at = serializers.DateTimeField()


class RequestRevisionsSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RevisionNotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)


class EditorialCommentSerializer(serializers.ModelSerializer):
    editor = AuthorSerializer(read_only=True)

    class Meta:
        model = EditorialComment
        fields = ['id', 'article', 'editor', 'comment', 'is_internal', 'created_at']
        read_only_fields = fields


class EditorialCommentCreateSerializer(serializers.Serializer):
    comment = serializers.CharField(allow_blank=True)
    is_internal = serializers.BooleanField(required=False, default=False)


class CalendarArticleSerializer(serializers.ModelSerializer):
    author = AuthorSerializer(read_only=True)
    section = SectionSerializer(read_only=True)

    class Meta:
        model = Article
        fields = [
            'id',
            'title',
            'slug',
            'dek',
            'status',
            'scheduled_at',
            'published_at',
            'created_at',
            'author',
            'section',
        ]


class CalendarQuerySerializer(serializers.Serializer):
    month = serializers.IntegerField(required=False, min_value=1, max_value=12)
    year = serializers.IntegerField(required=False, min_value=1, max_value=9999)
