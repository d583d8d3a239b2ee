"""
Editorial dashboard API views.

Every status change goes through ``EditorialWorkflow``; the views only parse
input, build the ``Actor`` for the caller and render results.
"""

import hmac
import logging

from django.conf import settings
from django.db.models import ProtectedError, Q
from django.utils import timezone
from django_filters import rest_framework as filters
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import (
    ErrorCode,
    PermissionDeniedError,
    StateConflictError,
    error_response,
)
from apps.core.permissions import IsAdmin, IsStaffMember
from apps.core.throttling import BurstThrottle, CronTriggerThrottle, StateChangeThrottle

from .models import Article, Section
from .serializers import (
    ArticleCreateSerializer,
    ArticleDetailSerializer,
    ArticleListSerializer,
    ArticleUpdateSerializer,
    CalendarArticleSerializer,
    CalendarQuerySerializer,
    EditorialCommentCreateSerializer,
    EditorialCommentSerializer,
    RequestRevisionsSerializer,
    RevisionNotesSerializer,
    ScheduleSerializer,
    SectionSerializer,
)
from .services import EditorialWorkflow, PublicationSweep, revision_notes_for, scheduled_calendar
from .state_machine import Actor, ArticleStatus, EditorialTransitionGuard, TransitionAction
from .tasks import publish_scheduled_articles

logger = logging.getLogger(__name__)

UUID_REGEX = r'[0-9a-fA-F-]{32,36}'


# =============================================================================
# Filters
# =============================================================================

class ArticleFilter(filters.FilterSet):
    """Filters for the article list."""
    status = filters.ChoiceFilter(field_name='status', choices=ArticleStatus.choices())
    author = filters.NumberFilter(field_name='author_id')
    section = filters.UUIDFilter(field_name='section_id')
    search = filters.CharFilter(method='filter_search')
    scheduled_after = filters.DateTimeFilter(field_name='scheduled_at', lookup_expr='gte')
    scheduled_before = filters.DateTimeFilter(field_name='scheduled_at', lookup_expr='lte')

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(dek__icontains=value))

    class Meta:
        model = Article
        fields = ['status', 'author', 'section']


# =============================================================================
# Articles
# =============================================================================

class ArticleViewSet(viewsets.ModelViewSet):
    """
    Editorial dashboard API.

    GET    /api/articles/                          - List (contributors: own only)
    POST   /api/articles/                          - Create a DRAFT
    GET    /api/articles/{id}/                     - Detail with allowed_actions
    PATCH  /api/articles/{id}/                     - Edit content
    DELETE /api/articles/{id}/                     - Delete
    POST   /api/articles/{id}/submit/              - DRAFT/NEEDS_REVISIONS -> IN_REVIEW
    POST   /api/articles/{id}/approve/             - IN_REVIEW -> APPROVED
    POST   /api/articles/{id}/request-revisions/   - IN_REVIEW -> NEEDS_REVISIONS
    POST   /api/articles/{id}/publish/             - APPROVED -> PUBLISHED
    POST   /api/articles/{id}/schedule/            - APPROVED -> SCHEDULED
    GET    /api/articles/{id}/comments/            - Editorial comments
    POST   /api/articles/{id}/comments/            - Add an editorial comment
    POST   /api/articles/{id}/revision-notes/      - Add an author-visible revision note
    GET    /api/articles/revision-notes/           - Caller's revision notes by article
    GET    /api/articles/calendar/?month=&year=    - Scheduled articles by day
    """

    permission_classes = [IsAuthenticated, IsStaffMember]
    throttle_classes = [BurstThrottle]
    filter_backends = [filters.DjangoFilterBackend, OrderingFilter]
    filterset_class = ArticleFilter
    ordering_fields = ['created_at', 'updated_at', 'scheduled_at', 'published_at', 'title']
    ordering = ['-created_at']
    lookup_value_regex = UUID_REGEX

    workflow = EditorialWorkflow()
    guard = EditorialTransitionGuard()

    def get_queryset(self):
        queryset = Article.objects.select_related('author', 'section')
        if self.action == 'list' and not self.actor.is_editor:
            queryset = queryset.filter(author_id=self.actor.user_id)
        return queryset

    def get_throttles(self):
        throttles = super().get_throttles()
        # Only comment writes draw on the state-change budget
        if self.action == 'comments' and self.request.method == 'POST':
            throttles.append(StateChangeThrottle())
        return throttles

    def get_serializer_class(self):
        if self.action == 'list':
            return ArticleListSerializer
        return ArticleDetailSerializer

    @property
    def actor(self) -> Actor:
        if not hasattr(self, '_actor'):
            self._actor = Actor.for_user(self.request.user)
        return self._actor

    def _detail(self, article, status_code=status.HTTP_200_OK):
        article = Article.objects.select_related('author', 'section').get(pk=article.pk)
        serializer = ArticleDetailSerializer(
            article,
            context={
                'request': self.request,
                'allowed_actions': self.guard.allowed_actions(self.actor, article),
            },
        )
        return Response(serializer.data, status=status_code)

    def retrieve(self, request, *args, **kwargs):
        article = self.get_object()
        if not (self.actor.is_editor or self.actor.is_author_of(article)):
            raise PermissionDeniedError("You can only view your own articles")
        return self._detail(article)

    def create(self, request, *args, **kwargs):
        serializer = ArticleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        article = self.workflow.create(self.actor, **serializer.validated_data)
        return self._detail(article, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = ArticleUpdateSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        article = self.workflow.update_content(self.actor, kwargs['pk'], **serializer.validated_data)
        return self._detail(article)

    def destroy(self, request, *args, **kwargs):
        self.workflow.delete(self.actor, kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    # -------------------------------------------------------------------------
    # Workflow transitions
    # -------------------------------------------------------------------------

    def _transition(self, pk, transition, **kwargs):
        article = self.workflow.transition(self.actor, pk, transition, **kwargs)
        return self._detail(article)

    @action(detail=True, methods=['post'], throttle_classes=[BurstThrottle, StateChangeThrottle])
    def submit(self, request, pk=None):
        return self._transition(pk, TransitionAction.SUBMIT)

    @action(detail=True, methods=['post'], throttle_classes=[BurstThrottle, StateChangeThrottle])
    def approve(self, request, pk=None):
        return self._transition(pk, TransitionAction.APPROVE)

    @action(
        detail=True, methods=['post'], url_path='request-revisions',
        throttle_classes=[BurstThrottle, StateChangeThrottle],
    )
    def request_revisions(self, request, pk=None):
        serializer = RequestRevisionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._transition(
            pk, TransitionAction.REQUEST_REVISIONS, notes=serializer.validated_data['notes'],
        )

    @action(detail=True, methods=['post'], throttle_classes=[BurstThrottle, StateChangeThrottle])
    def publish(self, request, pk=None):
        return self._transition(pk, TransitionAction.PUBLISH)

    @action(detail=True, methods=['post'], throttle_classes=[BurstThrottle, StateChangeThrottle])
    def schedule(self, request, pk=None):
        serializer = ScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._transition(
            pk, TransitionAction.SCHEDULE, scheduled_at=serializer.validated_data['scheduled_at'],
        )

    # -------------------------------------------------------------------------
    # Editorial comments
    # -------------------------------------------------------------------------

    @action(detail=True, methods=['get', 'post'])
    def comments(self, request, pk=None):
        if request.method == 'GET':
            comments = self.workflow.visible_comments(self.actor, pk)
            return Response({
                'count': comments.count(),
                'results': EditorialCommentSerializer(comments, many=True).data,
            })

        serializer = EditorialCommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = self.workflow.add_comment(
            self.actor,
            pk,
            serializer.validated_data['comment'],
            is_internal=serializer.validated_data['is_internal'],
        )
        return Response(EditorialCommentSerializer(note).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True, methods=['post'], url_path='revision-notes',
        throttle_classes=[BurstThrottle, StateChangeThrottle],
    )
    def revision_notes(self, request, pk=None):
        serializer = RevisionNotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = self.workflow.add_comment(self.actor, pk, serializer.validated_data['notes'], is_internal=False)
        return Response(
            {
                'message': 'Revision notes sent successfully',
                'revision_note': EditorialCommentSerializer(note).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=['get'], url_path='revision-notes', url_name='my-revision-notes')
    def my_revision_notes(self, request):
        grouped = revision_notes_for(request.user)
        return Response({
            'revision_notes': grouped,
            'total_count': sum(len(entry['notes']) for entry in grouped),
        })

    # -------------------------------------------------------------------------
    # Calendar
    # -------------------------------------------------------------------------

    @action(detail=False, methods=['get'])
    def calendar(self, request):
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        today = timezone.now()
        year = query.validated_data.get('year', today.year)
        month = query.validated_data.get('month', today.month)

        days = scheduled_calendar(self.actor, year, month)
        return Response({
            'year': year,
            'month': month,
            'total': sum(len(articles) for articles in days.values()),
            'days': {
                day: CalendarArticleSerializer(articles, many=True).data
                for day, articles in days.items()
            },
        })


# =============================================================================
# Sections
# =============================================================================

class SectionViewSet(viewsets.ModelViewSet):
    """
    Legal sections. Staff read; admins manage.
    """
    queryset = Section.objects.all()
    serializer_class = SectionSerializer
    throttle_classes = [BurstThrottle]
    pagination_class = None
    lookup_value_regex = UUID_REGEX

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [IsAuthenticated(), IsStaffMember()]
        return [IsAuthenticated(), IsAdmin()]

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError:
            raise StateConflictError(
                "Section still has articles",
                details={'section': instance.slug},
            ) from None


# =============================================================================
# External publication trigger
# =============================================================================

class PublishScheduledView(APIView):
    """
    External trigger for the publication sweep.

    POST /api/publish-scheduled/ - Run one sweep
    GET  /api/publish-scheduled/ - List articles that are due (read-only)

    Authenticated with ``X-API-Key: <CRON_API_KEY>`` or
    ``Authorization: Bearer <CRON_API_KEY>``.
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [CronTriggerThrottle]

    def _check_key(self, request):
        expected = getattr(settings, 'CRON_API_KEY', '') or ''
        if not expected:
            logger.error("Publication trigger called but CRON_API_KEY is not configured")
            return error_response(
                ErrorCode.SERVICE_UNAVAILABLE,
                "Publication trigger is not configured",
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        candidates = [request.headers.get('X-API-Key', '')]
        authorization = request.headers.get('Authorization', '')
        if authorization.startswith('Bearer '):
            candidates.append(authorization[len('Bearer '):])

        expected_bytes = expected.encode()
        if any(c and hmac.compare_digest(c.encode(), expected_bytes) for c in candidates):
            return None

        logger.warning("Rejected publication trigger from %s", request.META.get('REMOTE_ADDR'))
        return error_response(
            ErrorCode.AUTHENTICATION_REQUIRED,
            "Unauthorized",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    def get(self, request):
        denied = self._check_key(request)
        if denied is not None:
            return denied

        now = timezone.now()
        due = [
            {**row, 'id': str(row['id']), 'scheduled_at': row['scheduled_at'].isoformat()}
            for row in PublicationSweep().due_articles(now)
        ]
        return Response({
            'message': 'Scheduled articles check (read-only)',
            'currentTime': now.isoformat(),
            'readyToPublish': len(due),
            'articles': due,
        })

    def post(self, request):
        denied = self._check_key(request)
        if denied is not None:
            return denied

        result = publish_scheduled_articles(trigger='http')

        if result['status'] == 'skipped':
            return Response({
                'message': 'Publication sweep already running',
                'publishedCount': 0,
                'articles': [],
            })
        if result['status'] == 'error':
            return error_response(
                ErrorCode.INTERNAL_ERROR,
                "Publication sweep failed",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        count = result['published_count']
        return Response({
            'message': f"Successfully published {count} articles" if count else 'No articles ready for publishing',
            'publishedCount': count,
            'articles': result['published'],
            'failed': result['failed'],
            'timestamp': result['started_at'],
        })
