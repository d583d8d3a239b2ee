"""
Health check, authentication and user administration views.
"""

from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator
from django.utils import timezone

from rest_framework import status
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.tokens import RefreshToken

from apps.core.exceptions import ErrorCode, error_response
from apps.core.observability import (
    health_checker,
    register_default_checks,
    HealthStatus,
)
from apps.core.permissions import IsAdmin
from apps.core.serializers import (
    CustomTokenObtainPairSerializer,
    UserSerializer,
    UserUpdateSerializer,
    UserAdminUpdateSerializer,
)
from apps.core.services import update_staff_user

User = get_user_model()


# Register default health checks on module load
register_default_checks()


@method_decorator(csrf_exempt, name='dispatch')
class HealthCheckView(View):
    """
    Health check endpoint.

    GET /health/ - Run all health checks
    GET /health/<check_name>/ - Run specific health check
    """

    def get(self, request, check_name=None):
        if check_name:
            result = health_checker.check(check_name)
            status_code = 503 if result.status == HealthStatus.UNHEALTHY else 200
            return JsonResponse({
                "status": result.status.value,
                "message": result.message,
                "details": result.details,
                "duration_ms": result.duration_ms,
            }, status=status_code)

        results = health_checker.check_all()
        status_code = 503 if results["status"] == HealthStatus.UNHEALTHY.value else 200
        return JsonResponse(results, status=status_code)


@method_decorator(csrf_exempt, name='dispatch')
class LivenessView(View):
    """Liveness probe: 200 while the process is serving."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


@method_decorator(csrf_exempt, name='dispatch')
class ReadinessView(View):
    """Readiness probe: 200 once the database is reachable."""

    def get(self, request):
        db_check = health_checker.check("database")

        if db_check.status == HealthStatus.HEALTHY:
            return JsonResponse({"status": "ready"})
        return JsonResponse({
            "status": "not_ready",
            "reason": db_check.message,
        }, status=503)


# =============================================================================
# JWT Authentication Views
# =============================================================================

class CustomTokenObtainPairView(TokenObtainPairView):
    """
    Login endpoint that returns JWT tokens.

    POST /api/auth/login/
    Body: {"username": "...", "password": "..."}
    Returns: {"access": "...", "refresh": "...", "user": {...}}
    """
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [AllowAny]


class CustomTokenRefreshView(TokenRefreshView):
    """
    POST /api/auth/refresh/
    Body: {"refresh": "..."}
    """
    permission_classes = [AllowAny]


class CurrentUserView(APIView):
    """
    Get or update the current authenticated user.

    GET /api/auth/me/ - Current user with role
    PATCH /api/auth/me/ - Update name, email, bio
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        serializer = UserUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        update_staff_user(request.user, serializer.validated_data)

        profile = getattr(request.user, 'staff_profile', None)
        if profile is not None:
            profile.last_active_at = timezone.now()
            profile.save(update_fields=['last_active_at'])

        return Response(UserSerializer(request.user).data)


class LogoutView(APIView):
    """
    Logout endpoint - blacklist refresh token.

    POST /api/auth/logout/
    Body: {"refresh": "..."}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if not refresh_token:
            return error_response(
                ErrorCode.MISSING_FIELD,
                "Refresh token required",
                field='refresh',
            )

        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as e:
            return error_response(ErrorCode.INVALID_CREDENTIALS, str(e))

        return Response({"message": "Successfully logged out"})


# =============================================================================
# User Administration
# =============================================================================

class UserListView(APIView):
    """
    GET /api/users/ - All staff users (admin only)
    """
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request):
        users = User.objects.select_related('staff_profile').order_by('username')
        return Response({
            'count': users.count(),
            'results': UserSerializer(users, many=True).data,
        })


class UserDetailView(APIView):
    """
    GET /api/users/{id}/ - One staff user (admin only)
    PATCH /api/users/{id}/ - Change role, activation, name, bio (admin only)

    Changes are announced on the ``user_updated`` channel.
    """
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        return Response(UserSerializer(user).data)

    def patch(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        serializer = UserAdminUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        if user.pk == request.user.pk and serializer.validated_data.get('is_active') is False:
            return error_response(
                ErrorCode.INVALID_VALUE,
                "You cannot deactivate your own account",
                status_code=status.HTTP_400_BAD_REQUEST,
                field='is_active',
            )

        changes = update_staff_user(user, serializer.validated_data)
        user.refresh_from_db()
        return Response({
            'user': UserSerializer(user).data,
            'changed': sorted(changes),
        })
