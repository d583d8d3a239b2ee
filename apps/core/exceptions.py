"""
Error handling for the newsroom API.

Every error leaves the API in one envelope:

    {"error": {"code": ..., "message": ..., "field"?: ..., "details"?: ...},
     "request_id": ...}

Views and services raise NewsroomException subclasses; framework and store
exceptions are translated by ``newsroom_exception_handler``.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_VALUE = "INVALID_VALUE"

    # 401 / 403 / 429
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    RATE_LIMITED = "RATE_LIMITED"

    # 404 / 409
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    STATE_CONFLICT = "STATE_CONFLICT"

    # 5xx
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


# Codes for DRF's own exceptions, by HTTP status
_DRF_STATUS_CODES = {
    401: ErrorCode.AUTHENTICATION_REQUIRED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RATE_LIMITED,
}


@dataclass
class ErrorDetail:
    code: ErrorCode
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code.value if isinstance(self.code, ErrorCode) else self.code,
            "message": self.message,
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class ErrorResponse:
    error: ErrorDetail
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error.to_dict(),
            "request_id": self.request_id,
        }

    def to_response(self, status_code: int = 400) -> Response:
        return Response(self.to_dict(), status=status_code)


class NewsroomException(APIException):
    """
    Base exception for newsroom API errors.

    Subclasses pin ``status_code`` and ``error_code``; ``field`` names the
    offending input and ``details`` carries structured context such as the
    article's current status.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.INTERNAL_ERROR
    default_detail = "An error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_detail
        self.error_code = code or self.error_code
        self.field = field
        self.error_details = details or {}

        if status_code:
            self.status_code = status_code

        super().__init__(detail=self.message)

    def get_error_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            error=ErrorDetail(
                code=self.error_code,
                message=self.message,
                field=self.field,
                details=self.error_details or None,
            ),
            request_id=request_id or str(uuid.uuid4()),
        )


class ValidationError(NewsroomException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.VALIDATION_ERROR
    default_detail = "Validation failed"


class NotFoundError(NewsroomException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = ErrorCode.NOT_FOUND
    default_detail = "Resource not found"


class PermissionDeniedError(NewsroomException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = ErrorCode.PERMISSION_DENIED
    default_detail = "Permission denied"


class StateConflictError(NewsroomException):
    """The resource is not in a state that allows the requested operation."""
    status_code = status.HTTP_409_CONFLICT
    error_code = ErrorCode.STATE_CONFLICT
    default_detail = "Operation not allowed in the current state"


def get_request_id(request) -> str:
    if hasattr(request, 'request_id'):
        return request.request_id
    return str(uuid.uuid4())


def _render(code, message, status_code, request_id, details=None, field=None) -> Response:
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, field=field, details=details),
        request_id=request_id,
    ).to_response(status_code)


def _split_drf_payload(data):
    """Turn a DRF error payload into ``(message, details)``."""
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail']), None
        return "Validation failed", data
    if isinstance(data, list):
        return (str(data[0]) if data else "Error"), {"errors": data}
    return str(data), None


def newsroom_exception_handler(exc, context):
    """
    DRF exception handler (``REST_FRAMEWORK['EXCEPTION_HANDLER']``).

    Order matters: IntegrityError is a DatabaseError, so it is matched first.
    """
    request = context.get('request')
    request_id = get_request_id(request) if request else str(uuid.uuid4())

    if isinstance(exc, NewsroomException):
        logger.warning(
            "API error %s: %s",
            exc.error_code.value, exc.message,
            extra={
                "request_id": request_id,
                "error_code": exc.error_code.value,
                "field": exc.field,
                "status_code": exc.status_code,
            }
        )
        return exc.get_error_response(request_id).to_response(exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            message, details = "Validation failed", exc.message_dict
        else:
            message = exc.messages[0] if exc.messages else "Validation failed"
            details = {"errors": exc.messages}
        return _render(ErrorCode.VALIDATION_ERROR, message, status.HTTP_400_BAD_REQUEST, request_id, details)

    if isinstance(exc, Http404):
        return _render(ErrorCode.NOT_FOUND, str(exc) or "Resource not found", status.HTTP_404_NOT_FOUND, request_id)

    # Lost a uniqueness race, e.g. two articles claiming one slug
    if isinstance(exc, IntegrityError):
        logger.warning("Integrity error: %s", exc, extra={"request_id": request_id})
        return _render(ErrorCode.CONFLICT, "The change conflicts with existing data", status.HTTP_409_CONFLICT, request_id)

    if isinstance(exc, DatabaseError):
        logger.exception("Database error while handling request", extra={"request_id": request_id})
        return _render(
            ErrorCode.DATABASE_ERROR,
            "The article store is temporarily unavailable",
            status.HTTP_503_SERVICE_UNAVAILABLE,
            request_id,
        )

    response = drf_exception_handler(exc, context)
    if response is not None:
        if response.status_code >= 500:
            code = ErrorCode.INTERNAL_ERROR
        else:
            code = _DRF_STATUS_CODES.get(response.status_code, ErrorCode.VALIDATION_ERROR)
        message, details = _split_drf_payload(response.data)
        wrapped = _render(code, message, response.status_code, request_id, details)
        for header in ('WWW-Authenticate', 'Retry-After'):
            if header in response:
                wrapped[header] = response[header]
        return wrapped

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id, "exception_type": type(exc).__name__},
    )
    return _render(
        ErrorCode.INTERNAL_ERROR,
        "An unexpected error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        request_id,
    )


def error_response(
    code: ErrorCode,
    message: str,
    status_code: int = 400,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Response:
    """
    Build an error envelope for views that return errors instead of raising.
    """
    from apps.core.middleware import get_request_id as current_request_id

    if request_id is None:
        request_id = current_request_id() or str(uuid.uuid4())

    return _render(code, message, status_code, request_id, details, field=field)
