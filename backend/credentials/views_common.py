"""Shared helpers for the admin API views."""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response

from .exceptions import (
    CollisionExhausted,
    CredentialError,
    NotFound,
    RenderingFailure,
    StateConflict,
    ValidationError,
)

__all__ = ["error_response", "HTTP_STATUS_BY_ERROR"]

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    StateConflict: status.HTTP_409_CONFLICT,
    RenderingFailure: status.HTTP_502_BAD_GATEWAY,
    CollisionExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: CredentialError) -> Response:
    http_status = HTTP_STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if http_status >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return Response(exc.as_dict(), status=http_status)
