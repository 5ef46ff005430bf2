"""Public verification endpoints (no authentication)."""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .verification import verify

__all__ = ["VerifyCredentialView", "NOT_FOUND_BODY"]

NOT_FOUND_BODY = {"valid": False, "detail": "Not found."}


class VerifyCredentialView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    kind = None

    def get(self, request, token=None):
        result = verify(token, kind=self.kind)
        if not result.valid:
            return Response(dict(NOT_FOUND_BODY), status=status.HTTP_404_NOT_FOUND)
        return Response({"valid": True, **result.summary}, status=status.HTTP_200_OK)
