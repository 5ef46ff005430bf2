"""Certificate and transcript endpoints for the exam board."""

from __future__ import annotations

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .domain_credential import Certificate, CredentialKind, Transcript
from .exceptions import CredentialError
from .issuance import issue_credentials, issue_credentials_for_school, record_print, reissue_credential, revoke_credential
from .permissions import IsExamBoardAdmin
from .serializers_credential import CertificateSerializer, IssueRequestSerializer, ReasonSerializer, TranscriptSerializer
from .views_common import error_response

__all__ = ["CertificateViewSet", "TranscriptViewSet"]

logger = logging.getLogger(__name__)


class _CredentialViewSet(viewsets.ReadOnlyModelViewSet):
    kind = None
    permission_classes = [IsAuthenticated, IsExamBoardAdmin]

    def get_queryset(self):
        qs = super().get_queryset().select_related("student", "exam_year", "issued_by")
        params = getattr(self.request, "query_params", {})
        exam_year = (params.get("exam_year") or "").strip()
        if exam_year.isdigit():
            qs = qs.filter(exam_year_id=int(exam_year))
        school = (params.get("school") or "").strip()
        if school.isdigit():
            qs = qs.filter(student__school_id=int(school))
        active = (params.get("active") or "").strip().lower()
        if active in ("1", "true", "yes"):
            qs = qs.filter(revoked_at__isnull=True)
        return qs

    @action(detail=False, methods=["post"], url_path="generate")
    def generate(self, request):
        ser = IssueRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        options = {"reissue": data["reissue"], "issued_by": request.user}
        try:
            if data.get("student_ids"):
                result = issue_credentials(data["student_ids"], data["exam_year"], self.kind, **options)
            else:
                result = issue_credentials_for_school(data["school"], data["exam_year"], self.kind, **options)
        except CredentialError as exc:
            return error_response(exc)
        return Response(result.as_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="reissue")
    def reissue(self, request, pk=None):
        ser = ReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            credential = reissue_credential(
                self.kind, pk, reason=ser.validated_data["reason"], issued_by=request.user,
            )
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(credential).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="revoke")
    def revoke(self, request, pk=None):
        ser = ReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            credential = revoke_credential(self.kind, pk, reason=ser.validated_data["reason"], actor=request.user)
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(credential).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="print")
    def print_copy(self, request, pk=None):
        try:
            credential = record_print(self.kind, pk, actor=request.user)
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(credential).data, status=status.HTTP_200_OK)


class CertificateViewSet(_CredentialViewSet):
    kind = CredentialKind.CERTIFICATE
    queryset = Certificate.objects.all()
    serializer_class = CertificateSerializer


class TranscriptViewSet(_CredentialViewSet):
    kind = CredentialKind.TRANSCRIPT
    queryset = Transcript.objects.all()
    serializer_class = TranscriptSerializer
