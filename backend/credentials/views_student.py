"""Student registration endpoints: admin approve/reject and index number allocation."""

from __future__ import annotations

from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .allocator import allocate_index_numbers
from .approval import approve_student, reject_student
from .domain_student import Student
from .exceptions import CredentialError
from .permissions import IsExamBoardAdmin
from .serializers_student import IndexNumberRequestSerializer, StudentSerializer
from .views_common import error_response

__all__ = ["StudentViewSet"]


class StudentViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Student.objects.select_related("school", "exam_year").order_by("id")
    serializer_class = StudentSerializer
    permission_classes = [IsAuthenticated, IsExamBoardAdmin]

    def get_queryset(self):
        qs = super().get_queryset()
        params = getattr(self.request, "query_params", {})
        for key in ("school", "exam_year"):
            value = (params.get(key) or "").strip()
            if value.isdigit():
                qs = qs.filter(**{f"{key}_id": int(value)})
        status_param = (params.get("status") or "").strip().lower()
        if status_param:
            qs = qs.filter(status=status_param)
        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(index_number=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(first_name_en__icontains=search)
                | Q(last_name_en__icontains=search)
            )
        return qs

    def _transition(self, fn, pk):
        try:
            student = fn(pk)
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(student).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        return self._transition(approve_student, pk)

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        return self._transition(reject_student, pk)

    @action(detail=False, methods=["post"], url_path="generate-index-numbers")
    def generate_index_numbers(self, request):
        ser = IndexNumberRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = allocate_index_numbers(ser.validated_data["student_ids"])
        return Response(result.as_dict(), status=status.HTTP_200_OK)
