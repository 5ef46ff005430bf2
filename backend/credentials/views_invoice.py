"""Invoice endpoints: generation, slip upload, payment confirmation, cohort approval."""

from __future__ import annotations

import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .approval import approve_cohort_for_invoice
from .domain_invoice import Invoice
from .exceptions import CredentialError
from .invoicing import attach_payment_evidence, confirm_payment, generate_invoice, recompute_invoice
from .permissions import IsExamBoardAdmin
from .serializers_invoice import (
    ConfirmPaymentSerializer,
    InvoiceGenerateSerializer,
    InvoiceRecomputeSerializer,
    InvoiceSerializer,
    PaymentEvidenceSerializer,
)
from .views_common import error_response

__all__ = ["InvoiceViewSet"]

logger = logging.getLogger(__name__)


class InvoiceViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, mixins.UpdateModelMixin, viewsets.GenericViewSet):
    """Invoices are created by ``generate`` and move only through the actions below."""

    queryset = Invoice.objects.select_related("school", "exam_year", "confirmed_by").prefetch_related("items__student")
    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated, IsExamBoardAdmin]

    def get_queryset(self):
        qs = super().get_queryset()
        params = getattr(self.request, "query_params", {})
        status_param = (params.get("status") or "").strip().lower()
        if status_param:
            qs = qs.filter(status=status_param)
        for key in ("school", "exam_year"):
            value = (params.get(key) or "").strip()
            if value.isdigit():
                qs = qs.filter(**{f"{key}_id": int(value)})
        return qs

    @action(detail=False, methods=["post"], url_path="generate")
    def generate(self, request):
        ser = InvoiceGenerateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        try:
            invoice = generate_invoice(data["school"], data["exam_year"], data["fee_per_student"])
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="recompute")
    def recompute(self, request, pk=None):
        ser = InvoiceRecomputeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            invoice = recompute_invoice(pk, ser.validated_data.get("fee_per_student"))
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(invoice).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="upload-slip")
    def upload_slip(self, request, pk=None):
        ser = PaymentEvidenceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            invoice = attach_payment_evidence(
                pk,
                slip_reference=ser.validated_data["slip_reference"],
                payment_method=ser.validated_data.get("payment_method"),
            )
        except CredentialError as exc:
            return error_response(exc)
        return Response(self.get_serializer(invoice).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="confirm-payment")
    def confirm_payment(self, request, pk=None):
        ser = ConfirmPaymentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            invoice = confirm_payment(
                pk,
                confirmed_by=request.user,
                paid_amount=ser.validated_data.get("paid_amount"),
            )
        except CredentialError as exc:
            return error_response(exc)

        payload = {"invoice": self.get_serializer(invoice).data}
        if ser.validated_data.get("approve_students"):
            # payment is committed at this point; approval is best effort per student
            payload["approval"] = approve_cohort_for_invoice(invoice.pk).as_dict()
        return Response(payload, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="approve-students")
    def approve_students(self, request, pk=None):
        try:
            result = approve_cohort_for_invoice(pk)
        except CredentialError as exc:
            return error_response(exc)
        return Response(result.as_dict(), status=status.HTTP_200_OK)
