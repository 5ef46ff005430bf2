"""Serializers for cohort invoices and the payment actions."""

from __future__ import annotations

from rest_framework import serializers

from .domain_invoice import Invoice, InvoiceItem, PaymentMethod

__all__ = [
    "InvoiceItemSerializer",
    "InvoiceSerializer",
    "InvoiceGenerateSerializer",
    "InvoiceRecomputeSerializer",
    "PaymentEvidenceSerializer",
    "ConfirmPaymentSerializer",
]


class InvoiceItemSerializer(serializers.ModelSerializer):
    index_number = serializers.CharField(source="student.index_number", read_only=True)

    class Meta:
        model = InvoiceItem
        fields = ["id", "student", "index_number", "description", "amount"]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    school_name = serializers.CharField(source="school.name", read_only=True)
    exam_year_name = serializers.CharField(source="exam_year.name", read_only=True)
    confirmed_by = serializers.CharField(source="confirmed_by.username", read_only=True, default=None)
    items = InvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "school",
            "school_name",
            "exam_year",
            "exam_year_name",
            "total_students",
            "fee_per_student",
            "total_amount",
            "paid_amount",
            "status",
            "payment_method",
            "bank_slip_reference",
            "slip_uploaded_at",
            "payment_date",
            "confirmed_by",
            "notes",
            "items",
            "created_at",
            "updated_at",
        ]
        # amounts and status only change through the state machine actions
        read_only_fields = [f for f in fields if f != "notes"]


class InvoiceGenerateSerializer(serializers.Serializer):
    school = serializers.IntegerField()
    exam_year = serializers.IntegerField()
    fee_per_student = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class InvoiceRecomputeSerializer(serializers.Serializer):
    fee_per_student = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)


class PaymentEvidenceSerializer(serializers.Serializer):
    slip_reference = serializers.CharField(max_length=500)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)


class ConfirmPaymentSerializer(serializers.Serializer):
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    approve_students = serializers.BooleanField(required=False, default=False)
