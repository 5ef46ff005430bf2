"""Serializers for issued certificates and transcripts."""

from __future__ import annotations

from rest_framework import serializers

from .domain_credential import Certificate, Transcript

__all__ = [
    "CertificateSerializer",
    "TranscriptSerializer",
    "IssueRequestSerializer",
    "ReasonSerializer",
]

_CREDENTIAL_FIELDS = [
    "id",
    "document_number",
    "verification_token",
    "student",
    "student_name",
    "index_number",
    "exam_year",
    "total_score",
    "max_score",
    "percentage",
    "final_grade",
    "final_grade_ar",
    "issued_at",
    "issued_by",
    "print_count",
    "last_printed_at",
    "pdf_reference",
    "revoked_at",
    "revoked_reason",
    "expires_at",
    "stale_since",
    "replaces",
]


class _CredentialSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source="student.full_name", read_only=True)
    index_number = serializers.CharField(source="student.index_number", read_only=True)
    issued_by = serializers.CharField(source="issued_by.username", read_only=True, default=None)


class CertificateSerializer(_CredentialSerializer):
    class Meta:
        model = Certificate
        fields = _CREDENTIAL_FIELDS
        read_only_fields = _CREDENTIAL_FIELDS


class TranscriptSerializer(_CredentialSerializer):
    class Meta:
        model = Transcript
        fields = _CREDENTIAL_FIELDS
        read_only_fields = _CREDENTIAL_FIELDS


class IssueRequestSerializer(serializers.Serializer):
    """Either an explicit list of students or a whole school, for one exam year."""

    exam_year = serializers.IntegerField()
    student_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_empty=False)
    school = serializers.IntegerField(required=False)
    reissue = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if not attrs.get("student_ids") and not attrs.get("school"):
            raise serializers.ValidationError("Provide student_ids or school.")
        return attrs


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)
