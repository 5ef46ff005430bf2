"""Serializers for student registrations."""

from __future__ import annotations

from rest_framework import serializers

from .domain_student import Student

__all__ = ["StudentSerializer", "IndexNumberRequestSerializer"]


class StudentSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    school_name = serializers.CharField(source="school.name", read_only=True)

    class Meta:
        model = Student
        fields = [
            "id",
            "index_number",
            "full_name",
            "first_name",
            "middle_name",
            "last_name",
            "first_name_en",
            "last_name_en",
            "gender",
            "date_of_birth",
            "place_of_birth",
            "nationality",
            "grade",
            "school",
            "school_name",
            "exam_year",
            "status",
            "approved_at",
            "created_at",
            "updated_at",
        ]
        # status goes through approve/reject, index_number through the allocator
        read_only_fields = ["id", "index_number", "status", "approved_at", "created_at", "updated_at"]


class IndexNumberRequestSerializer(serializers.Serializer):
    student_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
