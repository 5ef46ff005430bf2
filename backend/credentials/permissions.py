from django.conf import settings
from rest_framework.permissions import BasePermission


def user_is_exam_board_admin(user) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    groups = getattr(settings, "ADMIN_ROLE_GROUPS", ["super_admin", "system_admin"])
    return bool(
        getattr(user, "is_superuser", False)
        or getattr(user, "is_staff", False)
        or user.groups.filter(name__in=groups).exists()
    )


class IsExamBoardAdmin(BasePermission):
    """Payment confirmation, approval and issuance are restricted to elevated roles."""

    message = "Exam board administrator role required."

    def has_permission(self, request, view):
        return user_is_exam_board_admin(request.user)
