"""Public verification of credentials by token.

The token is a bearer credential. A lookup either returns a fixed, minimal
summary or the single NOT_FOUND result; malformed, unknown, revoked and
expired tokens are indistinguishable to the caller.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from django.utils import timezone

from .domain_credential import CredentialKind, IssuedCredential
from .issuance import CREDENTIAL_MODELS

__all__ = ["VerificationResult", "NOT_FOUND", "SUMMARY_FIELDS", "TOKEN_RE", "verify", "mask_name"]

# secrets.token_urlsafe(32) always yields 43 characters
TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")

SUMMARY_FIELDS = (
    "document_number",
    "kind",
    "student_name",
    "grade_level",
    "exam_year",
    "result",
    "issued_on",
)


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    summary: Optional[dict] = None


NOT_FOUND = VerificationResult(valid=False)


def mask_name(first: str, last: str) -> str:
    first = (first or "").strip()
    last = (last or "").strip()
    if not last:
        return first
    return f"{first} {last[0]}."


def _summary(credential: IssuedCredential) -> dict:
    student = credential.student
    return {
        "document_number": credential.document_number,
        "kind": credential.KIND.value,
        "student_name": mask_name(
            student.first_name_en or student.first_name,
            student.last_name_en or student.last_name,
        ),
        "grade_level": student.grade,
        "exam_year": credential.exam_year.name,
        "result": credential.final_grade,
        "issued_on": timezone.localdate(credential.issued_at).isoformat(),
    }


def verify(token, kind=None, *, at=None) -> VerificationResult:
    if not isinstance(token, str) or not TOKEN_RE.match(token):
        return NOT_FOUND
    if kind is None:
        models = list(CREDENTIAL_MODELS.values())
    else:
        try:
            models = [CREDENTIAL_MODELS[CredentialKind(kind)]]
        except ValueError:
            return NOT_FOUND

    for model in models:
        credential = (
            model.objects
            .select_related("student", "exam_year")
            .filter(verification_token=token)
            .first()
        )
        if credential is None:
            continue
        if not credential.is_valid_at(at):
            return NOT_FOUND
        return VerificationResult(valid=True, summary=_summary(credential))
    return NOT_FOUND
