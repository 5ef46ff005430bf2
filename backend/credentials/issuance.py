"""Certificate and transcript issuance.

A credential is issued inside one transaction:

    reserve row (number + token) -> render document -> store reference

If the renderer fails the transaction rolls back, so neither the number nor
the token stays reserved, and any artifact that was already stored is
deleted. Issuing again for a student who already holds an active credential
returns that credential unless ``reissue=True`` is passed. A reissue revokes
the old row and keeps it for audit.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .batch import BatchResult, Skip, run_batch
from .conf import exam_board_setting
from .domain_credential import Certificate, CredentialEvent, CredentialKind, IssuedCredential, Transcript
from .domain_exam import ExamYear, ResultStatus, StudentResult
from .domain_student import Student, StudentStatus
from .exceptions import CollisionExhausted, NotFound, RenderingFailure, StateConflict, ValidationError
from .grading import compute_final_grade, is_passing, summarize_scores
from .notifications import notify_credentials_issued
from .registry import Collision, new_verification_token, next_document_number, reserve_credential
from .rendering import DocumentRenderer, RenderPayload, SubjectLine, get_renderer

__all__ = [
    "CREDENTIAL_MODELS",
    "model_for",
    "verification_url",
    "issue_certificate",
    "issue_transcript",
    "issue_credential",
    "issue_credentials",
    "issue_credentials_for_school",
    "reissue_credential",
    "revoke_credential",
    "record_print",
    "mark_credentials_stale",
]

logger = logging.getLogger(__name__)

CREDENTIAL_MODELS = {
    CredentialKind.CERTIFICATE: Certificate,
    CredentialKind.TRANSCRIPT: Transcript,
}

_PREFIX_SETTINGS = {
    CredentialKind.CERTIFICATE: "CERTIFICATE_PREFIX",
    CredentialKind.TRANSCRIPT: "TRANSCRIPT_PREFIX",
}


class _Collided(Exception):
    """Internal: unwinds the issuing transaction so the next attempt starts clean."""


def model_for(kind):
    try:
        return CREDENTIAL_MODELS[CredentialKind(kind)]
    except ValueError:
        raise ValidationError(f"Unknown credential kind {kind!r}.", kind=kind)


def verification_url(kind, token: str) -> str:
    base = exam_board_setting("VERIFY_BASE_URL").rstrip("/")
    return f"{base}/{CredentialKind(kind).value}/{token}"


def _record_event(credential: IssuedCredential, event: str, *, actor=None, note=None) -> None:
    CredentialEvent.objects.create(
        kind=credential.KIND.value,
        credential_id=credential.pk,
        document_number=credential.document_number,
        event=event,
        actor=actor,
        note=note,
    )


def _active_credential(model, student_id, exam_year_id):
    return model.objects.filter(student_id=student_id, exam_year_id=exam_year_id, revoked_at__isnull=True).first()


def _get_credential(kind, credential_id):
    model = model_for(kind)
    credential = model.objects.filter(pk=credential_id).first()
    if credential is None:
        raise NotFound(f"{model.__name__} {credential_id} not found.", credential_id=credential_id)
    return credential


def _published_results(student: Student, exam_year_id: int):
    return list(
        StudentResult.objects
        .filter(student=student, exam_year_id=exam_year_id, status=ResultStatus.PUBLISHED)
        .select_related("subject")
        .order_by("subject__order", "subject__name")
    )


def _check_preconditions(kind, student: Student, exam_year_id: int):
    if student.status != StudentStatus.APPROVED:
        raise ValidationError(f"Student {student.pk} is not approved.", student_id=student.pk)
    if not student.index_number:
        raise ValidationError(f"Student {student.pk} has no index number.", student_id=student.pk)
    results = _published_results(student, exam_year_id)
    if not results:
        raise ValidationError(f"Student {student.pk} has no published results.", student_id=student.pk)
    summary = summarize_scores((r.total_score, r.subject.max_score) for r in results)
    band = compute_final_grade(summary.percentage)
    if kind == CredentialKind.CERTIFICATE and not is_passing(band):
        raise ValidationError(
            f"Student {student.pk} did not pass ({summary.percentage}%); no certificate can be issued.",
            student_id=student.pk,
        )
    return results, summary, band


def _build_payload(credential: IssuedCredential, student: Student, exam_year: ExamYear, results) -> RenderPayload:
    school = student.school
    name_en = " ".join(p for p in [student.first_name_en, student.last_name_en] if p)
    return RenderPayload(
        kind=credential.KIND.value,
        document_number=credential.document_number,
        verification_url=verification_url(credential.KIND, credential.verification_token),
        student_name=student.full_name,
        student_name_en=name_en,
        index_number=student.index_number,
        grade_level=student.grade,
        school_name=school.name,
        school_name_ar=school.name_ar or "",
        exam_year=exam_year.name,
        hijri_year=exam_year.hijri_year,
        total_score=credential.total_score,
        max_score=credential.max_score,
        percentage=credential.percentage,
        final_grade=credential.final_grade,
        final_grade_ar=credential.final_grade_ar or "",
        issued_on=timezone.localdate(credential.issued_at).isoformat(),
        subjects=[
            SubjectLine(
                name=r.subject.name,
                arabic_name=r.subject.arabic_name or "",
                score=r.total_score if r.total_score is not None else 0,
                max_score=r.subject.max_score,
            )
            for r in results
        ],
    )


def _render(renderer: DocumentRenderer, payload: RenderPayload) -> str:
    try:
        return renderer.render(payload)
    except RenderingFailure:
        raise
    except Exception as exc:
        logger.exception("Renderer %s failed for %s", type(renderer).__name__, payload.document_number)
        raise RenderingFailure(
            f"Could not render {payload.kind} {payload.document_number}: {exc}",
            document_number=payload.document_number,
        ) from exc


def issue_credential(
    kind,
    student_id: int,
    exam_year_id: int,
    *,
    renderer: Optional[DocumentRenderer] = None,
    reissue: bool = False,
    issued_by=None,
    reason: Optional[str] = None,
) -> Tuple[IssuedCredential, bool]:
    """Issue one credential. Returns ``(credential, created)``."""
    kind = CredentialKind(model_for(kind).KIND)
    model = CREDENTIAL_MODELS[kind]

    student = Student.objects.select_related("school").filter(pk=student_id).first()
    if student is None:
        raise NotFound(f"Student {student_id} not found.", student_id=student_id)
    exam_year = ExamYear.objects.filter(pk=exam_year_id).first()
    if exam_year is None:
        raise NotFound(f"Exam year {exam_year_id} not found.", exam_year_id=exam_year_id)

    existing = _active_credential(model, student.pk, exam_year.pk)
    if existing is not None and not reissue:
        return existing, False

    results, summary, band = _check_preconditions(kind, student, exam_year.pk)
    renderer = renderer or get_renderer()
    prefix = exam_board_setting(_PREFIX_SETTINGS[kind])
    max_attempts = exam_board_setting("DOCUMENT_NUMBER_MAX_ATTEMPTS")

    for attempt in range(max_attempts):
        reference = None
        try:
            with transaction.atomic():
                if existing is not None:
                    revoked = (
                        model.objects
                        .filter(pk=existing.pk, revoked_at__isnull=True)
                        .update(revoked_at=timezone.now(), revoked_reason=reason or "reissued")
                    )
                    if not revoked:
                        raise StateConflict(
                            f"{existing.document_number} was revoked concurrently.",
                            document_number=existing.document_number,
                        )
                outcome = reserve_credential(
                    model,
                    student=student,
                    exam_year=exam_year,
                    document_number=next_document_number(model, prefix, exam_year.year, offset=attempt),
                    verification_token=new_verification_token(),
                    total_score=summary.total,
                    max_score=summary.maximum,
                    percentage=summary.percentage,
                    final_grade=band.english,
                    final_grade_ar=band.arabic,
                    issued_by=issued_by,
                    replaces=existing,
                )
                if isinstance(outcome, Collision):
                    raise _Collided(outcome.value)

                credential = outcome.instance
                reference = _render(renderer, _build_payload(credential, student, exam_year, results))
                credential.pdf_reference = reference
                credential.save(update_fields=["pdf_reference"])

                if existing is not None:
                    _record_event(existing, CredentialEvent.REVOKED, actor=issued_by, note=reason)
                    _record_event(credential, CredentialEvent.REISSUED, actor=issued_by,
                                  note=f"replaces {existing.document_number}")
                else:
                    _record_event(credential, CredentialEvent.ISSUED, actor=issued_by)
        except _Collided:
            concurrent = _active_credential(model, student.pk, exam_year.pk)
            if concurrent is not None and (existing is None or concurrent.pk != existing.pk):
                # another request issued for this student meanwhile
                return concurrent, False
            continue
        except Exception:
            if reference:
                renderer.delete(reference)
            raise

        logger.info(
            "%s %s issued to student %s (%s, %s%%)",
            kind.label, credential.document_number, student.pk, band.english, summary.percentage,
        )
        return credential, True

    logger.error("%s number allocation exhausted %d attempts for student %s", kind.label, max_attempts, student.pk)
    raise CollisionExhausted(
        f"No free {kind.value} number found after {max_attempts} attempts.",
        student_id=student.pk,
    )


def issue_certificate(student_id, exam_year_id, *, renderer=None, reissue=False, issued_by=None):
    return issue_credential(
        CredentialKind.CERTIFICATE, student_id, exam_year_id,
        renderer=renderer, reissue=reissue, issued_by=issued_by,
    )


def issue_transcript(student_id, exam_year_id, *, renderer=None, reissue=False, issued_by=None):
    """Transcripts are issued whatever the final grade is."""
    return issue_credential(
        CredentialKind.TRANSCRIPT, student_id, exam_year_id,
        renderer=renderer, reissue=reissue, issued_by=issued_by,
    )


def issue_credentials(
    student_ids: Iterable[int],
    exam_year_id: int,
    kind,
    *,
    renderer: Optional[DocumentRenderer] = None,
    reissue: bool = False,
    issued_by=None,
) -> BatchResult:
    model_for(kind)
    renderer = renderer or get_renderer()

    def step(student_id):
        credential, created = issue_credential(
            kind, student_id, exam_year_id,
            renderer=renderer, reissue=reissue, issued_by=issued_by,
        )
        if not created:
            raise Skip("already_issued", credential.document_number)
        return credential.document_number

    def on_failure(student_id, exc):
        logger.warning("%s issuance failed for student %s: %s", kind, student_id, exc.message)

    result = run_batch(student_ids, step, on_failure=on_failure)
    logger.info("%s issuance finished: %s", kind, result.counts)
    return result


def issue_credentials_for_school(school_id: int, exam_year_id: int, kind, **options) -> BatchResult:
    """Issue for every approved student of the school in the exam year."""
    student_ids = list(
        Student.objects
        .filter(school_id=school_id, exam_year_id=exam_year_id, status=StudentStatus.APPROVED)
        .order_by("index_number", "id")
        .values_list("id", flat=True)
    )
    result = issue_credentials(student_ids, exam_year_id, kind, **options)
    issued = len(result.succeeded)
    if issued:
        transaction.on_commit(
            lambda: notify_credentials_issued(school_id, exam_year_id, CredentialKind(kind).value, issued)
        )
    return result


def reissue_credential(kind, credential_id, *, reason: str, renderer=None, issued_by=None):
    """Replace an active credential: the old token stops verifying, a new one is issued."""
    if not (reason or "").strip():
        raise ValidationError("A reason is required to reissue a credential.", field="reason")
    credential = _get_credential(kind, credential_id)
    if credential.is_revoked:
        raise StateConflict(f"{credential.document_number} is revoked and cannot be reissued.")
    replacement, _ = issue_credential(
        kind, credential.student_id, credential.exam_year_id,
        renderer=renderer, reissue=True, issued_by=issued_by, reason=reason,
    )
    return replacement


def revoke_credential(kind, credential_id, *, reason: str, actor=None):
    if not (reason or "").strip():
        raise ValidationError("A reason is required to revoke a credential.", field="reason")
    credential = _get_credential(kind, credential_id)
    with transaction.atomic():
        updated = (
            type(credential).objects
            .filter(pk=credential.pk, revoked_at__isnull=True)
            .update(revoked_at=timezone.now(), revoked_reason=reason)
        )
        if not updated:
            raise StateConflict(f"{credential.document_number} is already revoked.")
        _record_event(credential, CredentialEvent.REVOKED, actor=actor, note=reason)
    logger.info("%s revoked: %s", credential.document_number, reason)
    credential.refresh_from_db()
    return credential


def record_print(kind, credential_id, *, actor=None):
    credential = _get_credential(kind, credential_id)
    with transaction.atomic():
        updated = (
            type(credential).objects
            .filter(pk=credential.pk, revoked_at__isnull=True)
            .update(print_count=F("print_count") + 1, last_printed_at=timezone.now())
        )
        if not updated:
            raise StateConflict(f"{credential.document_number} is revoked and cannot be printed.")
        _record_event(credential, CredentialEvent.PRINTED, actor=actor)
    credential.refresh_from_db()
    return credential


def mark_credentials_stale(student_id: int, exam_year_id: int, note: Optional[str] = None) -> int:
    """Flag active credentials whose underlying results changed after issuance."""
    marked = 0
    now = timezone.now()
    for model in CREDENTIAL_MODELS.values():
        for credential in model.objects.filter(
            student_id=student_id, exam_year_id=exam_year_id,
            revoked_at__isnull=True, stale_since__isnull=True,
        ):
            if model.objects.filter(pk=credential.pk, stale_since__isnull=True).update(stale_since=now):
                _record_event(credential, CredentialEvent.STALE, note=note)
                marked += 1
    if marked:
        logger.info("Marked %d credential(s) stale for student %s / exam year %s", marked, student_id, exam_year_id)
    return marked
