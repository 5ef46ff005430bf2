"""Student approval.

Two paths exist:

* the administrative single-record path (``approve_student`` /
  ``reject_student``) only checks the current status. It ignores payment and
  never assigns an index number;
* the credentialing path (``approve_cohort_for_invoice``) runs after the
  cohort's invoice is paid. Each student is approved and numbered in one
  savepoint, so a student is never left approved without a number by this
  path. The batch itself is best effort.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .allocator import allocate_index_number
from .batch import BatchResult, Skip, run_batch
from .domain_invoice import Invoice, InvoiceStatus
from .domain_student import Student, StudentStatus
from .exceptions import NotFound, StateConflict, ValidationError

__all__ = ["approve_student", "reject_student", "approve_cohort_for_invoice", "approve_cohort"]

logger = logging.getLogger(__name__)


def _get_student(student_id: int) -> Student:
    student = Student.objects.filter(pk=student_id).first()
    if student is None:
        raise NotFound(f"Student {student_id} not found.", student_id=student_id)
    return student


def _set_status(student: Student, target: str) -> Student:
    changes = {"status": target, "updated_at": timezone.now()}
    if target == StudentStatus.APPROVED:
        changes["approved_at"] = timezone.now()
    updated = Student.objects.filter(pk=student.pk, status=student.status).update(**changes)
    if not updated:
        raise StateConflict(
            f"Student {student.pk} changed status concurrently.",
            student_id=student.pk, expected=student.status,
        )
    return Student.objects.get(pk=student.pk)


def approve_student(student_id: int) -> Student:
    student = _get_student(student_id)
    if student.status == StudentStatus.APPROVED:
        return student
    student = _set_status(student, StudentStatus.APPROVED)
    logger.info("Student %s approved", student.pk)
    return student


def reject_student(student_id: int) -> Student:
    student = _get_student(student_id)
    if student.status == StudentStatus.REJECTED:
        return student
    if student.status == StudentStatus.APPROVED:
        raise StateConflict(
            f"Student {student.pk} is already approved and cannot be rejected.",
            student_id=student.pk, current=student.status,
        )
    student = _set_status(student, StudentStatus.REJECTED)
    logger.info("Student %s rejected", student.pk)
    return student


def approve_cohort_for_invoice(invoice_id: int, *, rng=None, max_attempts: Optional[int] = None) -> BatchResult:
    """Approve and number every student billed on a paid invoice.

    The cohort is the invoice's line items. Students of the same school and
    exam year who registered later are reported as skipped ``not_invoiced``.
    Running it again is harmless: students that already hold a number are
    reported as skipped and no new numbers are drawn for them.
    """
    invoice = Invoice.objects.filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFound(f"Invoice {invoice_id} not found.", invoice_id=invoice_id)
    if invoice.status != InvoiceStatus.PAID:
        raise ValidationError(
            f"Invoice {invoice.invoice_number} is {invoice.status}; students can only be approved once it is paid.",
            invoice_id=invoice.pk,
        )

    student_ids = list(
        Student.objects
        .filter(school_id=invoice.school_id, exam_year_id=invoice.exam_year_id)
        .order_by("id")
        .values_list("id", flat=True)
    )
    invoiced = set(invoice.items.values_list("student_id", flat=True))

    def step(student_id):
        with transaction.atomic():
            student = _get_student(student_id)
            if student.status == StudentStatus.REJECTED:
                raise Skip("rejected")
            if student_id not in invoiced:
                raise Skip("not_invoiced")
            if student.index_number:
                raise Skip("already_numbered", student.index_number)
            if student.status != StudentStatus.APPROVED:
                _set_status(student, StudentStatus.APPROVED)
            outcome = allocate_index_number(student_id, rng=rng, max_attempts=max_attempts)
            if outcome.already_assigned:
                raise Skip("already_numbered", outcome.value)
            return outcome.value

    def on_failure(student_id, exc):
        logger.warning("Cohort approval failed for student %s: %s", student_id, exc.message)

    result = run_batch(student_ids, step, on_failure=on_failure)
    logger.info("Cohort approval for invoice %s finished: %s", invoice.invoice_number, result.counts)
    return result


def approve_cohort(school_id: int, exam_year_id: int, *, rng=None, max_attempts: Optional[int] = None) -> BatchResult:
    invoice = Invoice.objects.filter(school_id=school_id, exam_year_id=exam_year_id).first()
    if invoice is None:
        raise NotFound(
            "No invoice exists for this school and exam year.",
            school_id=school_id, exam_year_id=exam_year_id,
        )
    return approve_cohort_for_invoice(invoice.pk, rng=rng, max_attempts=max_attempts)
