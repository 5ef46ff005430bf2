"""Index number allocation for approved students of paid cohorts."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .batch import BatchResult, Skip, run_batch
from .conf import exam_board_setting
from .domain_student import Student, StudentStatus
from .exceptions import CollisionExhausted, NotFound, ValidationError
from .invoicing import cohort_invoice_is_paid, student_is_paid_for
from .registry import Assigned, draw_index_number, reserve_index_number

__all__ = ["allocate_index_number", "allocate_index_numbers", "check_allocation_eligibility"]

logger = logging.getLogger(__name__)


def check_allocation_eligibility(student: Student) -> None:
    if student.status != StudentStatus.APPROVED:
        raise ValidationError(
            f"Student {student.pk} is {student.status}, not approved.",
            student_id=student.pk,
        )
    if not student_is_paid_for(student.pk):
        if cohort_invoice_is_paid(student.school_id, student.exam_year_id):
            raise ValidationError(
                f"Student {student.pk} registered after the cohort was invoiced and is not paid for.",
                student_id=student.pk,
            )
        raise ValidationError(
            f"Invoice for school {student.school_id} / exam year {student.exam_year_id} is not paid.",
            student_id=student.pk,
        )


def allocate_index_number(student_id: int, *, rng=None, max_attempts: Optional[int] = None) -> Assigned:
    """Give one student a number, or return the one it already has.

    Draws uniformly from [100000, 999999] and retries on collision until
    ``max_attempts`` draws have collided, then raises CollisionExhausted.
    Never changes the student's status.
    """
    if max_attempts is None:
        max_attempts = exam_board_setting("INDEX_NUMBER_MAX_ATTEMPTS")

    student = Student.objects.filter(pk=student_id).first()
    if student is None:
        raise NotFound(f"Student {student_id} not found.", student_id=student_id)
    if student.index_number:
        return Assigned(student.index_number, already_assigned=True)
    check_allocation_eligibility(student)

    for attempt in range(1, max_attempts + 1):
        outcome = reserve_index_number(draw_index_number(rng), student.pk)
        if isinstance(outcome, Assigned):
            if not outcome.already_assigned:
                logger.info("Assigned index number %s to student %s (attempt %d)", outcome.value, student.pk, attempt)
            return outcome

    logger.error("Index number allocation exhausted %d attempts for student %s", max_attempts, student.pk)
    raise CollisionExhausted(
        f"No free index number found for student {student.pk} after {max_attempts} attempts.",
        student_id=student.pk,
    )


def allocate_index_numbers(student_ids: Iterable[int], *, rng=None, max_attempts: Optional[int] = None) -> BatchResult:
    """Allocate numbers for many students; one failure never stops the batch."""

    def step(student_id):
        outcome = allocate_index_number(student_id, rng=rng, max_attempts=max_attempts)
        if outcome.already_assigned:
            raise Skip("already_numbered", outcome.value)
        return outcome.value

    def on_failure(student_id, exc):
        logger.warning("Index allocation failed for student %s: %s", student_id, exc.message)

    result = run_batch(student_ids, step, on_failure=on_failure)
    logger.info("Index allocation finished: %s", result.counts)
    return result
