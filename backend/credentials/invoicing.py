"""Invoice payment state machine.

    pending --(slip uploaded)--> processing --(confirmed)--> paid

Every transition is a conditional UPDATE on the expected prior status, so a
repeated or racing call finds zero rows and is reported as StateConflict
instead of writing twice. Totals and line items can only be rebuilt while
the invoice is still pending.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .domain_exam import ExamYear, School
from .domain_invoice import Invoice, InvoiceItem, InvoiceStatus
from .domain_student import Student, StudentStatus
from .exceptions import NotFound, StateConflict, ValidationError
from .notifications import notify_payment_confirmed

__all__ = [
    "ALLOWED_TRANSITIONS",
    "cohort_invoice_is_paid",
    "student_is_paid_for",
    "generate_invoice",
    "recompute_invoice",
    "attach_payment_evidence",
    "confirm_payment",
]

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    InvoiceStatus.PENDING: {InvoiceStatus.PROCESSING},
    # a replacement slip may be uploaded while the first one is under review
    InvoiceStatus.PROCESSING: {InvoiceStatus.PROCESSING, InvoiceStatus.PAID},
    InvoiceStatus.PAID: set(),
}


def cohort_invoice_is_paid(school_id: int, exam_year_id: int) -> bool:
    return Invoice.objects.filter(
        school_id=school_id, exam_year_id=exam_year_id, status=InvoiceStatus.PAID,
    ).exists()


def student_is_paid_for(student_id: int) -> bool:
    """True only when the student is a billed line item on a paid invoice."""
    return InvoiceItem.objects.filter(student_id=student_id, invoice__status=InvoiceStatus.PAID).exists()


def _get_invoice(invoice_id: int) -> Invoice:
    invoice = Invoice.objects.filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFound(f"Invoice {invoice_id} not found.", invoice_id=invoice_id)
    return invoice


def _require_students(invoice: Invoice) -> None:
    if not invoice.total_students:
        raise ValidationError(
            f"Invoice {invoice.invoice_number} bills no students.",
            invoice_id=invoice.pk,
        )


def _to_amount(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.", field=field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative.", field=field)
    return amount


def _transition(invoice_id: int, expected: str, target: str, **changes) -> Invoice:
    if target not in ALLOWED_TRANSITIONS[expected]:
        raise StateConflict(f"Invoice cannot move from {expected} to {target}.", expected=expected, target=target)
    updated = (
        Invoice.objects
        .filter(pk=invoice_id, status=expected)
        .update(status=target, updated_at=timezone.now(), **changes)
    )
    if not updated:
        current = Invoice.objects.filter(pk=invoice_id).values_list("status", flat=True).first()
        if current is None:
            raise NotFound(f"Invoice {invoice_id} not found.", invoice_id=invoice_id)
        raise StateConflict(
            f"Invoice {invoice_id} is {current}, expected {expected}.",
            current=current, expected=expected,
        )
    return Invoice.objects.get(pk=invoice_id)


def _invoice_number(school: School, exam_year: ExamYear) -> str:
    return f"INV-{exam_year.year}-{school.pk:05d}"


def _rebuild_items(invoice: Invoice, fee: Decimal) -> int:
    students = list(
        Student.objects
        .filter(school_id=invoice.school_id, exam_year_id=invoice.exam_year_id)
        .exclude(status=StudentStatus.REJECTED)
        .order_by("id")
    )
    if not students:
        raise ValidationError("No registered students to invoice for this school and exam year.")
    invoice.items.all().delete()
    InvoiceItem.objects.bulk_create([
        InvoiceItem(
            invoice=invoice,
            student=s,
            description=f"Examination fee - {s.full_name} (grade {s.grade})",
            amount=fee,
        )
        for s in students
    ])
    return len(students)


def recompute_invoice(invoice_id: int, fee_per_student=None) -> Invoice:
    """Rebuild line items and totals from the current cohort. Pending only."""
    with transaction.atomic():
        invoice = _get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.PENDING:
            raise StateConflict(
                f"Invoice {invoice.invoice_number} is {invoice.status}; totals are frozen.",
                current=invoice.status,
            )
        fee = invoice.fee_per_student if fee_per_student is None else _to_amount(fee_per_student, "fee_per_student")
        count = _rebuild_items(invoice, fee)
        updated = (
            Invoice.objects
            .filter(pk=invoice.pk, status=InvoiceStatus.PENDING)
            .update(
                fee_per_student=fee,
                total_students=count,
                total_amount=fee * count,
                updated_at=timezone.now(),
            )
        )
        if not updated:
            # slip attached while we were counting; roll the item rebuild back
            raise StateConflict(f"Invoice {invoice.invoice_number} left pending during recomputation.")
    logger.info("Recomputed invoice %s: %d students x %s", invoice.invoice_number, count, fee)
    return Invoice.objects.get(pk=invoice.pk)


def generate_invoice(school_id: int, exam_year_id: int, fee_per_student) -> Invoice:
    """Create the single invoice for a cohort, or recompute it while pending."""
    fee = _to_amount(fee_per_student, "fee_per_student")
    school = School.objects.filter(pk=school_id).first()
    exam_year = ExamYear.objects.filter(pk=exam_year_id).first()
    if school is None or exam_year is None:
        raise NotFound("School or exam year not found.", school_id=school_id, exam_year_id=exam_year_id)

    with transaction.atomic():
        invoice, created = Invoice.objects.get_or_create(
            school=school,
            exam_year=exam_year,
            defaults={
                "invoice_number": _invoice_number(school, exam_year),
                "fee_per_student": fee,
            },
        )
        if created:
            logger.info("Created invoice %s for school %s", invoice.invoice_number, school.pk)
        # an empty cohort raises here and the new row goes with it
        return recompute_invoice(invoice.pk, fee)


def attach_payment_evidence(invoice_id: int, *, slip_reference: str, payment_method: str | None = None) -> Invoice:
    """pending -> processing (or replace the slip while processing)."""
    slip_reference = (slip_reference or "").strip()
    if not slip_reference:
        raise ValidationError("A bank slip reference is required.", field="slip_reference")
    invoice = _get_invoice(invoice_id)
    if invoice.status == InvoiceStatus.PAID:
        raise StateConflict(f"Invoice {invoice.invoice_number} is already paid.", current=invoice.status)
    _require_students(invoice)
    changes = {"bank_slip_reference": slip_reference, "slip_uploaded_at": timezone.now()}
    if payment_method:
        changes["payment_method"] = payment_method
    invoice = _transition(invoice.pk, invoice.status, InvoiceStatus.PROCESSING, **changes)
    logger.info("Payment evidence attached to invoice %s", invoice.invoice_number)
    return invoice


def confirm_payment(invoice_id: int, *, confirmed_by=None, paid_amount=None) -> Invoice:
    """processing -> paid. Rejected from pending and when already paid."""
    invoice = _get_invoice(invoice_id)
    if invoice.status == InvoiceStatus.PAID:
        raise StateConflict(f"Invoice {invoice.invoice_number} is already paid.", current=invoice.status)
    if invoice.status != InvoiceStatus.PROCESSING:
        raise StateConflict(
            f"Invoice {invoice.invoice_number} has no payment evidence attached.",
            current=invoice.status,
        )
    _require_students(invoice)
    amount = invoice.total_amount if paid_amount is None else _to_amount(paid_amount, "paid_amount")
    if amount < invoice.total_amount:
        raise ValidationError(
            f"Paid amount {amount} is less than the invoice total {invoice.total_amount}.",
            field="paid_amount",
        )

    with transaction.atomic():
        invoice = _transition(
            invoice.pk,
            InvoiceStatus.PROCESSING,
            InvoiceStatus.PAID,
            paid_amount=amount,
            payment_date=timezone.now(),
            confirmed_by=confirmed_by,
        )
        invoice_pk = invoice.pk
        transaction.on_commit(lambda: notify_payment_confirmed(invoice_pk))
    logger.info(
        "Invoice %s confirmed paid (%s) by %s",
        invoice.invoice_number, amount, getattr(confirmed_by, "username", None),
    )
    return invoice
