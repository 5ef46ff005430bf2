from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase

from ..domain_invoice import Invoice, InvoiceStatus
from ..domain_student import StudentStatus
from ..exceptions import NotFound, StateConflict, ValidationError
from ..invoicing import (
    _transition,
    attach_payment_evidence,
    cohort_invoice_is_paid,
    confirm_payment,
    generate_invoice,
    recompute_invoice,
)
from .helpers import make_cohort, make_exam_year, make_school, make_student

User = get_user_model()


class InvoiceGenerationTests(TestCase):
    def setUp(self):
        self.exam_year = make_exam_year()
        self.school = make_school()
        self.students = make_cohort(self.school, self.exam_year, 3)

    def test_counts_non_rejected_students(self):
        make_student(self.school, self.exam_year, status=StudentStatus.REJECTED)
        invoice = generate_invoice(self.school.pk, self.exam_year.pk, "150.00")
        self.assertEqual(invoice.invoice_number, f"INV-2025-{self.school.pk:05d}")
        self.assertEqual(invoice.status, InvoiceStatus.PENDING)
        self.assertEqual(invoice.total_students, 3)
        self.assertEqual(invoice.total_amount, Decimal("450.00"))
        self.assertEqual(invoice.items.count(), 3)

    def test_regenerating_while_pending_recomputes_same_invoice(self):
        first = generate_invoice(self.school.pk, self.exam_year.pk, "100")
        make_student(self.school, self.exam_year, first_name="Late")
        second = generate_invoice(self.school.pk, self.exam_year.pk, "120")
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.total_students, 4)
        self.assertEqual(second.total_amount, Decimal("480.00"))
        self.assertEqual(Invoice.objects.count(), 1)

    def test_no_students(self):
        with self.assertRaises(ValidationError):
            generate_invoice(make_school().pk, self.exam_year.pk, "100")
        self.assertEqual(Invoice.objects.count(), 0)

    def test_empty_invoice_cannot_be_paid(self):
        school = make_school()
        empty = Invoice.objects.create(
            invoice_number="INV-2025-EMPTY", school=school, exam_year=self.exam_year, fee_per_student=Decimal("100"),
        )
        with self.assertRaises(ValidationError):
            attach_payment_evidence(empty.pk, slip_reference="SLIP-0")
        Invoice.objects.filter(pk=empty.pk).update(status=InvoiceStatus.PROCESSING)
        with self.assertRaises(ValidationError):
            confirm_payment(empty.pk)
        empty.refresh_from_db()
        self.assertEqual(empty.status, InvoiceStatus.PROCESSING)
        self.assertIsNone(empty.payment_date)

        make_student(school, self.exam_year, first_name="After")
        self.assertFalse(cohort_invoice_is_paid(school.pk, self.exam_year.pk))

    def test_unknown_school(self):
        with self.assertRaises(NotFound):
            generate_invoice(424242, self.exam_year.pk, "100")

    def test_negative_fee(self):
        with self.assertRaises(ValidationError):
            generate_invoice(self.school.pk, self.exam_year.pk, "-1")


class InvoiceTransitionTests(TestCase):
    def setUp(self):
        self.exam_year = make_exam_year()
        self.school = make_school()
        make_cohort(self.school, self.exam_year, 2)
        self.invoice = generate_invoice(self.school.pk, self.exam_year.pk, "100")
        self.admin = User.objects.create_user(username="board", password="pass12345", is_staff=True)

    def test_confirm_from_pending_is_rejected(self):
        with self.assertRaises(StateConflict):
            confirm_payment(self.invoice.pk, confirmed_by=self.admin)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, InvoiceStatus.PENDING)
        self.assertIsNone(self.invoice.payment_date)

    def test_full_flow(self):
        invoice = attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-77", payment_method="bank_transfer")
        self.assertEqual(invoice.status, InvoiceStatus.PROCESSING)
        self.assertEqual(invoice.bank_slip_reference, "SLIP-77")
        self.assertIsNotNone(invoice.slip_uploaded_at)
        self.assertFalse(cohort_invoice_is_paid(self.school.pk, self.exam_year.pk))

        invoice = confirm_payment(invoice.pk, confirmed_by=self.admin)
        self.assertEqual(invoice.status, InvoiceStatus.PAID)
        self.assertEqual(invoice.paid_amount, invoice.total_amount)
        self.assertEqual(invoice.confirmed_by, self.admin)
        self.assertIsNotNone(invoice.payment_date)
        self.assertTrue(cohort_invoice_is_paid(self.school.pk, self.exam_year.pk))

    def test_second_confirm_is_rejected(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        confirm_payment(self.invoice.pk)
        with self.assertRaises(StateConflict):
            confirm_payment(self.invoice.pk)

    def test_slip_can_be_replaced_while_processing(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        invoice = attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-2")
        self.assertEqual(invoice.status, InvoiceStatus.PROCESSING)
        self.assertEqual(invoice.bank_slip_reference, "SLIP-2")

    def test_slip_after_payment_is_rejected(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        confirm_payment(self.invoice.pk)
        with self.assertRaises(StateConflict):
            attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-2")

    def test_blank_slip_reference(self):
        with self.assertRaises(ValidationError):
            attach_payment_evidence(self.invoice.pk, slip_reference="  ")

    def test_totals_frozen_after_pending(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        make_student(self.school, self.exam_year, first_name="Late")
        with self.assertRaises(StateConflict):
            recompute_invoice(self.invoice.pk, "500")
        with self.assertRaises(StateConflict):
            generate_invoice(self.school.pk, self.exam_year.pk, "500")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.total_students, 2)
        self.assertEqual(self.invoice.total_amount, Decimal("200.00"))
        self.assertEqual(self.invoice.items.count(), 2)

    def test_lost_race_is_a_conflict(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        # a second writer still believes the invoice is pending
        with self.assertRaises(StateConflict):
            _transition(self.invoice.pk, InvoiceStatus.PENDING, InvoiceStatus.PROCESSING)

    def test_underpayment_is_rejected(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        with self.assertRaises(ValidationError):
            confirm_payment(self.invoice.pk, paid_amount="10.00")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, InvoiceStatus.PROCESSING)

    def test_school_is_notified_after_commit(self):
        attach_payment_evidence(self.invoice.pk, slip_reference="SLIP-1")
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            confirm_payment(self.invoice.pk, confirmed_by=self.admin)
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.invoice.invoice_number, mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, [self.school.email])

    def test_unknown_invoice(self):
        with self.assertRaises(NotFound):
            confirm_payment(987654)
