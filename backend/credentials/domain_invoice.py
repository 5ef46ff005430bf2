"""Domain Invoice (cohort invoice, line items, payment status)
"""
from __future__ import annotations

from django.contrib.auth.models import User
from django.db import models

from .domain_exam import ExamYear, School
from .domain_student import Student

__all__ = ['InvoiceStatus', 'PaymentMethod', 'Invoice', 'InvoiceItem']


class InvoiceStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    PAID = 'paid', 'Paid'


class PaymentMethod(models.TextChoices):
    BANK = 'bank_transfer', 'Bank Transfer'
    CASH = 'cash', 'Cash'
    MOBILE = 'mobile_money', 'Mobile Money'


class Invoice(models.Model):
    """Registration invoice for one school cohort (school, exam year).

    Status moves pending -> processing -> paid only through invoicing.py;
    the totals are frozen once the invoice leaves ``pending``.
    """
    id = models.BigAutoField(primary_key=True)
    invoice_number = models.CharField(max_length=50, unique=True, db_column='invoice_number')
    school = models.ForeignKey(School, on_delete=models.PROTECT, related_name='invoices', db_column='school_id')
    exam_year = models.ForeignKey(ExamYear, on_delete=models.PROTECT, related_name='invoices', db_column='exam_year_id')
    total_students = models.PositiveIntegerField(default=0, db_column='total_students')
    fee_per_student = models.DecimalField(max_digits=10, decimal_places=2, db_column='fee_per_student')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0, db_column='total_amount')
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0, db_column='paid_amount')
    status = models.CharField(max_length=20, choices=InvoiceStatus.choices, default=InvoiceStatus.PENDING, db_column='status')
    payment_method = models.CharField(max_length=50, choices=PaymentMethod.choices, null=True, blank=True, db_column='payment_method')
    bank_slip_reference = models.CharField(max_length=500, null=True, blank=True, db_column='bank_slip_reference')
    slip_uploaded_at = models.DateTimeField(null=True, blank=True, db_column='slip_uploaded_at')
    payment_date = models.DateTimeField(null=True, blank=True, db_column='payment_date')
    confirmed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='confirmed_invoices', db_column='confirmed_by')
    notes = models.TextField(null=True, blank=True, db_column='notes')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'invoice'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['school', 'exam_year'], name='uq_invoice_school_exam_year'),
        ]
        indexes = [
            models.Index(fields=['status'], name='idx_invoice_status'),
        ]

    def __str__(self):
        return f"{self.invoice_number} ({self.status})"

    @property
    def is_frozen(self) -> bool:
        return self.status != InvoiceStatus.PENDING


class InvoiceItem(models.Model):
    """Line item for one counted student on a pending invoice."""
    id = models.BigAutoField(primary_key=True)
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items', db_column='invoice_id')
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='invoice_items', db_column='student_id')
    description = models.CharField(max_length=255, db_column='description')
    amount = models.DecimalField(max_digits=10, decimal_places=2, db_column='amount')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')

    class Meta:
        db_table = 'invoice_item'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['invoice', 'student'], name='uq_invoice_item_student'),
        ]

    def __str__(self):
        return f"{self.invoice.invoice_number} - {self.description} - {self.amount}"
