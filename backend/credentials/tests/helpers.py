"""Builders and fakes shared by the credentials test modules."""

from __future__ import annotations

import itertools
from decimal import Decimal

from ..domain_exam import ExamYear, ResultStatus, School, StudentResult, Subject
from ..domain_student import Student, StudentStatus
from ..invoicing import attach_payment_evidence, confirm_payment, generate_invoice
from ..rendering import DocumentRenderer

_seq = itertools.count(1)


class SequenceRng:
    """Stands in for random.Random: ``randint`` replays a fixed list, then repeats the last value."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def randint(self, low, high):
        value = self.values[min(self.calls, len(self.values) - 1)]
        self.calls += 1
        return value


class FakeRenderer(DocumentRenderer):
    def __init__(self):
        self.rendered = []
        self.deleted = []

    def render(self, payload):
        self.rendered.append(payload)
        return f"fake/{payload.kind}/{payload.document_number}.pdf"

    def delete(self, reference):
        self.deleted.append(reference)


class FailingRenderer(DocumentRenderer):
    def __init__(self):
        self.attempts = 0

    def render(self, payload):
        self.attempts += 1
        raise RuntimeError("printer on fire")


def make_exam_year(year=2025):
    return ExamYear.objects.create(year=year, name=f"{year}/{year + 1}", hijri_year="1446", is_active=True)


def make_school(**fields):
    n = next(_seq)
    defaults = {
        "name": f"School {n}",
        "name_ar": f"مدرسة {n}",
        "registrar_name": "Registrar",
        "email": f"school{n}@example.com",
    }
    defaults.update(fields)
    return School.objects.create(**defaults)


def make_student(school, exam_year, *, status=StudentStatus.PENDING, first_name="Amina", last_name="Jallow", grade=6, **fields):
    return Student.objects.create(
        school=school,
        exam_year=exam_year,
        status=status,
        first_name=first_name,
        last_name=last_name,
        gender="female",
        grade=grade,
        **fields,
    )


def make_cohort(school, exam_year, size, **fields):
    return [
        make_student(school, exam_year, first_name=f"Student{i}", last_name=f"Family{i}", **fields)
        for i in range(size)
    ]


def make_paid_invoice(school, exam_year, fee="100.00", user=None):
    invoice = generate_invoice(school.pk, exam_year.pk, fee)
    attach_payment_evidence(invoice.pk, slip_reference=f"SLIP-{invoice.pk}", payment_method="bank_transfer")
    return confirm_payment(invoice.pk, confirmed_by=user)


def publish_results(student, exam_year, scores, status=ResultStatus.PUBLISHED):
    results = []
    for score in scores:
        n = next(_seq)
        subject = Subject.objects.create(name=f"Subject {n}", arabic_name=f"مادة {n}", code=f"SUB{n}", grade=student.grade, order=n)
        results.append(StudentResult.objects.create(
            student=student,
            subject=subject,
            exam_year=exam_year,
            total_score=Decimal(str(score)),
            status=status,
        ))
    return results
