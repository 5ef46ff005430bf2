"""Outbound school notifications.

Fire-and-forget: called from ``transaction.on_commit`` hooks, so a mail
failure is logged and never undoes the committed state change.
"""
import logging

from django.core.mail import send_mail

from .conf import exam_board_setting
from .domain_exam import ExamYear, School
from .domain_invoice import Invoice

logger = logging.getLogger(__name__)


def _send(subject, body, recipient):
    if not recipient:
        logger.info("No recipient for notification %r; skipped", subject)
        return False
    try:
        send_mail(subject, body, exam_board_setting("NOTIFY_FROM_EMAIL"), [recipient], fail_silently=False)
    except Exception:
        logger.exception("Failed to send notification %r to %s", subject, recipient)
        return False
    return True


def notify_payment_confirmed(invoice_id):
    invoice = Invoice.objects.select_related("school", "exam_year").filter(pk=invoice_id).first()
    if invoice is None:
        logger.warning("Payment notification for missing invoice %s", invoice_id)
        return False
    school = invoice.school
    body = (
        f"Dear {school.registrar_name or school.name},\n\n"
        f"Payment for invoice {invoice.invoice_number} ({invoice.exam_year.name}) "
        f"has been confirmed. Amount received: {invoice.paid_amount}.\n"
        f"Student registrations for this exam year will now be approved and "
        f"index numbers assigned.\n"
    )
    return _send(f"Payment confirmed - {invoice.invoice_number}", body, school.email)


def notify_credentials_issued(school_id, exam_year_id, kind, count):
    school = School.objects.filter(pk=school_id).first()
    exam_year = ExamYear.objects.filter(pk=exam_year_id).first()
    if school is None or exam_year is None or not count:
        return False
    body = (
        f"Dear {school.registrar_name or school.name},\n\n"
        f"{count} {kind}(s) have been issued for {exam_year.name}.\n"
        f"Each document carries a QR code that links to the public verification page.\n"
    )
    return _send(f"{str(kind).capitalize()}s issued - {exam_year.name}", body, school.email)
