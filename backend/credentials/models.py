"""Model registry for the credentials app.

Models live in the domain_* modules; importing them here lets Django's app
loader and migrations discover them.
"""
from .domain_exam import ExamYear, School, Subject, ResultStatus, StudentResult  # noqa: F401
from .domain_student import StudentStatus, Gender, Student  # noqa: F401
from .domain_invoice import InvoiceStatus, PaymentMethod, Invoice, InvoiceItem  # noqa: F401
from .domain_credential import (  # noqa: F401
    CredentialKind, IssuedCredential, Certificate, Transcript, CredentialEvent,
)
from .domain_logs import ActivityLog, ErrorLog  # noqa: F401
