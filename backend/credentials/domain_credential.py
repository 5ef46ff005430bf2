"""Domain Credentials (Certificate, Transcript, CredentialEvent)

Both credential kinds share ``IssuedCredential``. Each kind keeps its own
table, so certificate and transcript numbers and tokens live in separate
namespaces, each guarded by its own unique indexes.
"""
from __future__ import annotations

from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

from .domain_exam import ExamYear
from .domain_student import Student

__all__ = ['CredentialKind', 'IssuedCredential', 'Certificate', 'Transcript', 'CredentialEvent']


class CredentialKind(models.TextChoices):
    CERTIFICATE = 'certificate', 'Certificate'
    TRANSCRIPT = 'transcript', 'Transcript'


class IssuedCredential(models.Model):
    id = models.BigAutoField(primary_key=True)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='%(class)ss', db_column='student_id')
    exam_year = models.ForeignKey(ExamYear, on_delete=models.PROTECT, related_name='%(class)ss', db_column='exam_year_id')
    document_number = models.CharField(max_length=50, unique=True, db_column='document_number')
    verification_token = models.CharField(max_length=64, unique=True, db_column='verification_token')
    total_score = models.DecimalField(max_digits=7, decimal_places=2, db_column='total_score')
    max_score = models.DecimalField(max_digits=7, decimal_places=2, db_column='max_score')
    percentage = models.DecimalField(max_digits=5, decimal_places=2, db_column='percentage')
    final_grade = models.CharField(max_length=50, db_column='final_grade')
    final_grade_ar = models.CharField(max_length=50, null=True, blank=True, db_column='final_grade_ar')
    issued_at = models.DateTimeField(default=timezone.now, db_column='issued_at')
    issued_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='issued_by')
    print_count = models.PositiveIntegerField(default=0, db_column='print_count')
    last_printed_at = models.DateTimeField(null=True, blank=True, db_column='last_printed_at')
    pdf_reference = models.CharField(max_length=500, null=True, blank=True, db_column='pdf_reference')
    # soft status: rows are never deleted, only revoked / expired / flagged
    revoked_at = models.DateTimeField(null=True, blank=True, db_column='revoked_at')
    revoked_reason = models.CharField(max_length=255, null=True, blank=True, db_column='revoked_reason')
    expires_at = models.DateTimeField(null=True, blank=True, db_column='expires_at')
    stale_since = models.DateTimeField(null=True, blank=True, db_column='stale_since')
    replaces = models.OneToOneField('self', on_delete=models.PROTECT, null=True, blank=True, related_name='replaced_by', db_column='replaces_id')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')

    KIND = None

    class Meta:
        abstract = True
        ordering = ['-issued_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'exam_year'],
                condition=models.Q(revoked_at__isnull=True),
                name='uq_%(class)s_active_per_student_year',
            ),
        ]

    def __str__(self):
        return f"{self.document_number} ({self.student_id})"

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_valid_at(self, moment=None) -> bool:
        moment = moment or timezone.now()
        if self.revoked_at is not None:
            return False
        if self.expires_at is not None and self.expires_at <= moment:
            return False
        return True


class Certificate(IssuedCredential):
    KIND = CredentialKind.CERTIFICATE

    class Meta(IssuedCredential.Meta):
        db_table = 'certificate'


class Transcript(IssuedCredential):
    KIND = CredentialKind.TRANSCRIPT

    class Meta(IssuedCredential.Meta):
        db_table = 'transcript'


class CredentialEvent(models.Model):
    """Audit trail entry for a credential (issue, reissue, revoke, print, stale)."""

    ISSUED = 'issued'
    REISSUED = 'reissued'
    REVOKED = 'revoked'
    PRINTED = 'printed'
    STALE = 'stale'

    EVENT_CHOICES = [
        (ISSUED, 'Issued'),
        (REISSUED, 'Reissued'),
        (REVOKED, 'Revoked'),
        (PRINTED, 'Printed'),
        (STALE, 'Marked stale'),
    ]

    id = models.BigAutoField(primary_key=True)
    kind = models.CharField(max_length=20, choices=CredentialKind.choices, db_column='kind')
    credential_id = models.BigIntegerField(db_column='credential_id')
    document_number = models.CharField(max_length=50, db_column='document_number')
    event = models.CharField(max_length=20, choices=EVENT_CHOICES, db_column='event')
    actor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='actor_id')
    note = models.TextField(null=True, blank=True, db_column='note')
    created_at = models.DateTimeField(default=timezone.now, db_column='created_at')

    class Meta:
        db_table = 'credential_event'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['kind', 'credential_id'], name='idx_cred_event_target'),
        ]

    def __str__(self):
        return f"{self.document_number} {self.event} @ {self.created_at}"
