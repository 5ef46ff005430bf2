from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings

from ..approval import approve_cohort_for_invoice
from ..domain_credential import Certificate, CredentialEvent, Transcript
from ..domain_exam import ResultStatus
from ..exceptions import CollisionExhausted, RenderingFailure, StateConflict, ValidationError
from ..issuance import (
    issue_certificate,
    issue_credentials,
    issue_credentials_for_school,
    issue_transcript,
    record_print,
    reissue_credential,
    revoke_credential,
)
from ..verification import verify
from .helpers import (
    FailingRenderer,
    FakeRenderer,
    SequenceRng,
    make_cohort,
    make_exam_year,
    make_paid_invoice,
    make_school,
    make_student,
    publish_results,
)

User = get_user_model()


class IssuanceTestMixin:
    def setUp(self):
        self.exam_year = make_exam_year()
        self.school = make_school()
        self.passing, self.failing = make_cohort(self.school, self.exam_year, 2)
        invoice = make_paid_invoice(self.school, self.exam_year)
        approve_cohort_for_invoice(invoice.pk, rng=SequenceRng([100001, 100002]))
        self.passing.refresh_from_db()
        self.failing.refresh_from_db()
        publish_results(self.passing, self.exam_year, [90, 80])
        publish_results(self.failing, self.exam_year, [30, 40])
        self.renderer = FakeRenderer()
        self.admin = User.objects.create_user(username="issuer", password="pass12345", is_staff=True)


class IssueCertificateTests(IssuanceTestMixin, TestCase):
    def test_issues_certificate_with_grade_and_document(self):
        cert, created = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer, issued_by=self.admin)
        self.assertTrue(created)
        self.assertEqual(cert.document_number, "CERT-2025-000001")
        self.assertEqual(len(cert.verification_token), 43)
        self.assertEqual(cert.total_score, Decimal("170"))
        self.assertEqual(cert.max_score, Decimal("200"))
        self.assertEqual(cert.percentage, Decimal("85.00"))
        self.assertEqual(cert.final_grade, "Excellent")
        self.assertEqual(cert.final_grade_ar, "ممتاز")
        self.assertEqual(cert.pdf_reference, "fake/certificate/CERT-2025-000001.pdf")
        self.assertEqual(cert.issued_by, self.admin)

        payload = self.renderer.rendered[0]
        self.assertEqual(payload.index_number, "100001")
        self.assertTrue(payload.verification_url.endswith(f"/certificate/{cert.verification_token}"))
        self.assertEqual(len(payload.subjects), 2)
        self.assertTrue(CredentialEvent.objects.filter(credential_id=cert.pk, event=CredentialEvent.ISSUED).exists())

    def test_issuing_again_returns_existing(self):
        first, _ = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        second, created = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(len(self.renderer.rendered), 1)
        self.assertEqual(Certificate.objects.count(), 1)

    def test_failing_student_gets_no_certificate(self):
        with self.assertRaises(ValidationError):
            issue_certificate(self.failing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertEqual(Certificate.objects.count(), 0)

    def test_failing_student_still_gets_transcript(self):
        transcript, created = issue_transcript(self.failing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertTrue(created)
        self.assertEqual(transcript.final_grade, "Fail")
        self.assertEqual(transcript.final_grade_ar, "راسب")

    def test_kinds_have_separate_number_sequences(self):
        cert, _ = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        tr_a, _ = issue_transcript(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        tr_b, _ = issue_transcript(self.failing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertEqual(cert.document_number, "CERT-2025-000001")
        self.assertEqual(tr_a.document_number, "TR-2025-000001")
        self.assertEqual(tr_b.document_number, "TR-2025-000002")
        self.assertNotEqual(cert.verification_token, tr_a.verification_token)

    def test_requires_published_results(self):
        student = make_student(
            self.school, self.exam_year, status="approved", index_number="100009", first_name="Unpublished",
        )
        publish_results(student, self.exam_year, [99], status=ResultStatus.VALIDATED)
        with self.assertRaises(ValidationError):
            issue_transcript(student.pk, self.exam_year.pk, renderer=self.renderer)

    def test_requires_index_number(self):
        student = make_student(self.school, self.exam_year, status="approved", first_name="Unnumbered")
        publish_results(student, self.exam_year, [99])
        with self.assertRaises(ValidationError):
            issue_certificate(student.pk, self.exam_year.pk, renderer=self.renderer)


class IssuanceAtomicityTests(IssuanceTestMixin, TestCase):
    def test_render_failure_leaves_nothing_behind(self):
        renderer = FailingRenderer()
        with self.assertRaises(RenderingFailure):
            issue_certificate(self.passing.pk, self.exam_year.pk, renderer=renderer)
        self.assertEqual(renderer.attempts, 1)
        self.assertEqual(Certificate.objects.count(), 0)
        self.assertEqual(CredentialEvent.objects.count(), 0)

        # the number was never consumed
        cert, _ = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertEqual(cert.document_number, "CERT-2025-000001")

    def test_stored_artifact_is_deleted_when_transaction_fails(self):
        with mock.patch("credentials.issuance._record_event", side_effect=RuntimeError("audit table locked")):
            with self.assertRaises(RuntimeError):
                issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertEqual(self.renderer.deleted, ["fake/certificate/CERT-2025-000001.pdf"])
        self.assertEqual(Certificate.objects.count(), 0)

    def test_number_collision_retries_with_next_candidate(self):
        issue_transcript(self.failing.pk, self.exam_year.pk, renderer=self.renderer)
        taken = Transcript.objects.get().document_number
        with mock.patch(
            "credentials.issuance.next_document_number",
            side_effect=[taken, "TR-2025-000777"],
        ):
            transcript, created = issue_transcript(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertTrue(created)
        self.assertEqual(transcript.document_number, "TR-2025-000777")

    @override_settings(EXAM_BOARD={"DOCUMENT_NUMBER_MAX_ATTEMPTS": 3})
    def test_collision_exhaustion(self):
        issue_transcript(self.failing.pk, self.exam_year.pk, renderer=self.renderer)
        taken = Transcript.objects.get().document_number
        with mock.patch("credentials.issuance.next_document_number", return_value=taken) as candidate:
            with self.assertRaises(CollisionExhausted):
                issue_transcript(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertEqual(candidate.call_count, 3)
        self.assertEqual(Transcript.objects.count(), 1)


class CredentialLifecycleTests(IssuanceTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.cert, _ = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)

    def test_reissue_revokes_old_token(self):
        old_token = self.cert.verification_token
        new, created = issue_certificate(
            self.passing.pk, self.exam_year.pk, renderer=self.renderer, reissue=True, issued_by=self.admin,
        )
        self.assertTrue(created)
        self.assertNotEqual(new.pk, self.cert.pk)
        self.assertNotEqual(new.verification_token, old_token)
        self.assertEqual(new.document_number, "CERT-2025-000002")
        self.assertEqual(new.replaces_id, self.cert.pk)

        self.cert.refresh_from_db()
        self.assertIsNotNone(self.cert.revoked_at)
        self.assertFalse(verify(old_token).valid)
        self.assertTrue(verify(new.verification_token).valid)
        events = set(CredentialEvent.objects.values_list("event", flat=True))
        self.assertEqual(events, {CredentialEvent.ISSUED, CredentialEvent.REVOKED, CredentialEvent.REISSUED})

    def test_reissue_credential_requires_reason(self):
        with self.assertRaises(ValidationError):
            reissue_credential("certificate", self.cert.pk, reason=" ", renderer=self.renderer)
        new = reissue_credential("certificate", self.cert.pk, reason="name misspelled", renderer=self.renderer)
        self.cert.refresh_from_db()
        self.assertEqual(self.cert.revoked_reason, "name misspelled")
        with self.assertRaises(StateConflict):
            reissue_credential("certificate", self.cert.pk, reason="again", renderer=self.renderer)
        self.assertIsNone(new.revoked_at)

    def test_revoke_keeps_the_row(self):
        revoked = revoke_credential("certificate", self.cert.pk, reason="issued in error", actor=self.admin)
        self.assertIsNotNone(revoked.revoked_at)
        self.assertEqual(Certificate.objects.count(), 1)
        self.assertFalse(verify(self.cert.verification_token).valid)
        with self.assertRaises(StateConflict):
            revoke_credential("certificate", self.cert.pk, reason="twice")

    def test_revoked_student_can_be_issued_afresh(self):
        revoke_credential("certificate", self.cert.pk, reason="issued in error")
        fresh, created = issue_certificate(self.passing.pk, self.exam_year.pk, renderer=self.renderer)
        self.assertTrue(created)
        self.assertNotEqual(fresh.pk, self.cert.pk)

    def test_print_count(self):
        record_print("certificate", self.cert.pk, actor=self.admin)
        printed = record_print("certificate", self.cert.pk)
        self.assertEqual(printed.print_count, 2)
        self.assertIsNotNone(printed.last_printed_at)
        revoke_credential("certificate", self.cert.pk, reason="lost")
        with self.assertRaises(StateConflict):
            record_print("certificate", self.cert.pk)

    def test_rescoring_a_published_result_marks_credential_stale(self):
        result = self.passing.results.first()
        result.total_score = Decimal("20")
        result.save()
        self.cert.refresh_from_db()
        self.assertIsNotNone(self.cert.stale_since)
        self.assertTrue(CredentialEvent.objects.filter(credential_id=self.cert.pk, event=CredentialEvent.STALE).exists())
        # still describes what was issued
        self.assertTrue(verify(self.cert.verification_token).valid)

    def test_correcting_exam_score_marks_credential_stale(self):
        result = self.passing.results.first()
        issued_total = result.total_score
        result.first_term_score = issued_total - Decimal("10")
        result.exam_score = Decimal("10")
        result.save()
        self.cert.refresh_from_db()
        self.assertIsNone(self.cert.stale_since)

        result.refresh_from_db()
        result.exam_score = Decimal("4")
        result.save(update_fields=["exam_score"])
        result.refresh_from_db()
        self.assertEqual(result.total_score, issued_total - Decimal("6"))
        self.cert.refresh_from_db()
        self.assertIsNotNone(self.cert.stale_since)
        event = CredentialEvent.objects.get(credential_id=self.cert.pk, event=CredentialEvent.STALE)
        self.assertIn("re-scored", event.note)

    def test_unrelated_save_does_not_mark_stale(self):
        result = self.passing.results.first()
        result.exam_score = result.exam_score
        result.save()
        self.cert.refresh_from_db()
        self.assertIsNone(self.cert.stale_since)


class BatchIssuanceTests(IssuanceTestMixin, TestCase):
    def test_batch_reports_each_student(self):
        result = issue_credentials(
            [self.passing.pk, self.failing.pk, self.passing.pk], self.exam_year.pk, "certificate", renderer=self.renderer,
        )
        self.assertEqual(result.succeeded, [{"id": self.passing.pk, "value": "CERT-2025-000001"}])
        self.assertEqual(result.failed[0]["id"], self.failing.pk)
        self.assertEqual(result.failed[0]["code"], "validation_error")

        again = issue_credentials([self.passing.pk], self.exam_year.pk, "certificate", renderer=self.renderer)
        self.assertEqual(again.skipped, [{"id": self.passing.pk, "reason": "already_issued", "value": "CERT-2025-000001"}])

    def test_unknown_kind(self):
        with self.assertRaises(ValidationError):
            issue_credentials([self.passing.pk], self.exam_year.pk, "diploma", renderer=self.renderer)

    def test_school_batch_notifies_school(self):
        with self.captureOnCommitCallbacks(execute=True):
            result = issue_credentials_for_school(
                self.school.pk, self.exam_year.pk, "transcript", renderer=self.renderer,
            )
        self.assertEqual(result.counts["succeeded"], 2)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.school.email])
