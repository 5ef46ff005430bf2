import shutil
import tempfile
from decimal import Decimal

from django.core.files.storage import default_storage
from django.test import SimpleTestCase, override_settings

from ..exceptions import RenderingFailure
from ..rendering import RenderPayload, ReportLabRenderer, SubjectLine, get_renderer


def _payload(kind="transcript", **overrides):
    fields = dict(
        kind=kind,
        document_number="TR-2025-000001",
        verification_url="https://verify.example.org/transcript/" + "a" * 43,
        student_name="Amina Jallow",
        student_name_en="Amina Jallow",
        index_number="123456",
        grade_level=6,
        school_name="Banjul Central School",
        school_name_ar="",
        exam_year="2025/2026",
        hijri_year="1446",
        total_score=Decimal("150"),
        max_score=Decimal("200"),
        percentage=Decimal("75.00"),
        final_grade="Very Good",
        final_grade_ar="جيد جدا",
        issued_on="2025-07-01",
        subjects=[
            SubjectLine("Mathematics", "الرياضيات", Decimal("70"), Decimal("100")),
            SubjectLine("English", "", Decimal("80"), Decimal("100")),
        ],
    )
    fields.update(overrides)
    return RenderPayload(**fields)


class ReportLabRendererTests(SimpleTestCase):
    def setUp(self):
        self.media = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media, ignore_errors=True)

    def test_builds_pdf(self):
        pdf = ReportLabRenderer().build_pdf(_payload())
        self.assertTrue(pdf.startswith(b"%PDF"))
        certificate = ReportLabRenderer().build_pdf(_payload(kind="certificate", document_number="CERT-2025-000001"))
        self.assertTrue(certificate.startswith(b"%PDF"))

    def test_render_stores_and_delete_removes(self):
        with override_settings(MEDIA_ROOT=self.media):
            renderer = ReportLabRenderer()
            reference = renderer.render(_payload())
            self.assertTrue(reference.startswith("credentials/transcript/TR-2025-000001"))
            self.assertTrue(default_storage.exists(reference))
            renderer.delete(reference)
            self.assertFalse(default_storage.exists(reference))

    @override_settings(EXAM_BOARD={"ARABIC_FONT_PATH": "/nonexistent/font.ttf"})
    def test_failures_become_rendering_failure(self):
        with override_settings(MEDIA_ROOT=self.media):
            with self.assertRaises(RenderingFailure):
                ReportLabRenderer().render(_payload())

    def test_renderer_is_configurable(self):
        with override_settings(EXAM_BOARD={"RENDERER": "credentials.tests.helpers.FakeRenderer"}):
            self.assertEqual(type(get_renderer()).__name__, "FakeRenderer")
        self.assertIsInstance(get_renderer(), ReportLabRenderer)
