from django.conf import settings

DEFAULTS = {
    "INDEX_NUMBER_MAX_ATTEMPTS": 50,
    "DOCUMENT_NUMBER_MAX_ATTEMPTS": 20,
    "CERTIFICATE_PREFIX": "CERT",
    "TRANSCRIPT_PREFIX": "TR",
    "VERIFY_BASE_URL": "http://localhost:5173/verify",
    "RENDERER": "credentials.rendering.ReportLabRenderer",
    "CREDENTIAL_STORAGE_DIR": "credentials",
    "ARABIC_FONT_PATH": None,
    "NOTIFY_FROM_EMAIL": "no-reply@examboard.local",
}


def exam_board_setting(name):
    """Read a key of settings.EXAM_BOARD, falling back to DEFAULTS."""
    configured = getattr(settings, "EXAM_BOARD", None) or {}
    if name in configured:
        return configured[name]
    return DEFAULTS[name]
