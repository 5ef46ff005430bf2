"""
File: backend/credentials/urls.py
API routing configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView

from .domain_credential import CredentialKind
from .views_credential import CertificateViewSet, TranscriptViewSet
from .views_invoice import InvoiceViewSet
from .views_student import StudentViewSet
from .views_verify import VerifyCredentialView

router = DefaultRouter()
router.register(r'invoices', InvoiceViewSet, basename='invoices')
router.register(r'students', StudentViewSet, basename='students')
router.register(r'certificates', CertificateViewSet, basename='certificates')
router.register(r'transcripts', TranscriptViewSet, basename='transcripts')

urlpatterns = [
    # --- public verification (no auth) ---
    path(
        "verify/certificate/<str:token>/",
        VerifyCredentialView.as_view(kind=CredentialKind.CERTIFICATE),
        name="verify_certificate",
    ),
    path(
        "verify/transcript/<str:token>/",
        VerifyCredentialView.as_view(kind=CredentialKind.TRANSCRIPT),
        name="verify_transcript",
    ),
    path("verify/<str:token>/", VerifyCredentialView.as_view(), name="verify_any"),

    # --- JWT ---
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("token/verify/", TokenVerifyView.as_view(), name="token_verify"),

    path("", include(router.urls)),
]
