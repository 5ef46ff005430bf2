from django.apps import AppConfig


class CredentialsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'credentials'
    verbose_name = 'Credential issuance'

    def ready(self):
        # Import signal handlers that flag credentials affected by result corrections
        from . import signals  # noqa: F401
