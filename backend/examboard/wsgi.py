"""WSGI config for the examboard project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'examboard.settings')

application = get_wsgi_application()
