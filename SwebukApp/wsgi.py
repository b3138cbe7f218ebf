"""WSGI entry point for the Swebuk portal."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "SwebukApp.settings")

application = get_wsgi_application()
