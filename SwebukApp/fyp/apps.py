"""FYP app configuration (registers signal handlers)."""

from django.apps import AppConfig


class FypConfig(AppConfig):
    """AppConfig for final year projects, submissions and reviews."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SwebukApp.fyp"

    def ready(self):
        """Import signal handlers to connect Django model signals."""
        from SwebukApp.fyp import signals  # noqa: F401
