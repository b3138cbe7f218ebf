from django.apps import AppConfig


class AcademicsConfig(AppConfig):
    """Academic sessions and the session-end level roll-forward."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SwebukApp.academics"
