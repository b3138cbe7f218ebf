"""Academic calendar models: sessions and the audit trail of session roll-forwards."""

from django.conf import settings
from django.db import models

from simple_history.models import HistoricalRecords

User = settings.AUTH_USER_MODEL


class AcademicSession(models.Model):
    """A teaching session (e.g. "2024/2025", "Semester I"); at most one is active."""
    session_name = models.CharField(max_length=64)
    start_date = models.DateField()
    end_date = models.DateField()
    semester = models.CharField(max_length=32, default="Semester I")
    is_active = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    class Meta:
        ordering = ["-start_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["is_active"],
                condition=models.Q(is_active=True),
                name="uq_single_active_session",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.session_name} {self.semester}"


class SessionProcessingLog(models.Model):
    """Audit row written by each academic-level roll-forward.

    ``academic_level_changes`` maps a transition name (``level_300_to_400``)
    to the number of profiles moved.
    """
    processed_at = models.DateTimeField(auto_now_add=True)
    academic_level_changes = models.JSONField(default=dict)
    session = models.ForeignKey(
        AcademicSession, on_delete=models.SET_NULL, null=True, blank=True, related_name="processing_logs"
    )
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="session_processing_logs")

    class Meta:
        ordering = ["-processed_at"]

    def __str__(self) -> str:
        return f"SessionProcessingLog(#{self.pk} at {self.processed_at:%Y-%m-%d})"
