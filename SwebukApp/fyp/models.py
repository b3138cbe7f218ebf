"""Final year project models: FinalYearProject, Submission (versioned ledger), FYPComment."""

from pathlib import PurePath

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from simple_history.models import HistoricalRecords

from SwebukApp.core.choices import FYPStatus, SubmissionStatus, SubmissionType
from SwebukApp.core.validators import validate_document_mime, validate_document_size
from SwebukApp.fyp.querysets import FinalYearProjectQuerySet, SubmissionQuerySet

User = settings.AUTH_USER_MODEL

# Milestones counted by progress_percentage
MILESTONE_TYPES: tuple[str, ...] = (
    SubmissionType.PROPOSAL,
    SubmissionType.CHAPTER_1,
    SubmissionType.CHAPTER_2,
    SubmissionType.CHAPTER_3,
    SubmissionType.CHAPTER_4,
    SubmissionType.CHAPTER_5,
    SubmissionType.FINAL_THESIS,
)


def fyp_document_path(instance: "Submission", filename: str) -> str:
    """``fyp-documents/<student>/<fyp>/<type>_<epoch ms>.<ext>``"""
    ext = PurePath(filename).suffix.lstrip(".").lower() or "bin"
    stamp = int(timezone.now().timestamp() * 1000)
    return (
        f"fyp-documents/{instance.fyp.student_id}/{instance.fyp_id}/"
        f"{instance.submission_type}_{stamp}.{ext}"
    )


class FinalYearProject(models.Model):
    """One capstone record per final-year student.

    Fields:
        student: Owner (unique; a second proposal by the same student fails at the database).
        supervisor: Staff/admin profile assigned to guide the project.
        status: FYPStatus value, changed through the fyp workflow.
        progress_percentage: Share of approved milestones (0-100), kept by a signal.
        github_repo_url: Optional code repository.
        grade / feedback / completed_at: Set when the project is graded.
    """
    student = models.OneToOneField(User, on_delete=models.PROTECT, related_name="final_year_project")
    supervisor = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="supervised_projects"
    )
    title = models.CharField(max_length=255)
    description = models.TextField()
    status = models.CharField(max_length=32, choices=FYPStatus.choices, default=FYPStatus.PROPOSAL_SUBMITTED)
    progress_percentage = models.PositiveSmallIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    github_repo_url = models.URLField(blank=True)
    grade = models.CharField(max_length=8, blank=True)
    feedback = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = FinalYearProjectQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.title} (#{self.pk})"


class Submission(models.Model):
    """A document version submitted for review.

    For a given (fyp, submission_type) exactly one row carries
    ``is_latest_version``; version numbers grow by one per type and each new
    row links back to the one it supersedes. Both rules are database constraints.
    """
    fyp = models.ForeignKey(FinalYearProject, on_delete=models.CASCADE, related_name="submissions")
    submission_type = models.CharField(max_length=32, choices=SubmissionType.choices)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    file = models.FileField(
        upload_to=fyp_document_path, blank=True, null=True, max_length=255,
        validators=[validate_document_size, validate_document_mime],
    )
    file_name = models.CharField(max_length=255, blank=True)
    file_size = models.PositiveBigIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=SubmissionStatus.choices, default=SubmissionStatus.PENDING)
    version_number = models.PositiveIntegerField(default=1)
    is_latest_version = models.BooleanField(default=True)
    previous_version = models.OneToOneField(
        "self", on_delete=models.SET_NULL, null=True, blank=True, related_name="next_version"
    )
    supervisor_feedback = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviewed_submissions"
    )
    submitted_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    history = HistoricalRecords()

    objects = SubmissionQuerySet.as_manager()

    class Meta:
        ordering = ["-submitted_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["fyp", "submission_type"],
                condition=Q(is_latest_version=True),
                name="uq_fyp_submission_latest",
            ),
            models.UniqueConstraint(
                fields=["fyp", "submission_type", "version_number"],
                name="uq_fyp_submission_version",
            ),
        ]

    @property
    def file_url(self) -> str | None:
        return self.file.url if self.file else None

    def __str__(self) -> str:
        return f"{self.submission_type} v{self.version_number} ({self.status})"


class FYPComment(models.Model):
    """Discussion entry between a student, their supervisor and staff."""
    fyp = models.ForeignKey(FinalYearProject, on_delete=models.CASCADE, related_name="comments")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="fyp_comments")
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
