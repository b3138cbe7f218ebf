"""Signal handlers for the FYP domain (keep progress_percentage in step with reviews)."""

from typing import Any

from django.db.models.signals import post_save
from django.dispatch import receiver

from SwebukApp.core.choices import SubmissionStatus
from SwebukApp.fyp.models import MILESTONE_TYPES, FinalYearProject, Submission


def compute_progress(fyp_id: int) -> int:
    """Percentage of milestone types with at least one approved version."""
    approved = (
        Submission.objects
        .filter(fyp_id=fyp_id, status=SubmissionStatus.APPROVED, submission_type__in=MILESTONE_TYPES)
        .values("submission_type")
        .distinct()
        .count()
    )
    return min(round(approved * 100 / len(MILESTONE_TYPES)), 100)


@receiver(post_save, sender=Submission)
def recompute_fyp_progress(
    sender: type[Submission],
    instance: Submission,
    created: bool,
    **kwargs: Any,
) -> None:
    """Refresh the parent project's progress whenever a submission changes."""
    if created:
        return
    progress = compute_progress(instance.fyp_id)
    FinalYearProject.objects.filter(pk=instance.fyp_id).exclude(
        progress_percentage=progress
    ).update(progress_percentage=progress)
