"""Custom querysets encapsulating role-based visibility of projects and submissions."""

from typing import Self

from django.db.models import Q, QuerySet

from SwebukApp.core.access import is_staff_or_admin
from SwebukApp.core.choices import SubmissionStatus


class FinalYearProjectQuerySet(QuerySet):
    """QuerySet helpers for final year project visibility."""

    def for_student(self, user) -> Self:
        return self.filter(student=user)

    def supervised_by(self, user) -> Self:
        return self.filter(supervisor=user)

    def unassigned(self) -> Self:
        return self.filter(supervisor__isnull=True)

    def visible_to(self, user) -> Self:
        """Projects visible to user:
        - Staff/Admin: all
        - Anyone else: own project or projects they supervise
        - Anonymous: none
        """
        if not user or not user.is_authenticated:
            return self.none()
        if is_staff_or_admin(user):
            return self.all()
        return self.filter(Q(student=user) | Q(supervisor=user))


class SubmissionQuerySet(QuerySet):
    """QuerySet helpers for the submission ledger."""

    def latest_versions(self) -> Self:
        return self.filter(is_latest_version=True)

    def of_type(self, fyp, submission_type: str) -> Self:
        return self.filter(fyp=fyp, submission_type=submission_type)

    def pending(self) -> Self:
        return self.filter(status=SubmissionStatus.PENDING)

    def history(self) -> Self:
        """Newest version first."""
        return self.order_by("-version_number")
