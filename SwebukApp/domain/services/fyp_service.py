"""Domain service functions for final year projects, document versions and reviews.

Enforces role/eligibility rules:
- Only level 400 students (by stored academic level) may propose or submit.
- Only staff/admin review submissions, assign supervisors and change project status.
Submission versioning:
    For each (project, submission_type) the previous latest row is locked,
    flipped to ``is_latest_version=False`` and a new ``pending`` row is inserted
    with ``version_number = max + 1``, all in one transaction.
Review side effects:
    Approving a ``proposal`` moves the project to ``proposal_approved``;
    ``progress_percentage`` is recomputed by the fyp post_save signal.
"""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Max, Q, QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from SwebukApp.core.access import (
    STAFF_ROLES,
    ensure,
    ensure_admin,
    ensure_authenticated,
    ensure_fyp_eligible,
    ensure_role,
    ensure_staff_or_admin,
    has_role,
    is_fyp_eligible,
    is_fyp_participant,
    stored_profile,
)
from SwebukApp.core.choices import FYPStatus, SubmissionStatus, SubmissionType, UserRole
from SwebukApp.core.conf import swebuk_setting
from SwebukApp.core.exceptions import Conflict
from SwebukApp.core.validators import validate_document_mime, validate_document_size, validate_github_url
from SwebukApp.core.workflow import FYP_LIFECYCLE, SUBMISSION_REVIEW
from SwebukApp.fyp.models import FinalYearProject, FYPComment, Submission

logger = logging.getLogger(__name__)

User = get_user_model()

CLOSED_STATUSES = frozenset({FYPStatus.REJECTED, FYPStatus.COMPLETED})


def _django_to_drf(exc: DjangoValidationError, field: str) -> ValidationError:
    return ValidationError({field: exc.messages})


def _validate_document(file_obj: Any) -> None:
    try:
        validate_document_size(file_obj)
        validate_document_mime(file_obj)
    except DjangoValidationError as exc:
        raise _django_to_drf(exc, "file") from exc


def _ensure_owner(student: User, fyp: FinalYearProject) -> None:
    if fyp.student_id != student.pk:
        logger.warning("User %s tried to act on FYP %s they do not own", student.pk, fyp.pk)
        raise PermissionDenied("Only the project owner can do this.")


def _discard_stored_file(submission: Submission) -> None:
    """Remove a file already written to storage for a row that was not saved."""
    stored = submission.file
    if stored and stored.name and getattr(stored, "_committed", False):
        logger.info("Removing orphaned upload %s", stored.name)
        stored.storage.delete(stored.name)


def check_eligibility(user: User) -> dict[str, Any]:
    """Eligibility from the stored profile, never from client claims.

    A missing profile row is reported as ineligible.
    """
    ensure_authenticated(user)
    profile = stored_profile(user)
    level = profile["academic_level"] if profile else None
    return {"eligible": is_fyp_eligible(level), "academic_level": level}


def _store_version(
    fyp: FinalYearProject,
    submission_type: str,
    title: str,
    description: str = "",
    file: Any | None = None,
) -> Submission:
    """Insert the next version of ``submission_type``; caller holds a transaction.

    If the insert fails after the file was written to storage, the stored
    file is removed before the error propagates.
    """
    current = (
        Submission.objects
        .select_for_update()
        .of_type(fyp, submission_type)
        .latest_versions()
        .first()
    )
    top = Submission.objects.of_type(fyp, submission_type).aggregate(top=Max("version_number"))["top"] or 0
    if current is not None:
        current.is_latest_version = False
        current.save(update_fields=["is_latest_version"])

    submission = Submission(
        fyp=fyp,
        submission_type=submission_type,
        title=title,
        description=description or "",
        status=SubmissionStatus.PENDING,
        version_number=top + 1,
        is_latest_version=True,
        previous_version=current,
    )
    if file is not None:
        _validate_document(file)
        submission.file = file
        submission.file_name = getattr(file, "name", "") or ""
        submission.file_size = getattr(file, "size", None)
    try:
        with transaction.atomic():
            submission.save()
    except IntegrityError as exc:
        _discard_stored_file(submission)
        logger.warning("Concurrent version insert for FYP %s %s", fyp.pk, submission_type)
        raise Conflict("Another version was submitted at the same time. Please retry.") from exc
    except Exception:
        _discard_stored_file(submission)
        raise
    logger.info(
        "FYP %s: stored %s v%s (submission %s)", fyp.pk, submission_type, submission.version_number, submission.pk
    )
    return submission


@transaction.atomic
def submit_proposal(
    student: User,
    title: str,
    description: str,
    document: Any | None = None,
) -> FinalYearProject:
    """Create the single project row for an eligible student.

    Rules:
        - Caller must be a student whose stored level is level 400.
        - Title at least 10 characters, description at least 50.
        - A second proposal fails with 409 (also at the database level).
        - An attached document becomes ``proposal`` version 1.
    """
    ensure_fyp_eligible(student)
    ensure_role(student, [UserRole.STUDENT], "Only students can submit a proposal.")
    title = (title or "").strip()
    description = (description or "").strip()
    errors = {}
    if len(title) < swebuk_setting("PROPOSAL_TITLE_MIN"):
        errors["title"] = [f"Title must be at least {swebuk_setting('PROPOSAL_TITLE_MIN')} characters."]
    if len(description) < swebuk_setting("PROPOSAL_DESCRIPTION_MIN"):
        errors["description"] = [
            f"Description must be at least {swebuk_setting('PROPOSAL_DESCRIPTION_MIN')} characters."
        ]
    if errors:
        raise ValidationError(errors)
    if FinalYearProject.objects.filter(student=student).exists():
        raise Conflict("You have already submitted a final year project proposal.")
    try:
        with transaction.atomic():
            fyp = FinalYearProject.objects.create(
                student=student,
                title=title,
                description=description,
                status=FYPStatus.PROPOSAL_SUBMITTED,
            )
    except IntegrityError as exc:
        raise Conflict("You have already submitted a final year project proposal.") from exc
    logger.info("Student %s submitted proposal, FYP %s", student.pk, fyp.pk)
    if document is not None:
        _store_version(fyp, SubmissionType.PROPOSAL, title, description, document)
    return fyp


@transaction.atomic
def submit_document(
    student: User,
    fyp: FinalYearProject,
    submission_type: str,
    title: str,
    description: str = "",
    file: Any | None = None,
) -> Submission:
    """Record a new version of a document for the student's own project."""
    ensure_fyp_eligible(student)
    fyp = FinalYearProject.objects.select_for_update().get(pk=fyp.pk)
    _ensure_owner(student, fyp)
    if fyp.status in CLOSED_STATUSES:
        raise ValidationError({"fyp": [f"Project is {fyp.status}; no further submissions are accepted."]})
    if submission_type not in SubmissionType.values:
        raise ValidationError({"submission_type": ["Unknown submission type."]})
    if not (title or "").strip():
        raise ValidationError({"title": ["This field may not be blank."]})
    return _store_version(fyp, submission_type, title.strip(), description, file)


@transaction.atomic
def update_pending_submission(
    student: User,
    submission: Submission,
    title: str | None = None,
    description: str | None = None,
) -> Submission:
    """Edit title/description of an own submission that is still pending."""
    submission = Submission.objects.select_for_update().select_related("fyp").get(pk=submission.pk)
    _ensure_owner(student, submission.fyp)
    if submission.status != SubmissionStatus.PENDING:
        raise ValidationError({"status": ["Only pending submissions can be edited."]})
    fields = []
    if title is not None:
        if not title.strip():
            raise ValidationError({"title": ["This field may not be blank."]})
        submission.title = title.strip()
        fields.append("title")
    if description is not None:
        submission.description = description
        fields.append("description")
    if fields:
        submission.save(update_fields=fields)
    return submission


def version_history(user: User, fyp: FinalYearProject, submission_type: str) -> QuerySet[Submission]:
    """All versions of one submission type, newest first."""
    ensure(is_fyp_participant(user, fyp), "You do not have access to this project.")
    return Submission.objects.of_type(fyp, submission_type).history().select_related("reviewed_by")


@transaction.atomic
def review_submission(
    reviewer: User,
    submission: Submission,
    status: str,
    feedback: str = "",
) -> Submission:
    """Review a pending submission (staff/admin only).

    Sets ``supervisor_feedback`` verbatim and ``reviewed_at``. Approving a
    proposal moves a ``proposal_submitted`` project to ``proposal_approved``;
    later project states are left alone.

    Raises:
        PermissionDenied: Reviewer is not staff/admin.
        InvalidTransition: Submission is not pending or status is not a review outcome.
    """
    ensure_staff_or_admin(reviewer, "Only staff or admin can review submissions.")
    submission = Submission.objects.select_for_update().select_related("fyp").get(pk=submission.pk)
    SUBMISSION_REVIEW.ensure(submission.status, status)

    submission.status = status
    submission.supervisor_feedback = feedback or ""
    submission.reviewed_at = timezone.now()
    submission.reviewed_by = reviewer
    submission.save(update_fields=["status", "supervisor_feedback", "reviewed_at", "reviewed_by"])

    if submission.submission_type == SubmissionType.PROPOSAL and status == SubmissionStatus.APPROVED:
        fyp = FinalYearProject.objects.select_for_update().get(pk=submission.fyp_id)
        if FYP_LIFECYCLE.can(fyp.status, FYPStatus.PROPOSAL_APPROVED):
            fyp.status = FYPStatus.PROPOSAL_APPROVED
            fyp.save(update_fields=["status", "updated_at"])
    logger.info(
        "Submission %s (%s v%s) reviewed %s by %s",
        submission.pk, submission.submission_type, submission.version_number, status, reviewer.pk,
    )
    return submission


def _ensure_supervisor(supervisor: User) -> None:
    if not has_role(supervisor, STAFF_ROLES):
        raise ValidationError({"supervisor_id": ["Supervisor must be a staff or admin account."]})


@transaction.atomic
def assign_supervisor(actor: User, fyp: FinalYearProject, supervisor: User) -> FinalYearProject:
    """Bind a supervisor to a project; re-assignment overwrites."""
    ensure_staff_or_admin(actor)
    _ensure_supervisor(supervisor)
    fyp = FinalYearProject.objects.select_for_update().get(pk=fyp.pk)
    if fyp.supervisor_id != supervisor.pk:
        fyp.supervisor = supervisor
        fyp.save(update_fields=["supervisor", "updated_at"])
    logger.info("FYP %s supervisor set to %s by %s", fyp.pk, supervisor.pk, actor.pk)
    return fyp


@transaction.atomic
def bulk_assign_supervisor(actor: User, fyp_ids: list[int], supervisor: User) -> int:
    """Assign one supervisor to many projects (admin only). Returns the number updated."""
    ensure_admin(actor)
    _ensure_supervisor(supervisor)
    ids = set(fyp_ids)
    found = set(FinalYearProject.objects.filter(pk__in=ids).values_list("pk", flat=True))
    missing = ids - found
    if missing:
        raise NotFound(f"Unknown project ids: {sorted(missing)}")
    updated = 0
    for fyp in FinalYearProject.objects.select_for_update().filter(pk__in=found):
        fyp.supervisor = supervisor
        fyp.save(update_fields=["supervisor", "updated_at"])
        updated += 1
    logger.info("Bulk-assigned supervisor %s to %s projects", supervisor.pk, updated)
    return updated


@transaction.atomic
def update_fyp_status(
    actor: User,
    fyp: FinalYearProject,
    status: str,
    feedback: str | None = None,
) -> FinalYearProject:
    """Move a project through its lifecycle (staff/admin)."""
    ensure_staff_or_admin(actor)
    fyp = FinalYearProject.objects.select_for_update().get(pk=fyp.pk)
    FYP_LIFECYCLE.ensure(fyp.status, status)
    fields = ["status", "updated_at"]
    fyp.status = status
    if feedback is not None:
        fyp.feedback = feedback
        fields.append("feedback")
    if status == FYPStatus.COMPLETED:
        fyp.completed_at = timezone.now()
        fields.append("completed_at")
    fyp.save(update_fields=fields)
    logger.info("FYP %s status -> %s by %s", fyp.pk, status, actor.pk)
    return fyp


@transaction.atomic
def grade_fyp(actor: User, fyp: FinalYearProject, grade: str, feedback: str = "") -> FinalYearProject:
    """Record the final grade and complete the project."""
    ensure_staff_or_admin(actor)
    fyp = FinalYearProject.objects.select_for_update().get(pk=fyp.pk)
    if fyp.status != FYPStatus.COMPLETED:
        FYP_LIFECYCLE.ensure(fyp.status, FYPStatus.COMPLETED)
        fyp.status = FYPStatus.COMPLETED
        fyp.completed_at = timezone.now()
    fyp.grade = grade
    fyp.feedback = feedback or ""
    fyp.save(update_fields=["status", "completed_at", "grade", "feedback", "updated_at"])
    logger.info("FYP %s graded %s by %s", fyp.pk, grade, actor.pk)
    return fyp


@transaction.atomic
def update_github_repo(student: User, fyp: FinalYearProject, url: str) -> FinalYearProject:
    _ensure_owner(student, fyp)
    if url:
        try:
            validate_github_url(url)
        except DjangoValidationError as exc:
            raise _django_to_drf(exc, "github_repo_url") from exc
    fyp.github_repo_url = url or ""
    fyp.save(update_fields=["github_repo_url", "updated_at"])
    return fyp


def post_comment(user: User, fyp: FinalYearProject, content: str) -> FYPComment:
    ensure(is_fyp_participant(user, fyp), "You do not have access to this project.")
    if not (content or "").strip():
        raise ValidationError({"content": ["Comment cannot be empty."]})
    return FYPComment.objects.create(fyp=fyp, user=user, content=content.strip())


def list_comments(user: User, fyp: FinalYearProject) -> QuerySet[FYPComment]:
    ensure(is_fyp_participant(user, fyp), "You do not have access to this project.")
    return fyp.comments.select_related("user")


def student_project(student: User) -> FinalYearProject | None:
    """The caller's own project with its submissions, or None."""
    ensure_fyp_eligible(student)
    return (
        FinalYearProject.objects
        .for_student(student)
        .select_related("supervisor")
        .prefetch_related("submissions")
        .first()
    )


def supervised_projects(user: User) -> QuerySet[FinalYearProject]:
    ensure_staff_or_admin(user)
    return FinalYearProject.objects.supervised_by(user).select_related("student")


def unassigned_projects(user: User) -> QuerySet[FinalYearProject]:
    ensure_staff_or_admin(user)
    return FinalYearProject.objects.unassigned().select_related("student")


def list_supervisors(user: User) -> QuerySet:
    """Accounts that can be assigned as supervisors."""
    ensure_staff_or_admin(user)
    return User.objects.filter(role__in=list(STAFF_ROLES), is_active=True).order_by("full_name", "email")


def supervisor_workload(user: User) -> list[dict[str, Any]]:
    """Projects per supervisor, busiest first (admin only)."""
    ensure_admin(user)
    rows = (
        User.objects
        .filter(role__in=list(STAFF_ROLES))
        .annotate(
            total=Count("supervised_projects", distinct=True),
            active=Count(
                "supervised_projects",
                filter=~Q(supervised_projects__status__in=list(CLOSED_STATUSES)),
                distinct=True,
            ),
        )
        .order_by("-total", "email")
    )
    return [
        {"supervisor_id": u.pk, "email": u.email, "full_name": u.full_name, "total": u.total, "active": u.active}
        for u in rows
    ]


def _status_counts(qs: QuerySet[FinalYearProject]) -> dict[str, int]:
    counts = {value: 0 for value in FYPStatus.values}
    for row in qs.values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]
    return counts


def staff_stats(user: User) -> dict[str, Any]:
    """Dashboard numbers for the projects a staff member supervises."""
    ensure_staff_or_admin(user)
    projects = FinalYearProject.objects.supervised_by(user)
    return {
        "total_projects": projects.count(),
        "by_status": _status_counts(projects),
        "pending_reviews": Submission.objects.filter(fyp__in=projects).pending().count(),
    }


def admin_stats(user: User) -> dict[str, Any]:
    ensure_admin(user)
    projects = FinalYearProject.objects.all()
    return {
        "total_projects": projects.count(),
        "by_status": _status_counts(projects),
        "unassigned": projects.unassigned().count(),
        "pending_reviews": Submission.objects.pending().count(),
        "supervisors": User.objects.filter(role__in=list(STAFF_ROLES)).count(),
    }


def get_fyp_for(user: User, pk: int) -> FinalYearProject:
    """Fetch a project visible to user or raise NotFound."""
    fyp = FinalYearProject.objects.visible_to(user).filter(pk=pk).select_related("student", "supervisor").first()
    if fyp is None:
        raise NotFound("Final year project not found.")
    return fyp


