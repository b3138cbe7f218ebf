"""Central authorization policy.

Every mutating domain service asks this module before touching data; DRF
permission classes reuse the same predicates. Role and academic level are
always re-read from the database, never taken from token claims or payloads.
"""

import logging
from typing import Any, Iterable

from django.contrib.auth import get_user_model
from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from SwebukApp.core.choices import MemberRole, MembershipStatus, UserRole
from SwebukApp.core.conf import swebuk_setting

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({UserRole.STAFF, UserRole.ADMIN})
EVENT_ORGANIZER_ROLES = frozenset({UserRole.STAFF, UserRole.ADMIN, UserRole.LEAD, UserRole.DEPUTY})


def _authenticated(user) -> bool:
    return bool(user and getattr(user, "is_authenticated", False))


def stored_profile(user) -> dict[str, Any] | None:
    """Fresh ``role``/``academic_level`` for user, or None when the row is missing."""
    if not _authenticated(user):
        return None
    return (
        get_user_model().objects
        .filter(pk=user.pk)
        .values("role", "academic_level")
        .first()
    )


def has_role(user, roles: Iterable[str]) -> bool:
    profile = stored_profile(user)
    return bool(profile and profile["role"] in {str(r) for r in roles})


def is_admin(user) -> bool:
    return has_role(user, [UserRole.ADMIN])


def is_staff_or_admin(user) -> bool:
    return has_role(user, STAFF_ROLES)


def is_fyp_eligible(academic_level: str | None) -> bool:
    """Only final-year students (``level_400`` or the legacy ``"400"``) may use the FYP module."""
    return academic_level in swebuk_setting("FYP_ELIGIBLE_LEVELS")


def can_access_fyp(user) -> bool:
    """Eligibility from the stored profile; a failed lookup counts as ineligible."""
    profile = stored_profile(user)
    if profile is None:
        return False
    return is_fyp_eligible(profile["academic_level"])


def is_fyp_participant(user, fyp) -> bool:
    """Owner student, assigned supervisor, or any staff/admin."""
    if not (_authenticated(user) and fyp):
        return False
    if fyp.student_id == user.pk or fyp.supervisor_id == user.pk:
        return True
    return is_staff_or_admin(user)


def can_manage_cluster(user, cluster) -> bool:
    """Admin/staff, the cluster's named managers, or an approved lead/deputy member."""
    if not (_authenticated(user) and cluster):
        return False
    if is_staff_or_admin(user):
        return True
    if user.pk in (cluster.lead_id, cluster.deputy_id, cluster.staff_manager_id):
        return True
    return cluster.memberships.filter(
        user=user,
        status=MembershipStatus.APPROVED,
        role__in=[MemberRole.LEAD, MemberRole.DEPUTY],
    ).exists()


def can_manage_project(user, project) -> bool:
    if not (_authenticated(user) and project):
        return False
    if project.owner_id == user.pk:
        return True
    if project.cluster_id:
        return can_manage_cluster(user, project.cluster)
    return is_staff_or_admin(user)


def can_moderate_blog(user, blog) -> bool:
    """Admin/staff moderate everything; cluster managers moderate their cluster's posts."""
    if not _authenticated(user):
        return False
    if is_staff_or_admin(user):
        return True
    if blog.cluster_id and has_role(user, [UserRole.LEAD, UserRole.DEPUTY]):
        return can_manage_cluster(user, blog.cluster)
    return False


def can_manage_event(user, event) -> bool:
    if not _authenticated(user):
        return False
    return event.organizer_id == user.pk or is_staff_or_admin(user)


def ensure_authenticated(user) -> None:
    if not _authenticated(user):
        raise NotAuthenticated()


def ensure_role(user, roles: Iterable[str], message: str = "Insufficient role") -> None:
    """Raise PermissionDenied unless the stored role is one of ``roles``."""
    ensure_authenticated(user)
    if not has_role(user, roles):
        logger.warning("Denied user %s: %s", getattr(user, "pk", None), message)
        raise PermissionDenied(message)


def ensure_staff_or_admin(user, message: str = "Staff or admin role required") -> None:
    ensure_role(user, STAFF_ROLES, message)


def ensure_admin(user, message: str = "Admin role required") -> None:
    ensure_role(user, [UserRole.ADMIN], message)


def ensure_fyp_eligible(user) -> None:
    ensure_authenticated(user)
    if not can_access_fyp(user):
        logger.warning("Denied FYP access for user %s: not in final year", user.pk)
        raise PermissionDenied("Only Level 400 students can access the final year project module.")


def ensure(condition: bool, message: str) -> None:
    if not condition:
        raise PermissionDenied(message)
