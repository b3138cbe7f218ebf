"""Account creation and role / academic profile changes.

Public registration always yields a student. Elevated accounts come from an
admin through ``create_user``; staff may only move people between student,
lead and deputy.
"""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework.exceptions import PermissionDenied

from SwebukApp.core.access import (
    ensure,
    ensure_admin,
    ensure_authenticated,
    ensure_staff_or_admin,
    is_admin,
    is_staff_or_admin,
)
from SwebukApp.core.choices import UserRole
from SwebukApp.core.exceptions import Conflict

logger = logging.getLogger(__name__)

User = get_user_model()

PROFILE_FIELDS = ("full_name", "academic_level", "department", "faculty", "institution", "linkedin_url", "github_url")
STAFF_GRANTABLE_ROLES = frozenset({UserRole.STUDENT, UserRole.LEAD, UserRole.DEPUTY})


def _create(email: str, password: str, role: str, profile: dict[str, Any]) -> User:
    email = email.strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise Conflict("An account with this email already exists.")
    user = User(
        email=email,
        username=email,
        role=role,
        **{k: v for k, v in profile.items() if k in PROFILE_FIELDS},
    )
    user.set_password(password)
    try:
        with transaction.atomic():
            user.save()
    except IntegrityError as exc:
        raise Conflict("An account with this email already exists.") from exc
    logger.info("Created %s account %s", role, user.pk)
    return user


def register(email: str, password: str, **profile: Any) -> User:
    """Self-service signup. Any ``role`` in the payload is ignored."""
    profile.pop("role", None)
    return _create(email, password, UserRole.STUDENT, profile)


def create_user(actor: User, email: str, password: str, role: str = UserRole.STUDENT, **profile: Any) -> User:
    """Admin-only account creation with an explicit role."""
    ensure_admin(actor)
    return _create(email, password, role, profile)


@transaction.atomic
def update_role(actor: User, user: User, role: str) -> User:
    """Change a user's role.

    Admins may set any role. Staff may only switch between student, lead and
    deputy, and may not touch staff or admin accounts.
    """
    ensure_staff_or_admin(actor)
    if not is_admin(actor):
        ensure(role in STAFF_GRANTABLE_ROLES, "Only an admin can grant this role.")
        ensure(user.role in STAFF_GRANTABLE_ROLES, "Only an admin can change this account.")
    user = User.objects.select_for_update().get(pk=user.pk)
    previous = user.role
    user.role = role
    user.save(update_fields=["role"])
    logger.info("User %s role %s -> %s by %s", user.pk, previous, role, actor.pk)
    return user


@transaction.atomic
def update_academic_profile(actor: User, user: User, data: dict[str, Any]) -> User:
    """Update profile fields (self or staff/admin). ``academic_level`` is staff/admin only."""
    ensure_authenticated(actor)
    staff = is_staff_or_admin(actor)
    if actor.pk != user.pk and not staff:
        raise PermissionDenied("You can only edit your own profile.")
    if "academic_level" in data and not staff:
        raise PermissionDenied("Academic level is managed by staff.")
    changed = [field for field in PROFILE_FIELDS if field in data]
    for field in changed:
        setattr(user, field, data[field])
    if changed:
        user.save(update_fields=changed)
    return user
