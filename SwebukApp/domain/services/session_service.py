"""Academic sessions and the end-of-session academic level roll-forward.

Roll-forward order matters: every cohort's member ids are captured before any
row changes, and each update targets only its captured ids. A student moved
from level_300 to level_400 in this run is therefore never also graduated to
alumni in the same run.

    level_400 (+ legacy "400") -> alumni
    level_300                  -> level_400
    level_200                  -> level_300
    level_100                  -> level_200
"""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction

from SwebukApp.academics.models import AcademicSession, SessionProcessingLog
from SwebukApp.core.access import ensure_staff_or_admin
from SwebukApp.core.choices import AcademicLevel

logger = logging.getLogger(__name__)

User = get_user_model()

SESSION_FIELDS = ("session_name", "start_date", "end_date", "semester", "is_active")

# (log key, source levels, target level), applied in this order
ROLL_FORWARD: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("level_400_to_alumni", (AcademicLevel.LEVEL_400, AcademicLevel.LEGACY_400), AcademicLevel.ALUMNI),
    ("level_300_to_400", (AcademicLevel.LEVEL_300,), AcademicLevel.LEVEL_400),
    ("level_200_to_300", (AcademicLevel.LEVEL_200,), AcademicLevel.LEVEL_300),
    ("level_100_to_200", (AcademicLevel.LEVEL_100,), AcademicLevel.LEVEL_200),
)


def _deactivate_others(keep_pk: int | None = None) -> None:
    AcademicSession.objects.filter(is_active=True).exclude(pk=keep_pk).update(is_active=False)


def active_session() -> AcademicSession | None:
    return AcademicSession.objects.filter(is_active=True).first()


@transaction.atomic
def create_session(actor, data: dict[str, Any]) -> AcademicSession:
    """Create a session; activating it deactivates any other active session."""
    ensure_staff_or_admin(actor)
    fields = {k: v for k, v in data.items() if k in SESSION_FIELDS}
    if fields.get("is_active"):
        _deactivate_others()
    session = AcademicSession.objects.create(**fields)
    logger.info("Created academic session %s (active=%s)", session.pk, session.is_active)
    return session


@transaction.atomic
def update_session(actor, session: AcademicSession, data: dict[str, Any]) -> AcademicSession:
    ensure_staff_or_admin(actor)
    fields = [k for k in SESSION_FIELDS if k in data]
    if data.get("is_active"):
        _deactivate_others(keep_pk=session.pk)
    for field in fields:
        setattr(session, field, data[field])
    session.save()
    return session


@transaction.atomic
def delete_session(actor, session: AcademicSession) -> None:
    ensure_staff_or_admin(actor)
    logger.info("Deleting academic session %s", session.pk)
    session.delete()


def _snapshot() -> list[tuple[str, tuple[str, ...], list[int], str]]:
    """Lock and collect every cohort before any level changes."""
    return [
        (
            key,
            sources,
            list(User.objects.select_for_update().filter(academic_level__in=sources).values_list("pk", flat=True)),
            target,
        )
        for key, sources, target in ROLL_FORWARD
    ]


@transaction.atomic
def process_session_end(actor) -> dict[str, int]:
    """Advance every student one academic level and close the active session.

    All cohorts are snapshotted first, then updated by id, inside one
    transaction together with the session deactivation and the audit row.

    Returns:
        Mapping of transition name to number of profiles moved.
    """
    ensure_staff_or_admin(actor)
    cohorts = _snapshot()
    changes: dict[str, int] = {}
    for key, sources, ids, target in cohorts:
        changes[key] = (
            User.objects.filter(pk__in=ids, academic_level__in=sources).update(academic_level=target) if ids else 0
        )

    session = AcademicSession.objects.select_for_update().filter(is_active=True).first()
    if session is not None:
        session.is_active = False
        session.save(update_fields=["is_active", "updated_at"])

    SessionProcessingLog.objects.create(
        academic_level_changes=changes,
        session=session,
        created_by=actor,
    )
    logger.info("Processed session end by %s: %s", actor.pk, changes)
    return changes
