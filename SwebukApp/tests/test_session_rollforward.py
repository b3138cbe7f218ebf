from datetime import date
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from model_bakery import baker
from rest_framework.exceptions import PermissionDenied

from SwebukApp.academics.models import AcademicSession, SessionProcessingLog
from SwebukApp.core.choices import AcademicLevel
from SwebukApp.domain.services import session_service
from SwebukApp.users.models import User

from .conftest import login, make_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def cohort():
    levels = {
        "first@example.com": AcademicLevel.LEVEL_100,
        "second@example.com": AcademicLevel.LEVEL_200,
        "third@example.com": AcademicLevel.LEVEL_300,
        "fourth@example.com": AcademicLevel.LEVEL_400,
        "legacy@example.com": AcademicLevel.LEGACY_400,
        "old@example.com": AcademicLevel.ALUMNI,
    }
    return {email: make_user(email, academic_level=level) for email, level in levels.items()}


def _levels():
    return dict(User.objects.values_list("email", "academic_level"))


def test_each_profile_moves_exactly_one_level(cohort, staff):
    changes = session_service.process_session_end(staff)
    levels = _levels()
    assert levels["first@example.com"] == "level_200"
    assert levels["second@example.com"] == "level_300"
    assert levels["third@example.com"] == "level_400"
    assert levels["fourth@example.com"] == "alumni"
    assert levels["legacy@example.com"] == "alumni"
    assert levels["old@example.com"] == "alumni"
    assert levels["staff@example.com"] is None
    assert changes == {
        "level_400_to_alumni": 2,
        "level_300_to_400": 1,
        "level_200_to_300": 1,
        "level_100_to_200": 1,
    }


def test_level_corrected_after_snapshot_is_not_overwritten(cohort, staff, monkeypatch):
    snapshot = session_service._snapshot

    def snapshot_then_correct():
        cohorts = snapshot()
        User.objects.filter(email="third@example.com").update(academic_level=AcademicLevel.LEVEL_100)
        return cohorts

    monkeypatch.setattr(session_service, "_snapshot", snapshot_then_correct)
    changes = session_service.process_session_end(staff)
    assert _levels()["third@example.com"] == "level_100"
    assert changes["level_300_to_400"] == 0
    assert changes["level_100_to_200"] == 1


def test_audit_row_and_active_session_closed(cohort, admin):
    session = baker.make(
        AcademicSession, session_name="2024/2025", start_date=date(2024, 9, 1), end_date=date(2025, 7, 31),
        is_active=True,
    )
    changes = session_service.process_session_end(admin)
    session.refresh_from_db()
    assert session.is_active is False
    log = SessionProcessingLog.objects.get()
    assert log.academic_level_changes == changes
    assert log.session == session
    assert log.created_by == admin


def test_running_twice_moves_twice(cohort, staff):
    session_service.process_session_end(staff)
    second = session_service.process_session_end(staff)
    assert _levels()["first@example.com"] == "level_300"
    assert second["level_400_to_alumni"] == 1
    assert SessionProcessingLog.objects.count() == 2


def test_students_cannot_roll_forward(cohort):
    with pytest.raises(PermissionDenied):
        session_service.process_session_end(cohort["fourth@example.com"])
    assert _levels()["fourth@example.com"] == "level_400"
    assert not SessionProcessingLog.objects.exists()


def test_only_one_active_session(staff):
    first = session_service.create_session(
        staff, {"session_name": "2024/2025", "start_date": date(2024, 9, 1), "end_date": date(2025, 7, 31),
                "is_active": True},
    )
    second = session_service.create_session(
        staff, {"session_name": "2025/2026", "start_date": date(2025, 9, 1), "end_date": date(2026, 7, 31),
                "is_active": True},
    )
    first.refresh_from_db()
    assert not first.is_active
    assert session_service.active_session() == second


def test_process_end_endpoint(cohort, staff):
    client = login(staff)
    res = client.post("/api/v1/sessions/process-end/")
    assert res.status_code == 200
    assert res.data["academic_level_changes"]["level_300_to_400"] == 1
    logs = client.get("/api/v1/sessions/logs/")
    assert logs.status_code == 200


def test_process_end_endpoint_forbidden_for_students(cohort):
    client = login(cohort["third@example.com"])
    res = client.post("/api/v1/sessions/process-end/")
    assert res.status_code == 403
    assert _levels()["third@example.com"] == "level_300"


def test_session_crud_endpoint(staff):
    client = login(staff)
    res = client.post(
        "/api/v1/sessions/",
        {"session_name": "2025/2026", "start_date": "2025-09-01", "end_date": "2026-07-31", "is_active": True},
        format="json",
    )
    assert res.status_code == 201, res.data
    assert AcademicSession.objects.get().is_active


def test_management_command(cohort, admin):
    out = StringIO()
    call_command("process_session_end", "--actor", admin.email, stdout=out)
    assert "Moved 5 profiles" in out.getvalue()
    assert _levels()["third@example.com"] == "level_400"


def test_management_command_rejects_students(cohort):
    with pytest.raises(CommandError):
        call_command("process_session_end", "--actor", "first@example.com", stdout=StringIO())
    with pytest.raises(CommandError):
        call_command("process_session_end", "--actor", "nobody@example.com", stdout=StringIO())
