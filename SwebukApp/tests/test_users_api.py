import pytest
from rest_framework.test import APIClient

from SwebukApp.core.choices import UserRole
from SwebukApp.users.models import User

from .conftest import login

pytestmark = pytest.mark.django_db

SIGNUP = {
    "email": "New.Student@Example.com",
    "password": "s3cret-pass",
    "full_name": "New Student",
    "academic_level": "level_100",
}


def test_registration_always_creates_students():
    res = APIClient().post("/api/v1/auth/register/", {**SIGNUP, "role": "admin"}, format="json")
    assert res.status_code == 201, res.data
    assert res.data["role"] == "student"
    user = User.objects.get()
    assert user.email == "new.student@example.com"
    assert user.role == UserRole.STUDENT
    assert user.check_password("s3cret-pass")


def test_duplicate_email_conflicts():
    APIClient().post("/api/v1/auth/register/", SIGNUP, format="json")
    res = APIClient().post("/api/v1/auth/register/", {**SIGNUP, "email": "new.student@example.com"}, format="json")
    assert res.status_code == 409


def test_token_and_me():
    APIClient().post("/api/v1/auth/register/", SIGNUP, format="json")
    client = APIClient()
    res = client.post(
        "/api/v1/auth/token/", {"email": "new.student@example.com", "password": "s3cret-pass"}, format="json"
    )
    assert res.status_code == 200
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {res.data['access']}")
    me = client.get("/api/v1/users/me/")
    assert me.data["email"] == "new.student@example.com"
    assert me.data["academic_level"] == "level_100"


def test_unauthenticated_requests_are_rejected():
    assert APIClient().get("/api/v1/users/me/").status_code == 401
    assert APIClient().get("/api/v1/fyp/").status_code == 401


def test_student_cannot_change_own_level(junior):
    client = login(junior)
    res = client.patch("/api/v1/users/me/", {"academic_level": "level_400"}, format="json")
    assert res.status_code == 403
    res = client.patch("/api/v1/users/me/", {"full_name": "Junior Dev"}, format="json")
    assert res.status_code == 200
    junior.refresh_from_db()
    assert (junior.full_name, junior.academic_level) == ("Junior Dev", "level_300")


def test_staff_sets_academic_level(staff, junior):
    res = login(staff).patch(f"/api/v1/users/{junior.pk}/profile/", {"academic_level": "level_400"}, format="json")
    assert res.status_code == 200
    junior.refresh_from_db()
    assert junior.academic_level == "level_400"


def test_staff_role_changes_are_limited(staff, junior, admin):
    client = login(staff)
    assert client.patch(f"/api/v1/users/{junior.pk}/role/", {"role": "lead"}, format="json").data["role"] == "lead"
    assert client.patch(f"/api/v1/users/{junior.pk}/role/", {"role": "admin"}, format="json").status_code == 403
    assert client.patch(f"/api/v1/users/{admin.pk}/role/", {"role": "student"}, format="json").status_code == 403
    junior.refresh_from_db()
    assert junior.role == UserRole.LEAD


def test_admin_grants_any_role(admin, junior):
    res = login(admin).patch(f"/api/v1/users/{junior.pk}/role/", {"role": "staff"}, format="json")
    assert res.status_code == 200
    assert User.objects.get(pk=junior.pk).role == UserRole.STAFF


def test_directory_and_account_creation(admin, staff, junior):
    assert login(junior).get("/api/v1/users/").status_code == 403
    res = login(staff).get("/api/v1/users/", {"role": "student"})
    assert [u["email"] for u in res.data["results"]] == ["junior@example.com"]

    payload = {"email": "lecturer@example.com", "password": "lecturer-pass", "full_name": "Dr L", "role": "staff"}
    assert login(staff).post("/api/v1/users/", payload, format="json").status_code == 403
    res = login(admin).post("/api/v1/users/", payload, format="json")
    assert res.status_code == 201
    assert res.data["role"] == "staff"


def test_role_read_from_database_not_token(junior):
    client = login(junior)
    junior.role = UserRole.ADMIN
    junior.save()
    assert client.get("/api/v1/users/").status_code == 200
    User.objects.filter(pk=junior.pk).update(role=UserRole.STUDENT)
    assert client.get("/api/v1/users/").status_code == 403
