from datetime import timedelta

import pytest
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from model_bakery import baker
from rest_framework.test import APIClient

from SwebukApp.core.choices import AcademicLevel, EventStatus, UserRole

PASSWORD = "pass1234"

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


@pytest.fixture(autouse=True)
def isolated_state(settings, tmp_path):
    """Uploads go to a temp dir; throttle counters start empty."""
    settings.MEDIA_ROOT = str(tmp_path / "media")
    cache.clear()
    yield
    cache.clear()


def make_user(email, role=UserRole.STUDENT, academic_level=None, **extra):
    u = baker.make("users.User", email=email, username=email, role=role, academic_level=academic_level, **extra)
    u.set_password(PASSWORD)
    u.save()
    return u


def login(user):
    client = APIClient()
    token = client.post(
        "/api/v1/auth/token/", {"email": user.email, "password": PASSWORD}, format="json"
    ).data["access"]
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


def pdf(name="chapter.pdf"):
    return SimpleUploadedFile(name, PDF_BYTES, content_type="application/pdf")


@pytest.fixture
def finalist():
    return make_user("finalist@example.com", academic_level=AcademicLevel.LEVEL_400, full_name="Final Year")


@pytest.fixture
def junior():
    return make_user("junior@example.com", academic_level=AcademicLevel.LEVEL_300)


@pytest.fixture
def staff():
    return make_user("staff@example.com", role=UserRole.STAFF, full_name="Dr Staff")


@pytest.fixture
def admin():
    return make_user("admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def lead():
    return make_user("lead@example.com", role=UserRole.LEAD, academic_level=AcademicLevel.LEVEL_200)


@pytest.fixture
def proposal_text():
    return {
        "title": "Smart attendance with RFID",
        "description": "An RFID based attendance system for lecture halls with a reporting dashboard.",
    }


@pytest.fixture
def published_event(staff):
    return baker.make(
        "events.Event",
        title="Intro to Django",
        slug="intro-to-django",
        organizer=staff,
        status=EventStatus.PUBLISHED,
        start_date=timezone.now() + timedelta(days=7),
        end_date=timezone.now() + timedelta(days=7, hours=2),
        registration_deadline=None,
        max_capacity=None,
    )
