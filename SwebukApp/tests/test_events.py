from datetime import timedelta

import pytest
from django.utils import timezone
from model_bakery import baker
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.test import APIClient

from SwebukApp.core.choices import EventStatus, RegistrationStatus
from SwebukApp.core.exceptions import InvalidTransition, RegistrationRejected
from SwebukApp.domain.services import event_service
from SwebukApp.events.models import Event, EventRegistration, GuestRegistration

from .conftest import login, make_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def student():
    return make_user("member@example.com")


def _event_data(**overrides):
    start = timezone.now() + timedelta(days=10)
    data = {
        "title": "Python Workshop",
        "description": "Hands-on session",
        "event_type": "workshop",
        "location_type": "physical",
        "location": "Lab 2",
        "start_date": start,
        "end_date": start + timedelta(hours=3),
    }
    data.update(overrides)
    return data


def test_students_cannot_organize(student):
    with pytest.raises(PermissionDenied):
        event_service.create_event(student, _event_data())


def test_lead_creates_draft_with_unique_slug(lead):
    first = event_service.create_event(lead, _event_data())
    second = event_service.create_event(lead, _event_data())
    assert first.status == EventStatus.DRAFT
    assert (first.slug, second.slug) == ("python-workshop", "python-workshop-2")


def test_end_before_start_rejected(staff):
    start = timezone.now() + timedelta(days=3)
    with pytest.raises(ValidationError):
        event_service.create_event(staff, _event_data(start_date=start, end_date=start - timedelta(hours=1)))


def test_lifecycle(staff):
    event = event_service.create_event(staff, _event_data())
    with pytest.raises(InvalidTransition):
        event_service.complete_event(staff, event)
    published = event_service.publish_event(staff, event)
    assert published.published_at is not None
    assert event_service.complete_event(staff, published).status == EventStatus.COMPLETED


def test_only_organizer_or_staff_manage(lead, student):
    event = event_service.create_event(lead, _event_data())
    with pytest.raises(PermissionDenied):
        event_service.publish_event(student, event)


def test_register_then_waitlist(published_event, student):
    published_event.max_capacity = 1
    published_event.save()
    first = event_service.register(student, published_event)
    second = event_service.register(make_user("late@example.com"), published_event)
    assert first.status == RegistrationStatus.REGISTERED
    assert second.status == RegistrationStatus.WAITLISTED


def test_guests_hold_seats_too(published_event, student):
    published_event.max_capacity = 1
    published_event.save()
    baker.make(GuestRegistration, event=published_event, email="g@example.com", status=RegistrationStatus.REGISTERED)
    assert event_service.register(student, published_event).status == RegistrationStatus.WAITLISTED


def test_duplicate_registration_rejected(published_event, student):
    event_service.register(student, published_event)
    with pytest.raises(RegistrationRejected):
        event_service.register(student, published_event)


def test_cancel_and_register_again(published_event, student):
    event_service.register(student, published_event)
    cancelled = event_service.cancel_registration(student, published_event)
    assert cancelled.status == RegistrationStatus.CANCELLED and cancelled.cancelled_at is not None
    with pytest.raises(ValidationError):
        event_service.cancel_registration(student, published_event)
    again = event_service.register(student, published_event)
    assert again.pk == cancelled.pk
    assert again.status == RegistrationStatus.REGISTERED
    assert again.cancelled_at is None


def test_cancel_without_registration(published_event, student):
    with pytest.raises(NotFound):
        event_service.cancel_registration(student, published_event)


def test_closed_registration(published_event, student):
    published_event.registration_deadline = timezone.now() - timedelta(hours=1)
    published_event.save()
    with pytest.raises(RegistrationRejected):
        event_service.register(student, published_event)


def test_check_in(published_event, student, staff):
    registration = event_service.register(student, published_event)
    with pytest.raises(PermissionDenied):
        event_service.check_in(student, registration)
    checked = event_service.check_in(staff, registration)
    assert checked.status == RegistrationStatus.ATTENDED and checked.checked_in_at is not None
    with pytest.raises(ValidationError):
        event_service.cancel_registration(student, published_event)


def test_public_listing_hides_drafts(staff, published_event):
    event_service.create_event(staff, _event_data(title="Hidden draft"))
    res = APIClient().get("/api/v1/events/")
    assert res.status_code == 200
    assert [e["slug"] for e in res.data["results"]] == [published_event.slug]
    assert len(login(staff).get("/api/v1/events/").data["results"]) == 2


def test_event_api_flow(lead, student):
    client = login(lead)
    data = _event_data()
    data["start_date"] = data["start_date"].isoformat()
    data["end_date"] = data["end_date"].isoformat()
    res = client.post("/api/v1/events/", data, format="json")
    assert res.status_code == 201, res.data
    event_id = res.data["id"]
    assert client.post(f"/api/v1/events/{event_id}/publish/").status_code == 200

    student_client = login(student)
    res = student_client.post(f"/api/v1/events/{event_id}/register/", {"notes": "vegetarian"}, format="json")
    assert res.status_code == 201
    assert res.data["status"] == "registered"
    res = student_client.post(f"/api/v1/events/{event_id}/register/", {}, format="json")
    assert res.status_code == 400
    assert [r["event"] for r in student_client.get("/api/v1/events/my-registrations/").data["results"]] == [event_id]

    assert student_client.get(f"/api/v1/events/{event_id}/registrations/").status_code == 403
    registrations = client.get(f"/api/v1/events/{event_id}/registrations/").data["results"]
    registration_id = registrations[0]["id"]
    res = client.post(f"/api/v1/event-registrations/{registration_id}/check-in/")
    assert res.status_code == 200
    assert EventRegistration.objects.get(pk=registration_id).status == RegistrationStatus.ATTENDED
    assert Event.objects.get(pk=event_id).organizer == lead
