import pytest
from django.db import DatabaseError
from model_bakery import baker
from rest_framework.test import APIClient

from SwebukApp.core.choices import EventStatus, RegistrationStatus
from SwebukApp.domain.services import event_service
from SwebukApp.events.models import EventRegistration, GuestRegistration

from .conftest import make_user

pytestmark = pytest.mark.django_db

URL = "/api/events/guest-register"


def post(payload):
    return APIClient().post(URL, payload, format="json")


def payload(event, **overrides):
    data = {"eventId": str(event.pk), "fullName": "Ada Guest", "email": "ada@example.com"}
    data.update(overrides)
    return data


def test_guest_is_registered(published_event):
    res = post(payload(published_event))
    assert res.status_code == 200
    assert res.data == {
        "success": True,
        "message": "Registration successful! Create an account to manage your registrations easily.",
        "hasAccount": False,
        "status": "registered",
    }
    guest = GuestRegistration.objects.get()
    assert (guest.email, guest.full_name, guest.status) == ("ada@example.com", "Ada Guest", "registered")


@pytest.mark.parametrize("missing", ["eventId", "fullName", "email"])
def test_missing_fields(published_event, missing):
    res = post(payload(published_event, **{missing: ""}))
    assert res.status_code == 400
    assert res.data == {"error": "Missing required fields"}


def test_invalid_email(published_event):
    res = post(payload(published_event, email="not-an-email"))
    assert res.status_code == 400
    assert res.data["error"] == "Invalid email format"


@pytest.mark.parametrize("event_id", ["abc", "12abc", "999999"])
def test_unknown_event_is_404(published_event, event_id):
    res = post(payload(published_event, eventId=event_id))
    assert res.status_code == 404
    assert res.data == {"error": "Event not found"}


def test_malformed_json_uses_error_body(published_event):
    res = APIClient().post(URL, "{not json", content_type="application/json")
    assert res.status_code == 400
    assert set(res.data) == {"error"}
    assert not GuestRegistration.objects.exists()


def test_draft_event_is_closed(published_event):
    published_event.status = EventStatus.DRAFT
    published_event.save()
    res = post(payload(published_event))
    assert res.status_code == 400
    assert res.data["error"] == "Event is not open for registration"


def test_duplicate_guest_email_is_rejected(published_event):
    post(payload(published_event))
    res = post(payload(published_event, email="ADA@example.com", fullName="Ada Again"))
    assert res.status_code == 400
    assert res.data["error"] == "This email is already registered for this event as a guest!"
    assert res.data["hasAccount"] is False
    assert res.data["alreadyRegistered"] is True
    assert GuestRegistration.objects.count() == 1


def test_account_email_registers_the_account(published_event):
    member = make_user("member@example.com")
    res = post(payload(published_event, email="Member@Example.com"))
    assert res.status_code == 200
    assert res.data["hasAccount"] is True
    assert res.data["message"] == "Registration successful! Sign in to view and manage your registration."
    assert EventRegistration.objects.get().user == member
    assert not GuestRegistration.objects.exists()


def test_account_already_registered(published_event):
    member = make_user("member@example.com")
    baker.make(EventRegistration, event=published_event, user=member, status=RegistrationStatus.REGISTERED)
    res = post(payload(published_event, email=member.email))
    assert res.status_code == 400
    assert res.data["error"] == "You're already registered for this event! Sign in to view your registration."
    assert res.data["hasAccount"] is True
    assert res.data["registrationStatus"] == "registered"
    assert res.data["eventDetails"]["slug"] == published_event.slug


def test_cancelled_account_registration_is_reopened(published_event):
    member = make_user("member@example.com")
    baker.make(EventRegistration, event=published_event, user=member, status=RegistrationStatus.CANCELLED)
    res = post(payload(published_event, email=member.email))
    assert res.status_code == 200
    assert EventRegistration.objects.get().status == RegistrationStatus.REGISTERED


def test_capacity_is_shared_between_guests_and_accounts(published_event):
    published_event.max_capacity = 1
    published_event.save()
    make_user("member@example.com")
    assert post(payload(published_event)).data["status"] == "registered"
    res = post(payload(published_event, email="member@example.com"))
    assert res.data["status"] == "waitlisted"
    assert res.data["message"].startswith("Event is full.")
    res = post(payload(published_event, email="late@example.com"))
    assert res.data["status"] == "waitlisted"
    assert event_service.seats_taken(published_event) == 1


def test_bad_bearer_token_is_ignored(published_event):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
    res = client.post(URL, payload(published_event), format="json")
    assert res.status_code == 200


def test_database_failure_is_reported(published_event, monkeypatch):
    def broken(*args, **kwargs):
        raise DatabaseError("connection lost")

    monkeypatch.setattr(event_service, "guest_register", broken)
    res = post(payload(published_event))
    assert res.status_code == 500
    assert res.data == {"error": "Failed to register for event"}
