"""Domain service functions for events, registrations, check-in and guest sign-up.

Capacity rules:
- Seats are held by registrations in ``registered`` or ``attended`` state,
  counting account and guest registrations together.
- Once ``max_capacity`` seats are held, new registrations are waitlisted.
Registration closes at ``registration_deadline`` (if set) and at ``start_date``.
"""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from django.utils.text import slugify
from rest_framework.exceptions import NotFound, ValidationError

from SwebukApp.core.access import EVENT_ORGANIZER_ROLES, can_manage_event, ensure, ensure_authenticated, ensure_role
from SwebukApp.core.choices import EventStatus, RegistrationStatus
from SwebukApp.core.exceptions import RegistrationRejected
from SwebukApp.core.workflow import EVENT_LIFECYCLE
from SwebukApp.events.models import Event, EventRegistration, GuestRegistration

logger = logging.getLogger(__name__)

User = get_user_model()

EVENT_FIELDS = (
    "title", "description", "event_type", "category", "location_type", "location",
    "start_date", "end_date", "registration_deadline", "max_capacity", "cluster",
)


def _unique_slug(title: str, exclude_pk: int | None = None) -> str:
    base = slugify(title)[:250] or "event"
    slug, n = base, 2
    while Event.objects.filter(slug=slug).exclude(pk=exclude_pk).exists():
        slug = f"{base}-{n}"
        n += 1
    return slug


def _validate_dates(data: dict[str, Any]) -> None:
    start, end = data.get("start_date"), data.get("end_date")
    deadline = data.get("registration_deadline")
    if start and end and end < start:
        raise ValidationError({"end_date": ["End date must be after the start date."]})
    if start and deadline and deadline > start:
        raise ValidationError({"registration_deadline": ["Registration must close before the event starts."]})


def seats_taken(event: Event) -> int:
    """Registrations holding a seat, account and guest combined."""
    return event.registrations.occupying().count() + event.guest_registrations.occupying().count()


def is_full(event: Event) -> bool:
    return bool(event.max_capacity) and seats_taken(event) >= event.max_capacity


def _ensure_open(event: Event) -> None:
    now = timezone.now()
    if event.status != EventStatus.PUBLISHED:
        raise RegistrationRejected("Event is not open for registration")
    if event.registration_deadline and event.registration_deadline < now:
        raise RegistrationRejected("Registration deadline has passed")
    if event.start_date <= now:
        raise RegistrationRejected("Event has already started")


# ---------- Organizer operations ----------
@transaction.atomic
def create_event(actor, data: dict[str, Any]) -> Event:
    """Create a draft event (staff, admin, lead or deputy)."""
    ensure_role(actor, EVENT_ORGANIZER_ROLES, "You cannot organize events.")
    fields = {k: v for k, v in data.items() if k in EVENT_FIELDS}
    _validate_dates(fields)
    event = Event.objects.create(
        organizer=actor,
        slug=_unique_slug(fields.get("title", "")),
        status=EventStatus.DRAFT,
        **fields,
    )
    logger.info("Event %s created by %s", event.pk, actor.pk)
    return event


@transaction.atomic
def update_event(actor, event: Event, data: dict[str, Any]) -> Event:
    ensure(can_manage_event(actor, event), "You cannot manage this event.")
    fields = {k: v for k, v in data.items() if k in EVENT_FIELDS}
    _validate_dates({
        "start_date": fields.get("start_date", event.start_date),
        "end_date": fields.get("end_date", event.end_date),
        "registration_deadline": fields.get("registration_deadline", event.registration_deadline),
    })
    if "title" in fields and fields["title"] != event.title:
        event.slug = _unique_slug(fields["title"], exclude_pk=event.pk)
    for field, value in fields.items():
        setattr(event, field, value)
    event.save()
    return event


@transaction.atomic
def transition_event(actor, event: Event, status: str) -> Event:
    """Move an event through its lifecycle (organizer or staff/admin)."""
    event = Event.objects.select_for_update().get(pk=event.pk)
    ensure(can_manage_event(actor, event), "You cannot manage this event.")
    EVENT_LIFECYCLE.ensure(event.status, status)
    fields = ["status", "updated_at"]
    event.status = status
    if status == EventStatus.PUBLISHED and event.published_at is None:
        event.published_at = timezone.now()
        fields.append("published_at")
    event.save(update_fields=fields)
    logger.info("Event %s -> %s by %s", event.pk, status, actor.pk)
    return event


def publish_event(actor, event: Event) -> Event:
    return transition_event(actor, event, EventStatus.PUBLISHED)


def cancel_event(actor, event: Event) -> Event:
    return transition_event(actor, event, EventStatus.CANCELLED)


def complete_event(actor, event: Event) -> Event:
    return transition_event(actor, event, EventStatus.COMPLETED)


def event_registrations(actor, event: Event) -> QuerySet[EventRegistration]:
    ensure(can_manage_event(actor, event), "You cannot manage this event.")
    return event.registrations.select_related("user")


@transaction.atomic
def check_in(actor, registration: EventRegistration) -> EventRegistration:
    """Mark a registered attendee as attended."""
    registration = EventRegistration.objects.select_for_update().select_related("event").get(pk=registration.pk)
    ensure(can_manage_event(actor, registration.event), "You cannot manage this event.")
    if registration.status != RegistrationStatus.REGISTERED:
        raise ValidationError({"status": [f"Cannot check in a {registration.status} registration."]})
    registration.status = RegistrationStatus.ATTENDED
    registration.checked_in_at = timezone.now()
    registration.save(update_fields=["status", "checked_in_at"])
    logger.info("Registration %s checked in by %s", registration.pk, actor.pk)
    return registration


# ---------- Attendee operations ----------
@transaction.atomic
def register(user, event: Event, notes: str = "") -> EventRegistration:
    """Register an account holder; waitlisted when the event is full.

    A cancelled registration may register again.
    """
    ensure_authenticated(user)
    event = Event.objects.select_for_update().get(pk=event.pk)
    _ensure_open(event)
    existing = EventRegistration.objects.select_for_update().filter(event=event, user=user).first()
    if existing is not None and existing.status != RegistrationStatus.CANCELLED:
        raise RegistrationRejected("You are already registered for this event.", registrationStatus=existing.status)

    status = RegistrationStatus.WAITLISTED if is_full(event) else RegistrationStatus.REGISTERED
    if existing is not None:
        existing.status = status
        existing.notes = notes or ""
        existing.cancelled_at = None
        existing.registered_at = timezone.now()
        existing.save(update_fields=["status", "notes", "cancelled_at", "registered_at"])
        registration = existing
    else:
        registration = EventRegistration.objects.create(event=event, user=user, status=status, notes=notes or "")
    logger.info("User %s %s for event %s", user.pk, status, event.pk)
    return registration


@transaction.atomic
def cancel_registration(user, event: Event) -> EventRegistration:
    ensure_authenticated(user)
    registration = EventRegistration.objects.select_for_update().filter(event=event, user=user).first()
    if registration is None:
        raise NotFound("Registration not found.")
    if registration.status == RegistrationStatus.CANCELLED:
        raise ValidationError({"status": ["Registration is already cancelled."]})
    if registration.status == RegistrationStatus.ATTENDED:
        raise ValidationError({"status": ["Cannot cancel after attending."]})
    registration.status = RegistrationStatus.CANCELLED
    registration.cancelled_at = timezone.now()
    registration.save(update_fields=["status", "cancelled_at"])
    logger.info("User %s cancelled registration for event %s", user.pk, event.pk)
    return registration


def my_registrations(user) -> QuerySet[EventRegistration]:
    ensure_authenticated(user)
    return EventRegistration.objects.filter(user=user).select_related("event").order_by("-registered_at")


# ---------- Guest sign-up ----------
def _event_details(event: Event) -> dict[str, Any]:
    return {
        "title": event.title,
        "slug": event.slug,
        "start_date": event.start_date.isoformat(),
        "end_date": event.end_date.isoformat(),
    }


@transaction.atomic
def guest_register(event_id: Any, full_name: str, email: str) -> dict[str, Any]:
    """Register someone by email, with or without an account.

    An email that belongs to an account registers that account; otherwise a
    guest row is created. Both paths share one capacity count and waitlist.

    Returns:
        ``{success, message, hasAccount, status}``.

    Raises:
        RegistrationRejected: Missing fields, bad email, event closed, or already registered.
        NotFound: Unknown event id.
    """
    full_name = (full_name or "").strip()
    email = (email or "").strip().lower()
    if not event_id or not full_name or not email:
        raise RegistrationRejected("Missing required fields")
    try:
        validate_email(email)
    except DjangoValidationError as exc:
        raise RegistrationRejected("Invalid email format") from exc
    if not str(event_id).strip().isdigit():
        raise NotFound("Event not found")
    event = Event.objects.select_for_update().filter(pk=int(str(event_id).strip())).first()
    if event is None:
        raise NotFound("Event not found")
    if event.status != EventStatus.PUBLISHED:
        raise RegistrationRejected("Event is not open for registration")

    account = User.objects.filter(email__iexact=email).first()
    if account is not None:
        existing = EventRegistration.objects.filter(event=event, user=account).first()
        if existing is not None and existing.status != RegistrationStatus.CANCELLED:
            raise RegistrationRejected(
                "You're already registered for this event! Sign in to view your registration.",
                hasAccount=True,
                alreadyRegistered=True,
                registrationStatus=existing.status,
                eventDetails=_event_details(event),
            )
        status = RegistrationStatus.WAITLISTED if is_full(event) else RegistrationStatus.REGISTERED
        if existing is not None:
            existing.status = status
            existing.cancelled_at = None
            existing.save(update_fields=["status", "cancelled_at"])
        else:
            EventRegistration.objects.create(event=event, user=account, status=status)
        logger.info("Guest sign-up registered account %s for event %s (%s)", account.pk, event.pk, status)
        message = (
            "Event is full. You've been added to the waitlist. We'll notify you if a spot opens up!"
            if status == RegistrationStatus.WAITLISTED
            else "Registration successful! Sign in to view and manage your registration."
        )
        return {"success": True, "message": message, "hasAccount": True, "status": str(status)}

    existing_guest = GuestRegistration.objects.filter(event=event, email=email).first()
    if existing_guest is not None:
        raise RegistrationRejected(
            "This email is already registered for this event as a guest!",
            hasAccount=False,
            alreadyRegistered=True,
            registrationStatus=existing_guest.status,
            eventDetails=_event_details(event),
        )
    status = RegistrationStatus.WAITLISTED if is_full(event) else RegistrationStatus.REGISTERED
    try:
        with transaction.atomic():
            GuestRegistration.objects.create(event=event, full_name=full_name, email=email, status=status)
    except IntegrityError as exc:
        raise RegistrationRejected(
            "This email is already registered for this event as a guest!", hasAccount=False, alreadyRegistered=True
        ) from exc
    logger.info("Guest %s registered for event %s (%s)", email, event.pk, status)
    message = (
        "Event is full. You've been added to the waitlist. We'll email you if a spot opens up!"
        if status == RegistrationStatus.WAITLISTED
        else "Registration successful! Create an account to manage your registrations easily."
    )
    return {"success": True, "message": message, "hasAccount": False, "status": str(status)}
