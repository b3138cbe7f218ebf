"""Event models: events, account registrations and guest (no-account) registrations."""

from django.conf import settings
from django.db import models

from simple_history.models import HistoricalRecords

from SwebukApp.core.choices import EventStatus, EventType, LocationType, RegistrationStatus
from SwebukApp.events.querysets import EventQuerySet, RegistrationQuerySet

User = settings.AUTH_USER_MODEL


class Event(models.Model):
    """A club event.

    Fields:
        max_capacity: Seats shared by account and guest registrations; null means unlimited.
        registration_deadline: Optional; registration also closes at start_date.
        status: EventStatus value, changed through the event workflow.
    """
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=280, unique=True)
    description = models.TextField(blank=True)
    event_type = models.CharField(max_length=32, choices=EventType.choices, default=EventType.OTHER)
    category = models.CharField(max_length=64, blank=True)
    location_type = models.CharField(max_length=16, choices=LocationType.choices, default=LocationType.PHYSICAL)
    location = models.CharField(max_length=255, blank=True)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    registration_deadline = models.DateTimeField(null=True, blank=True)
    max_capacity = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=EventStatus.choices, default=EventStatus.DRAFT)
    organizer = models.ForeignKey(User, on_delete=models.PROTECT, related_name="organized_events")
    cluster = models.ForeignKey(
        "clusters.Cluster", on_delete=models.SET_NULL, null=True, blank=True, related_name="events"
    )
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["start_date"]

    def __str__(self) -> str:
        return self.title


class EventRegistration(models.Model):
    """Registration of an account holder; unique per (event, user)."""
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="event_registrations")
    status = models.CharField(
        max_length=16, choices=RegistrationStatus.choices, default=RegistrationStatus.REGISTERED
    )
    notes = models.TextField(blank=True)
    registered_at = models.DateTimeField(auto_now_add=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    history = HistoricalRecords()

    objects = RegistrationQuerySet.as_manager()

    class Meta:
        ordering = ["registered_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "user"], name="uq_event_registration_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} @ {self.event} ({self.status})"


class GuestRegistration(models.Model):
    """Registration by someone without an account; email is stored lowercased."""
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="guest_registrations")
    full_name = models.CharField(max_length=255)
    email = models.EmailField()
    status = models.CharField(
        max_length=16, choices=RegistrationStatus.choices, default=RegistrationStatus.REGISTERED
    )
    registered_at = models.DateTimeField(auto_now_add=True)

    objects = RegistrationQuerySet.as_manager()

    class Meta:
        ordering = ["registered_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "email"], name="uq_guest_registration_email"),
        ]

    def save(self, *args, **kwargs):
        self.email = (self.email or "").strip().lower()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.email} @ {self.event}"
