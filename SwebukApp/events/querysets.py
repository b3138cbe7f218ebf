from django.db import models
from django.db.models import Q

from SwebukApp.core.choices import EventStatus, RegistrationStatus

# Registrations holding a seat
OCCUPYING_STATUSES = (RegistrationStatus.REGISTERED, RegistrationStatus.ATTENDED)


class EventQuerySet(models.QuerySet):
    """Custom queryset for Event with visibility helpers."""

    def published(self):
        return self.filter(status=EventStatus.PUBLISHED)

    def visible_to(self, user):
        """Published and completed events for everyone; organizers also see their own drafts."""
        from SwebukApp.core.access import is_staff_or_admin

        public = Q(status__in=[EventStatus.PUBLISHED, EventStatus.COMPLETED])
        if not user or not user.is_authenticated:
            return self.filter(public)
        if is_staff_or_admin(user):
            return self
        return self.filter(public | Q(organizer=user)).distinct()


class RegistrationQuerySet(models.QuerySet):

    def occupying(self):
        return self.filter(status__in=OCCUPYING_STATUSES)

    def waitlisted(self):
        return self.filter(status=RegistrationStatus.WAITLISTED).order_by("registered_at", "id")
