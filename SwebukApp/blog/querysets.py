from django.db import models
from django.db.models import Q

from SwebukApp.core.choices import BlogStatus


class BlogQuerySet(models.QuerySet):
    """Custom queryset for Blog with moderation-aware visibility."""

    def published(self):
        return self.filter(status=BlogStatus.PUBLISHED)

    def pending(self):
        return self.filter(status=BlogStatus.PENDING_APPROVAL)

    def visible_to(self, user):
        """Everyone sees published posts; authors see their own; staff/admin see all."""
        from SwebukApp.core.access import is_staff_or_admin

        if not user or not user.is_authenticated:
            return self.published()
        if is_staff_or_admin(user):
            return self
        return self.filter(Q(status=BlogStatus.PUBLISHED) | Q(author=user)).distinct()
