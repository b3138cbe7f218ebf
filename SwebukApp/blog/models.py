"""Blog posts with a moderation workflow, and threaded comments."""

from django.conf import settings
from django.db import models

from simple_history.models import HistoricalRecords

from SwebukApp.blog.querysets import BlogQuerySet
from SwebukApp.core.choices import BlogCategory, BlogStatus
from SwebukApp.core.validators import validate_image

User = settings.AUTH_USER_MODEL


class Blog(models.Model):
    """A post written by a member; published only after moderator approval."""
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name="blogs")
    cluster = models.ForeignKey(
        "clusters.Cluster", on_delete=models.SET_NULL, null=True, blank=True, related_name="blogs"
    )
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=280, unique=True)
    excerpt = models.CharField(max_length=500, blank=True)
    content = models.TextField()
    category = models.CharField(max_length=32, choices=BlogCategory.choices, default=BlogCategory.OTHER)
    featured_image = models.FileField(
        upload_to="blog-images/", blank=True, null=True, validators=[validate_image]
    )
    status = models.CharField(max_length=20, choices=BlogStatus.choices, default=BlogStatus.DRAFT)
    is_featured = models.BooleanField(default=False)
    view_count = models.PositiveIntegerField(default=0)
    rejected_reason = models.TextField(blank=True)
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="approved_blogs"
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = BlogQuerySet.as_manager()

    class Meta:
        ordering = ["-published_at", "-created_at"]

    def __str__(self) -> str:
        return self.title


class BlogComment(models.Model):
    blog = models.ForeignKey(Blog, on_delete=models.CASCADE, related_name="comments")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="blog_comments")
    content = models.TextField()
    parent = models.ForeignKey("self", on_delete=models.CASCADE, null=True, blank=True, related_name="replies")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
