"""Blog authoring and moderation.

Authors write drafts and submit them; moderators (admin, staff, or the
lead/deputy of the post's cluster) approve or reject with a reason. Admins
archive, restore and feature posts. Every status change goes through the blog
moderation workflow table.
"""

import logging
from typing import Any

from django.db import transaction
from django.db.models import F, QuerySet
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.text import slugify
from rest_framework.exceptions import PermissionDenied, ValidationError

from SwebukApp.blog.models import Blog, BlogComment
from SwebukApp.core.access import can_moderate_blog, ensure, ensure_admin, ensure_authenticated, is_staff_or_admin
from SwebukApp.core.choices import BlogStatus
from SwebukApp.core.workflow import BLOG_MODERATION

logger = logging.getLogger(__name__)

BLOG_FIELDS = ("title", "excerpt", "content", "category", "cluster", "featured_image")
EDITABLE_STATUSES = frozenset({BlogStatus.DRAFT, BlogStatus.REJECTED})


def _unique_slug(title: str, exclude_pk: int | None = None) -> str:
    base = slugify(title)[:250] or "post"
    slug, n = base, 2
    while Blog.objects.filter(slug=slug).exclude(pk=exclude_pk).exists():
        slug = f"{base}-{n}"
        n += 1
    return slug


def _move(blog: Blog, status: str, fields: list[str]) -> Blog:
    BLOG_MODERATION.ensure(blog.status, status)
    blog.status = status
    blog.save(update_fields=["status", "updated_at", *fields])
    return blog


def _lock(blog: Blog) -> Blog:
    return Blog.objects.select_for_update().select_related("cluster").get(pk=blog.pk)


# ---------- Author ----------
@transaction.atomic
def create_blog(author, data: dict[str, Any]) -> Blog:
    ensure_authenticated(author)
    fields = {k: v for k, v in data.items() if k in BLOG_FIELDS}
    blog = Blog.objects.create(
        author=author,
        slug=_unique_slug(fields.get("title", "")),
        status=BlogStatus.DRAFT,
        **fields,
    )
    logger.info("Blog %s drafted by %s", blog.pk, author.pk)
    return blog


@transaction.atomic
def update_blog(author, blog: Blog, data: dict[str, Any]) -> Blog:
    """Edit an own post while it is a draft or was rejected."""
    blog = _lock(blog)
    ensure(blog.author_id == author.pk, "You can only edit your own posts.")
    if blog.status not in EDITABLE_STATUSES:
        raise ValidationError({"status": ["Only draft or rejected posts can be edited."]})
    fields = {k: v for k, v in data.items() if k in BLOG_FIELDS}
    if "title" in fields and fields["title"] != blog.title:
        blog.slug = _unique_slug(fields["title"], exclude_pk=blog.pk)
    for field, value in fields.items():
        setattr(blog, field, value)
    blog.save()
    return blog


@transaction.atomic
def submit_for_approval(author, blog: Blog) -> Blog:
    blog = _lock(blog)
    ensure(blog.author_id == author.pk, "You can only submit your own posts.")
    if not blog.content.strip():
        raise ValidationError({"content": ["A post needs content before review."]})
    logger.info("Blog %s submitted for approval", blog.pk)
    return _move(blog, BlogStatus.PENDING_APPROVAL, [])


@transaction.atomic
def save_as_draft(author, blog: Blog) -> Blog:
    blog = _lock(blog)
    ensure(blog.author_id == author.pk, "You can only edit your own posts.")
    return _move(blog, BlogStatus.DRAFT, [])


@transaction.atomic
def delete_blog(user, blog: Blog) -> None:
    """Authors delete own unpublished posts; admins delete anything."""
    blog = _lock(blog)
    if blog.author_id == user.pk and blog.status in EDITABLE_STATUSES:
        blog.delete()
        return
    ensure_admin(user, "Only an admin can delete this post.")
    logger.info("Admin %s deleted blog %s", user.pk, blog.pk)
    blog.delete()


# ---------- Moderation ----------
def _ensure_moderator(user, blog: Blog) -> None:
    ensure_authenticated(user)
    if not can_moderate_blog(user, blog):
        logger.warning("User %s denied moderating blog %s", user.pk, blog.pk)
        raise PermissionDenied("You are not allowed to moderate this post.")


@transaction.atomic
def approve_blog(moderator, blog: Blog) -> Blog:
    blog = _lock(blog)
    _ensure_moderator(moderator, blog)
    now = timezone.now()
    blog.approved_by = moderator
    blog.approved_at = now
    blog.published_at = now
    blog.rejected_reason = ""
    logger.info("Blog %s approved by %s", blog.pk, moderator.pk)
    return _move(blog, BlogStatus.PUBLISHED, ["approved_by", "approved_at", "published_at", "rejected_reason"])


@transaction.atomic
def reject_blog(moderator, blog: Blog, reason: str) -> Blog:
    if not (reason or "").strip():
        raise ValidationError({"reason": ["Rejection reason is required."]})
    blog = _lock(blog)
    _ensure_moderator(moderator, blog)
    blog.rejected_reason = reason.strip()
    logger.info("Blog %s rejected by %s", blog.pk, moderator.pk)
    return _move(blog, BlogStatus.REJECTED, ["rejected_reason"])


@transaction.atomic
def unpublish_blog(moderator, blog: Blog, reason: str = "") -> Blog:
    """Send a published post back to draft."""
    blog = _lock(blog)
    _ensure_moderator(moderator, blog)
    blog.rejected_reason = (reason or "").strip()
    return _move(blog, BlogStatus.DRAFT, ["rejected_reason"])


def moderation_queue(moderator) -> QuerySet[Blog]:
    """Pending posts the moderator may decide."""
    ensure_authenticated(moderator)
    pending = Blog.objects.pending().select_related("author", "cluster")
    if is_staff_or_admin(moderator):
        return pending
    allowed = [blog.pk for blog in pending if can_moderate_blog(moderator, blog)]
    return pending.filter(pk__in=allowed)


# ---------- Admin ----------
@transaction.atomic
def archive_blog(admin, blog: Blog) -> Blog:
    ensure_admin(admin)
    return _move(_lock(blog), BlogStatus.ARCHIVED, [])


@transaction.atomic
def unarchive_blog(admin, blog: Blog) -> Blog:
    ensure_admin(admin)
    blog = _lock(blog)
    blog.published_at = timezone.now()
    return _move(blog, BlogStatus.PUBLISHED, ["published_at"])


@transaction.atomic
def toggle_featured(admin, blog: Blog) -> Blog:
    ensure_admin(admin)
    blog = _lock(blog)
    blog.is_featured = not blog.is_featured
    blog.save(update_fields=["is_featured", "updated_at"])
    return blog


# ---------- Public ----------
def published_by_slug(slug: str) -> Blog:
    """Fetch a published post and count the view."""
    blog = get_object_or_404(Blog.objects.published().select_related("author", "cluster"), slug=slug)
    Blog.objects.filter(pk=blog.pk).update(view_count=F("view_count") + 1)
    blog.refresh_from_db(fields=["view_count"])
    return blog


def post_comment(user, blog: Blog, content: str, parent: BlogComment | None = None) -> BlogComment:
    ensure_authenticated(user)
    if blog.status != BlogStatus.PUBLISHED:
        raise ValidationError({"blog": ["Comments are only open on published posts."]})
    if not (content or "").strip():
        raise ValidationError({"content": ["Comment cannot be empty."]})
    if parent is not None and parent.blog_id != blog.pk:
        raise ValidationError({"parent": ["Reply must belong to the same post."]})
    return BlogComment.objects.create(blog=blog, user=user, content=content.strip(), parent=parent)


def delete_comment(user, comment: BlogComment) -> None:
    if comment.user_id != user.pk:
        ensure(is_staff_or_admin(user), "You can only delete your own comments.")
    comment.delete()
