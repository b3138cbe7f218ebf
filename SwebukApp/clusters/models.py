"""Cluster and project models with join-request memberships."""

from django.conf import settings
from django.db import models

from simple_history.models import HistoricalRecords

from SwebukApp.core.choices import MemberRole, MembershipStatus, ProjectVisibility

User = settings.AUTH_USER_MODEL


class Cluster(models.Model):
    """A club interest group run by a lead, a deputy and a staff manager."""
    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True)
    lead = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="led_clusters")
    deputy = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="deputised_clusters"
    )
    staff_manager = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="managed_clusters"
    )
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="created_clusters")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    def __str__(self) -> str:
        return self.name


class ClusterMembership(models.Model):
    """A user's request to join (or membership of) a cluster.

    Constraints:
        uq_cluster_user: one row per (cluster, user); a rejected row is reopened
        as pending instead of inserting a duplicate.
    """
    cluster = models.ForeignKey(Cluster, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="cluster_memberships")
    role = models.CharField(max_length=16, choices=MemberRole.choices, default=MemberRole.MEMBER)
    status = models.CharField(max_length=16, choices=MembershipStatus.choices, default=MembershipStatus.PENDING)
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="approved_cluster_memberships"
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    history = HistoricalRecords()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["cluster", "user"], name="uq_cluster_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} -> {self.cluster} ({self.status})"


class Project(models.Model):
    """A member project, optionally hosted by a cluster."""
    cluster = models.ForeignKey(Cluster, on_delete=models.SET_NULL, null=True, blank=True, related_name="projects")
    owner = models.ForeignKey(User, on_delete=models.PROTECT, related_name="owned_projects")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    visibility = models.CharField(max_length=16, choices=ProjectVisibility.choices, default=ProjectVisibility.PUBLIC)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    def __str__(self) -> str:
        return f"{self.name} (#{self.pk})"


class ProjectMembership(models.Model):
    """Same shape and workflow as ClusterMembership, scoped to a project."""
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="project_memberships")
    role = models.CharField(max_length=16, choices=MemberRole.choices, default=MemberRole.MEMBER)
    status = models.CharField(max_length=16, choices=MembershipStatus.choices, default=MembershipStatus.PENDING)
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="approved_project_memberships"
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    history = HistoricalRecords()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["project", "user"], name="uq_project_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} -> {self.project} ({self.status})"
