"""Clusters, projects and their join-request workflow.

Cluster and project memberships share one request model:

    pending -> approved | rejected

A rejected request may be re-opened as pending by the same user; an approved
member cannot request again. Deciding a request goes through the shared
membership workflow table, so a request can only be decided once.
"""

import logging
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from SwebukApp.clusters.models import Cluster, ClusterMembership, Project, ProjectMembership
from SwebukApp.core.access import (
    can_manage_cluster,
    can_manage_project,
    ensure,
    ensure_authenticated,
    ensure_staff_or_admin,
)
from SwebukApp.core.choices import MemberRole, MembershipStatus, ProjectVisibility
from SwebukApp.core.exceptions import Conflict
from SwebukApp.core.workflow import MEMBERSHIP_REQUEST

logger = logging.getLogger(__name__)

CLUSTER_FIELDS = ("name", "description", "lead", "deputy", "staff_manager")
PROJECT_FIELDS = ("name", "description", "visibility", "cluster")


# ---------- Shared request workflow ----------
def _open_request(membership_model, scope: dict[str, Any], user, label: str):
    """Create a pending request, or re-open a rejected one."""
    membership = membership_model.objects.select_for_update().filter(user=user, **scope).first()
    if membership is None:
        try:
            with transaction.atomic():
                membership = membership_model.objects.create(user=user, status=MembershipStatus.PENDING, **scope)
        except IntegrityError as exc:
            raise Conflict(f"You already have a request for this {label}.") from exc
        logger.info("User %s requested to join %s %s", user.pk, label, scope)
        return membership
    if membership.status == MembershipStatus.APPROVED:
        raise Conflict(f"You are already a member of this {label}.")
    if membership.status == MembershipStatus.PENDING:
        raise Conflict(f"You already have a pending request for this {label}.")
    membership.status = MembershipStatus.PENDING
    membership.approved_by = None
    membership.approved_at = None
    membership.save(update_fields=["status", "approved_by", "approved_at"])
    logger.info("User %s re-opened request %s for %s", user.pk, membership.pk, label)
    return membership


def _decide(membership, actor, status: str):
    MEMBERSHIP_REQUEST.ensure(membership.status, status)
    membership.status = status
    membership.approved_by = actor
    membership.approved_at = timezone.now()
    membership.save(update_fields=["status", "approved_by", "approved_at"])
    logger.info("Membership %s %s by %s", membership.pk, status, actor.pk)
    return membership


def _cancel(membership, user) -> None:
    membership = type(membership).objects.select_for_update().get(pk=membership.pk)
    ensure(membership.user_id == user.pk, "You can only cancel your own request.")
    if membership.status != MembershipStatus.PENDING:
        raise ValidationError({"status": ["Only pending requests can be cancelled."]})
    logger.info("User %s cancelled membership request %s", user.pk, membership.pk)
    membership.delete()


# ---------- Clusters ----------
@transaction.atomic
def create_cluster(actor, data: dict[str, Any]) -> Cluster:
    ensure_staff_or_admin(actor)
    cluster = Cluster.objects.create(created_by=actor, **{k: v for k, v in data.items() if k in CLUSTER_FIELDS})
    for user, role in ((cluster.lead, MemberRole.LEAD), (cluster.deputy, MemberRole.DEPUTY)):
        if user is not None:
            ClusterMembership.objects.update_or_create(
                cluster=cluster,
                user=user,
                defaults={
                    "role": role,
                    "status": MembershipStatus.APPROVED,
                    "approved_by": actor,
                    "approved_at": timezone.now(),
                },
            )
    logger.info("Cluster %s created by %s", cluster.pk, actor.pk)
    return cluster


@transaction.atomic
def update_cluster(actor, cluster: Cluster, data: dict[str, Any]) -> Cluster:
    ensure(can_manage_cluster(actor, cluster), "You cannot manage this cluster.")
    for field in CLUSTER_FIELDS:
        if field in data:
            setattr(cluster, field, data[field])
    cluster.save()
    return cluster


@transaction.atomic
def request_cluster_membership(user, cluster: Cluster) -> ClusterMembership:
    ensure_authenticated(user)
    return _open_request(ClusterMembership, {"cluster": cluster}, user, "cluster")


@transaction.atomic
def decide_cluster_membership(actor, membership: ClusterMembership, status: str) -> ClusterMembership:
    """Approve or reject a cluster join request.

    Allowed for admin/staff, the cluster's lead, deputy or staff manager, and
    approved lead/deputy members.
    """
    membership = ClusterMembership.objects.select_for_update().select_related("cluster").get(pk=membership.pk)
    if not can_manage_cluster(actor, membership.cluster):
        logger.warning("User %s denied deciding cluster membership %s", actor.pk, membership.pk)
        raise PermissionDenied("You cannot manage this cluster's members.")
    return _decide(membership, actor, status)


@transaction.atomic
def cancel_cluster_request(user, membership: ClusterMembership) -> None:
    _cancel(membership, user)


def pending_cluster_requests(actor, cluster: Cluster) -> QuerySet[ClusterMembership]:
    ensure(can_manage_cluster(actor, cluster), "You cannot manage this cluster's members.")
    return cluster.memberships.filter(status=MembershipStatus.PENDING).select_related("user")


def cluster_members(cluster: Cluster) -> QuerySet[ClusterMembership]:
    return cluster.memberships.filter(status=MembershipStatus.APPROVED).select_related("user")


# ---------- Projects ----------
@transaction.atomic
def create_project(owner, data: dict[str, Any]) -> Project:
    """Any signed-in member may create a project and becomes its lead member."""
    ensure_authenticated(owner)
    project = Project.objects.create(owner=owner, **{k: v for k, v in data.items() if k in PROJECT_FIELDS})
    ProjectMembership.objects.create(
        project=project,
        user=owner,
        role=MemberRole.LEAD,
        status=MembershipStatus.APPROVED,
        approved_by=owner,
        approved_at=timezone.now(),
    )
    logger.info("Project %s created by %s", project.pk, owner.pk)
    return project


@transaction.atomic
def update_project(actor, project: Project, data: dict[str, Any]) -> Project:
    ensure(can_manage_project(actor, project), "You cannot manage this project.")
    for field in PROJECT_FIELDS:
        if field in data:
            setattr(project, field, data[field])
    project.save()
    return project


@transaction.atomic
def request_project_membership(user, project: Project) -> ProjectMembership:
    ensure_authenticated(user)
    if project.visibility == ProjectVisibility.PRIVATE and not can_manage_project(user, project):
        raise PermissionDenied("This project is private.")
    return _open_request(ProjectMembership, {"project": project}, user, "project")


@transaction.atomic
def decide_project_membership(actor, membership: ProjectMembership, status: str) -> ProjectMembership:
    membership = ProjectMembership.objects.select_for_update().select_related("project__cluster").get(pk=membership.pk)
    if not can_manage_project(actor, membership.project):
        logger.warning("User %s denied deciding project membership %s", actor.pk, membership.pk)
        raise PermissionDenied("You cannot manage this project's members.")
    return _decide(membership, actor, status)


@transaction.atomic
def cancel_project_request(user, membership: ProjectMembership) -> None:
    _cancel(membership, user)


def pending_project_requests(actor, project: Project) -> QuerySet[ProjectMembership]:
    ensure(can_manage_project(actor, project), "You cannot manage this project.")
    return project.memberships.filter(status=MembershipStatus.PENDING).select_related("user")
