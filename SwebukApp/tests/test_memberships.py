import pytest
from model_bakery import baker
from rest_framework.exceptions import PermissionDenied, ValidationError

from SwebukApp.clusters.models import Cluster, ClusterMembership, ProjectMembership
from SwebukApp.core.choices import MemberRole, MembershipStatus, ProjectVisibility
from SwebukApp.core.exceptions import Conflict, InvalidTransition
from SwebukApp.domain.services import membership_service

from .conftest import login, make_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def student():
    return make_user("member@example.com")


@pytest.fixture
def cluster(staff, lead):
    return membership_service.create_cluster(staff, {"name": "Web Cluster", "description": "Web dev", "lead": lead})


def test_create_cluster_enrols_lead(cluster, lead):
    membership = cluster.memberships.get(user=lead)
    assert (membership.role, membership.status) == (MemberRole.LEAD, MembershipStatus.APPROVED)


def test_students_cannot_create_clusters(student):
    with pytest.raises(PermissionDenied):
        membership_service.create_cluster(student, {"name": "Rogue"})


def test_lead_approves_join_request(cluster, student, lead):
    request = membership_service.request_cluster_membership(student, cluster)
    assert request.status == MembershipStatus.PENDING
    decided = membership_service.decide_cluster_membership(lead, request, MembershipStatus.APPROVED)
    assert decided.status == MembershipStatus.APPROVED
    assert decided.approved_by == lead and decided.approved_at is not None
    assert set(membership_service.cluster_members(cluster).values_list("user__email", flat=True)) == {
        "lead@example.com",
        "member@example.com",
    }


def test_request_is_decided_once(cluster, student, lead):
    request = membership_service.request_cluster_membership(student, cluster)
    membership_service.decide_cluster_membership(lead, request, MembershipStatus.REJECTED)
    with pytest.raises(InvalidTransition):
        membership_service.decide_cluster_membership(lead, request, MembershipStatus.APPROVED)


def test_rejected_request_can_be_reopened(cluster, student, lead):
    request = membership_service.request_cluster_membership(student, cluster)
    membership_service.decide_cluster_membership(lead, request, MembershipStatus.REJECTED)
    again = membership_service.request_cluster_membership(student, cluster)
    assert again.pk == request.pk
    assert again.status == MembershipStatus.PENDING
    assert again.approved_by is None


def test_duplicate_requests_conflict(cluster, student, lead):
    request = membership_service.request_cluster_membership(student, cluster)
    with pytest.raises(Conflict):
        membership_service.request_cluster_membership(student, cluster)
    membership_service.decide_cluster_membership(lead, request, MembershipStatus.APPROVED)
    with pytest.raises(Conflict):
        membership_service.request_cluster_membership(student, cluster)


def test_ordinary_member_cannot_decide(cluster, student):
    outsider = make_user("outsider@example.com")
    request = membership_service.request_cluster_membership(outsider, cluster)
    baker.make(ClusterMembership, cluster=cluster, user=student, role=MemberRole.MEMBER, status=MembershipStatus.APPROVED)
    with pytest.raises(PermissionDenied):
        membership_service.decide_cluster_membership(student, request, MembershipStatus.APPROVED)


def test_approved_deputy_member_can_decide(cluster, student):
    deputy = make_user("deputy@example.com")
    baker.make(ClusterMembership, cluster=cluster, user=deputy, role=MemberRole.DEPUTY, status=MembershipStatus.APPROVED)
    request = membership_service.request_cluster_membership(student, cluster)
    assert membership_service.decide_cluster_membership(deputy, request, MembershipStatus.APPROVED).status == "approved"


def test_only_own_pending_request_can_be_cancelled(cluster, student, lead):
    request = membership_service.request_cluster_membership(student, cluster)
    with pytest.raises(PermissionDenied):
        membership_service.cancel_cluster_request(lead, request)
    membership_service.cancel_cluster_request(student, request)
    assert not ClusterMembership.objects.filter(pk=request.pk).exists()

    request = membership_service.request_cluster_membership(student, cluster)
    membership_service.decide_cluster_membership(lead, request, MembershipStatus.APPROVED)
    with pytest.raises(ValidationError):
        membership_service.cancel_cluster_request(student, request)


def test_project_owner_decides_requests(student):
    owner = make_user("owner@example.com")
    project = membership_service.create_project(owner, {"name": "Campus map", "visibility": ProjectVisibility.PUBLIC})
    assert project.memberships.get(user=owner).role == MemberRole.LEAD
    request = membership_service.request_project_membership(student, project)
    with pytest.raises(PermissionDenied):
        membership_service.decide_project_membership(make_user("x@example.com"), request, MembershipStatus.APPROVED)
    decided = membership_service.decide_project_membership(owner, request, MembershipStatus.APPROVED)
    assert decided.status == MembershipStatus.APPROVED


def test_private_project_refuses_requests(student):
    owner = make_user("owner@example.com")
    project = membership_service.create_project(owner, {"name": "Secret", "visibility": ProjectVisibility.PRIVATE})
    with pytest.raises(PermissionDenied):
        membership_service.request_project_membership(student, project)
    assert not ProjectMembership.objects.filter(user=student).exists()


def test_cluster_api_flow(staff, lead, student):
    staff_client = login(staff)
    res = staff_client.post("/api/v1/clusters/", {"name": "AI Cluster", "lead_id": lead.pk}, format="json")
    assert res.status_code == 201, res.data
    cluster_id = res.data["id"]
    assert res.data["lead"]["email"] == "lead@example.com"

    res = login(student).post(f"/api/v1/clusters/{cluster_id}/join/")
    assert res.status_code == 201
    membership_id = res.data["id"]

    lead_client = login(lead)
    pending = lead_client.get(f"/api/v1/clusters/{cluster_id}/requests/")
    assert [row["id"] for row in pending.data["results"]] == [membership_id]

    res = lead_client.post(f"/api/v1/cluster-memberships/{membership_id}/decide/", {"status": "approved"}, format="json")
    assert res.status_code == 200
    res = lead_client.post(f"/api/v1/cluster-memberships/{membership_id}/decide/", {"status": "rejected"}, format="json")
    assert res.status_code == 409


def test_cluster_api_permissions(cluster, student):
    client = login(student)
    assert client.post("/api/v1/clusters/", {"name": "Nope"}, format="json").status_code == 403
    assert client.patch(f"/api/v1/clusters/{cluster.pk}/", {"name": "Renamed"}, format="json").status_code == 403
    assert client.get(f"/api/v1/clusters/{cluster.pk}/requests/").status_code == 403
    assert Cluster.objects.get(pk=cluster.pk).name == "Web Cluster"


def test_private_projects_hidden_from_outsiders(student):
    owner = make_user("owner@example.com")
    membership_service.create_project(owner, {"name": "Secret", "visibility": ProjectVisibility.PRIVATE})
    membership_service.create_project(owner, {"name": "Open", "visibility": ProjectVisibility.PUBLIC})
    names = [p["name"] for p in login(student).get("/api/v1/projects/").data["results"]]
    assert names == ["Open"]
    assert len(login(owner).get("/api/v1/projects/").data["results"]) == 2


def test_approved_member_is_not_removed_by_stale_cancel(cluster, student, lead):
    request = membership_service.request_cluster_membership(student, cluster)
    membership_service.decide_cluster_membership(lead, request, MembershipStatus.APPROVED)
    assert request.status == MembershipStatus.PENDING
    with pytest.raises(ValidationError):
        membership_service.cancel_cluster_request(student, request)
    assert ClusterMembership.objects.get(pk=request.pk).status == MembershipStatus.APPROVED


def test_project_api_join_and_cancel(student):
    owner = make_user("owner@example.com")
    project = membership_service.create_project(owner, {"name": "Campus map", "visibility": ProjectVisibility.PUBLIC})
    client = login(student)
    res = client.post(f"/api/v1/projects/{project.pk}/join/")
    assert res.status_code == 201, res.data
    assert res.data["status"] == "pending"
    assert client.post(f"/api/v1/projects/{project.pk}/join/").status_code == 409
    assert client.patch(f"/api/v1/projects/{project.pk}/", {"name": "Taken"}, format="json").status_code == 403

    membership_id = res.data["id"]
    assert client.delete(f"/api/v1/project-memberships/{membership_id}/").status_code == 204
    assert not ProjectMembership.objects.filter(pk=membership_id).exists()
