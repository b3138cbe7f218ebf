import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from SwebukApp.core.choices import AcademicLevel, FYPStatus
from SwebukApp.domain.services import fyp_service
from SwebukApp.fyp.models import FinalYearProject, Submission

from .conftest import login, make_user, pdf

pytestmark = pytest.mark.django_db


@pytest.fixture
def fyp(finalist, proposal_text):
    return fyp_service.submit_proposal(finalist, **proposal_text)


def _upload(client, fyp_id, submission_type="chapter_1", title="Chapter one", file=None):
    return client.post(
        f"/api/v1/fyp/{fyp_id}/submissions/",
        {"submission_type": submission_type, "title": title, "file": file or pdf()},
        format="multipart",
    )


def test_eligibility_endpoint(finalist, junior):
    assert login(finalist).get("/api/v1/fyp/eligibility/").data == {"eligible": True, "academic_level": "level_400"}
    assert login(junior).get("/api/v1/fyp/eligibility/").data["eligible"] is False


def test_proposal_endpoint(finalist, junior, proposal_text):
    res = login(junior).post("/api/v1/fyp/", proposal_text, format="json")
    assert res.status_code == 403

    client = login(finalist)
    res = client.post("/api/v1/fyp/", {**proposal_text, "document": pdf("proposal.pdf")}, format="multipart")
    assert res.status_code == 201, res.data
    assert res.data["status"] == FYPStatus.PROPOSAL_SUBMITTED
    assert [s["submission_type"] for s in res.data["submissions"]] == ["proposal"]

    assert client.post("/api/v1/fyp/", proposal_text, format="json").status_code == 409


def test_mine_endpoint(finalist, junior, proposal_text):
    client = login(finalist)
    assert client.get("/api/v1/fyp/mine/").status_code == 404
    fyp_service.submit_proposal(finalist, **proposal_text)
    assert client.get("/api/v1/fyp/mine/").data["title"] == proposal_text["title"]
    assert login(junior).get("/api/v1/fyp/mine/").status_code == 403


def test_upload_versions(fyp, finalist):
    client = login(finalist)
    first = _upload(client, fyp.pk)
    second = _upload(client, fyp.pk, title="Chapter one revised")
    assert (first.status_code, second.status_code) == (201, 201)
    assert second.data["version_number"] == 2
    assert second.data["file_url"].startswith("http://testserver/media/fyp-documents/")

    latest = client.get(f"/api/v1/fyp/{fyp.pk}/submissions/", {"type": "chapter_1", "latest": "true"})
    assert [s["version_number"] for s in latest.data["results"]] == [2]
    history = client.get(f"/api/v1/fyp/{fyp.pk}/submissions/history/", {"type": "chapter_1"})
    assert [s["version_number"] for s in history.data["results"]] == [2, 1]
    assert client.get(f"/api/v1/fyp/{fyp.pk}/submissions/history/").status_code == 400


def test_upload_rejects_non_documents(fyp, finalist):
    fake = SimpleUploadedFile("chapter.pdf", b"just text pretending", content_type="application/pdf")
    res = _upload(login(finalist), fyp.pk, file=fake)
    assert res.status_code == 400
    assert not Submission.objects.exists()


def test_other_students_cannot_see_project(fyp):
    other = make_user("other400@example.com", academic_level=AcademicLevel.LEVEL_400)
    client = login(other)
    assert client.get(f"/api/v1/fyp/{fyp.pk}/").status_code == 404
    assert _upload(client, fyp.pk).status_code == 404


def test_review_endpoint(fyp, finalist, staff):
    _upload(login(finalist), fyp.pk, submission_type="proposal", title="Proposal document")
    sub = Submission.objects.get()

    assert login(finalist).post(
        f"/api/v1/fyp/{fyp.pk}/submissions/{sub.pk}/review/", {"status": "approved"}, format="json"
    ).status_code == 403

    client = login(staff)
    res = client.post(
        f"/api/v1/fyp/{fyp.pk}/submissions/{sub.pk}/review/",
        {"status": "approved", "feedback": "  Good scope  "},
        format="json",
    )
    assert res.status_code == 200, res.data
    assert res.data["supervisor_feedback"] == "  Good scope  "
    fyp.refresh_from_db()
    assert fyp.status == FYPStatus.PROPOSAL_APPROVED

    res = client.post(
        f"/api/v1/fyp/{fyp.pk}/submissions/{sub.pk}/review/", {"status": "rejected"}, format="json"
    )
    assert res.status_code == 409


def test_pending_review_is_not_a_review_outcome(fyp, finalist, staff):
    _upload(login(finalist), fyp.pk)
    sub = Submission.objects.get()
    res = login(staff).post(f"/api/v1/fyp/{fyp.pk}/submissions/{sub.pk}/review/", {"status": "pending"}, format="json")
    assert res.status_code == 400


def test_supervisor_assignment_endpoints(fyp, staff, admin, lead):
    client = login(staff)
    assert [p["id"] for p in client.get("/api/v1/fyp/unassigned/").data["results"]] == [fyp.pk]
    res = client.post(f"/api/v1/fyp/{fyp.pk}/assign-supervisor/", {"supervisor_id": lead.pk}, format="json")
    assert res.status_code == 400
    res = client.post(f"/api/v1/fyp/{fyp.pk}/assign-supervisor/", {"supervisor_id": staff.pk}, format="json")
    assert res.status_code == 200
    assert [p["id"] for p in client.get("/api/v1/fyp/supervised/").data["results"]] == [fyp.pk]

    assert client.post("/api/v1/fyp/bulk-assign/", {"fyp_ids": [fyp.pk], "supervisor_id": staff.pk},
                       format="json").status_code == 403
    res = login(admin).post("/api/v1/fyp/bulk-assign/", {"fyp_ids": [fyp.pk], "supervisor_id": admin.pk}, format="json")
    assert res.data == {"updated": 1}
    assert FinalYearProject.objects.get().supervisor == admin


def test_supervisor_sees_supervised_project(fyp, staff, admin):
    fyp_service.assign_supervisor(admin, fyp, staff)
    res = login(staff).get("/api/v1/fyp/")
    assert [p["id"] for p in res.data["results"]] == [fyp.pk]


def test_submission_throttle(fyp, finalist, settings):
    settings.SWEBUK = {**settings.SWEBUK, "SUBMISSION_RATE": "2/hour"}
    client = login(finalist)
    assert _upload(client, fyp.pk).status_code == 201
    assert _upload(client, fyp.pk).status_code == 201
    assert _upload(client, fyp.pk).status_code == 429
    assert client.get(f"/api/v1/fyp/{fyp.pk}/submissions/").status_code == 200


def test_project_endpoints_gate_on_stored_level(junior, proposal_text):
    client = login(junior)
    res = client.get("/api/v1/fyp/mine/")
    assert res.status_code == 403
    assert res.data["detail"] == "Only Level 400 students can access the final year project module."

    junior.academic_level = AcademicLevel.LEVEL_400
    junior.save()
    assert client.get("/api/v1/fyp/mine/").status_code == 404
    assert client.post("/api/v1/fyp/", proposal_text, format="json").status_code == 201
