"""Serializers for accounts, final year projects, sessions, clusters, events and blog posts."""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from SwebukApp.academics.models import AcademicSession, SessionProcessingLog
from SwebukApp.blog.models import Blog, BlogComment
from SwebukApp.clusters.models import Cluster, ClusterMembership, Project, ProjectMembership
from SwebukApp.core.choices import (
    AcademicLevel,
    BlogCategory,
    FYPStatus,
    MembershipStatus,
    SubmissionStatus,
    SubmissionType,
    UserRole,
)
from SwebukApp.core.validators import validate_document_mime, validate_document_size, validate_image
from SwebukApp.events.models import Event, EventRegistration, GuestRegistration
from SwebukApp.fyp.models import FinalYearProject, FYPComment, Submission

User = get_user_model()

REVIEW_OUTCOMES = [SubmissionStatus.APPROVED, SubmissionStatus.NEEDS_REVISION, SubmissionStatus.REJECTED]
MEMBERSHIP_DECISIONS = [MembershipStatus.APPROVED, MembershipStatus.REJECTED]


# ---------- Accounts ----------
class RegistrationSerializer(serializers.Serializer):
    """Public signup. There is no ``role`` field: new accounts are students."""
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8, help_text="User password (write-only).")
    full_name = serializers.CharField(max_length=255)
    academic_level = serializers.ChoiceField(choices=AcademicLevel.choices, required=False, allow_null=True)
    department = serializers.CharField(max_length=255, required=False, allow_blank=True)
    faculty = serializers.CharField(max_length=255, required=False, allow_blank=True)
    institution = serializers.CharField(max_length=255, required=False, allow_blank=True)


class UserSerializer(serializers.ModelSerializer):
    """Public, safe representation of a user."""

    class Meta:
        model = User
        fields = [
            "id", "email", "full_name", "role", "academic_level",
            "department", "faculty", "institution", "linkedin_url", "github_url",
        ]
        read_only_fields = fields


class UserBriefSerializer(serializers.ModelSerializer):

    class Meta:
        model = User
        fields = ["id", "email", "full_name", "role"]


class UserCreateSerializer(RegistrationSerializer):
    """Admin account creation with an explicit role."""
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.STUDENT)


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=UserRole.choices)


class ProfileUpdateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255, required=False)
    academic_level = serializers.ChoiceField(choices=AcademicLevel.choices, required=False, allow_null=True)
    department = serializers.CharField(max_length=255, required=False, allow_blank=True)
    faculty = serializers.CharField(max_length=255, required=False, allow_blank=True)
    institution = serializers.CharField(max_length=255, required=False, allow_blank=True)
    linkedin_url = serializers.URLField(required=False, allow_blank=True)
    github_url = serializers.URLField(required=False, allow_blank=True)


# ---------- Academic sessions ----------
class AcademicSessionSerializer(serializers.ModelSerializer):
    """Single-active-session is enforced by the session service, not by a uniqueness validator."""
    is_active = serializers.BooleanField(required=False, default=False)

    class Meta:
        model = AcademicSession
        fields = ["id", "session_name", "start_date", "end_date", "semester", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]
        validators = []

    def validate(self, data):
        start = data.get("start_date", getattr(self.instance, "start_date", None))
        end = data.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end <= start:
            raise serializers.ValidationError({"end_date": "End date must be after the start date."})
        return data


class SessionProcessingLogSerializer(serializers.ModelSerializer):
    created_by = UserBriefSerializer(read_only=True)

    class Meta:
        model = SessionProcessingLog
        fields = ["id", "processed_at", "academic_level_changes", "session", "created_by"]


# ---------- Final year projects ----------
class ProposalWriteSerializer(serializers.Serializer):
    """Proposal input; length rules are enforced by the service."""
    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    document = serializers.FileField(
        required=False,
        allow_null=True,
        validators=[validate_document_size, validate_document_mime],
        help_text="Optional PDF/DOC/DOCX, max 25MB.",
    )


class SubmissionReadSerializer(serializers.ModelSerializer):
    file_url = serializers.SerializerMethodField()
    reviewed_by = UserBriefSerializer(read_only=True)

    class Meta:
        model = Submission
        fields = [
            "id", "fyp", "submission_type", "title", "description", "file_url", "file_name", "file_size",
            "status", "version_number", "is_latest_version", "previous_version", "supervisor_feedback",
            "reviewed_by", "submitted_at", "reviewed_at",
        ]

    def get_file_url(self, obj: Submission) -> str | None:
        url = obj.file_url
        request = self.context.get("request")
        if url and request is not None:
            return request.build_absolute_uri(url)
        return url


class SubmissionWriteSerializer(serializers.Serializer):
    submission_type = serializers.ChoiceField(choices=SubmissionType.choices)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    file = serializers.FileField(
        required=False,
        allow_null=True,
        validators=[validate_document_size, validate_document_mime],
        help_text="PDF/DOC/DOCX, max 25MB.",
    )


class SubmissionUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)


class ReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=REVIEW_OUTCOMES)
    feedback = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)


class FinalYearProjectReadSerializer(serializers.ModelSerializer):
    student = UserBriefSerializer(read_only=True)
    supervisor = UserBriefSerializer(read_only=True)

    class Meta:
        model = FinalYearProject
        fields = [
            "id", "student", "supervisor", "title", "description", "status", "progress_percentage",
            "github_repo_url", "grade", "feedback", "completed_at", "created_at", "updated_at",
        ]


class FinalYearProjectDetailSerializer(FinalYearProjectReadSerializer):
    """Project with the latest version of each submitted document."""
    submissions = serializers.SerializerMethodField()

    class Meta(FinalYearProjectReadSerializer.Meta):
        fields = FinalYearProjectReadSerializer.Meta.fields + ["submissions"]

    def get_submissions(self, obj: FinalYearProject) -> list[dict]:
        latest = [s for s in obj.submissions.all() if s.is_latest_version]
        return SubmissionReadSerializer(latest, many=True, context=self.context).data


class SupervisorAssignSerializer(serializers.Serializer):
    supervisor_id = serializers.IntegerField()


class BulkAssignSerializer(serializers.Serializer):
    fyp_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    supervisor_id = serializers.IntegerField()


class FYPStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=FYPStatus.choices)
    feedback = serializers.CharField(required=False, allow_blank=True)


class GradeSerializer(serializers.Serializer):
    grade = serializers.CharField(max_length=8)
    feedback = serializers.CharField(required=False, allow_blank=True, default="")


class GithubRepoSerializer(serializers.Serializer):
    github_repo_url = serializers.CharField(allow_blank=True)


class FYPCommentSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = FYPComment
        fields = ["id", "fyp", "user", "content", "created_at"]
        read_only_fields = ["id", "fyp", "user", "created_at"]


# ---------- Clusters and projects ----------
class ClusterWriteSerializer(serializers.ModelSerializer):
    lead_id = serializers.PrimaryKeyRelatedField(
        source="lead", queryset=User.objects.all(), required=False, allow_null=True
    )
    deputy_id = serializers.PrimaryKeyRelatedField(
        source="deputy", queryset=User.objects.all(), required=False, allow_null=True
    )
    staff_manager_id = serializers.PrimaryKeyRelatedField(
        source="staff_manager", queryset=User.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = Cluster
        fields = ["name", "description", "lead_id", "deputy_id", "staff_manager_id"]


class ClusterReadSerializer(serializers.ModelSerializer):
    lead = UserBriefSerializer(read_only=True)
    deputy = UserBriefSerializer(read_only=True)
    staff_manager = UserBriefSerializer(read_only=True)

    class Meta:
        model = Cluster
        fields = ["id", "name", "description", "lead", "deputy", "staff_manager", "created_at", "updated_at"]


class ClusterMembershipSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = ClusterMembership
        fields = ["id", "cluster", "user", "role", "status", "approved_by", "approved_at", "created_at"]


class MembershipDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=MEMBERSHIP_DECISIONS)


class ProjectWriteSerializer(serializers.ModelSerializer):
    cluster_id = serializers.PrimaryKeyRelatedField(
        source="cluster", queryset=Cluster.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = Project
        fields = ["name", "description", "visibility", "cluster_id"]


class ProjectReadSerializer(serializers.ModelSerializer):
    owner = UserBriefSerializer(read_only=True)

    class Meta:
        model = Project
        fields = ["id", "cluster", "owner", "name", "description", "visibility", "created_at", "updated_at"]


class ProjectMembershipSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = ProjectMembership
        fields = ["id", "project", "user", "role", "status", "approved_by", "approved_at", "created_at"]


# ---------- Events ----------
class EventWriteSerializer(serializers.ModelSerializer):
    cluster_id = serializers.PrimaryKeyRelatedField(
        source="cluster", queryset=Cluster.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = Event
        fields = [
            "title", "description", "event_type", "category", "location_type", "location",
            "start_date", "end_date", "registration_deadline", "max_capacity", "cluster_id",
        ]


class EventReadSerializer(serializers.ModelSerializer):
    organizer = UserBriefSerializer(read_only=True)

    class Meta:
        model = Event
        fields = [
            "id", "title", "slug", "description", "event_type", "category", "location_type", "location",
            "start_date", "end_date", "registration_deadline", "max_capacity", "status", "organizer",
            "cluster", "published_at", "created_at", "updated_at",
        ]


class EventRegistrationSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = EventRegistration
        fields = ["id", "event", "user", "status", "notes", "registered_at", "cancelled_at", "checked_in_at"]


class EventRegisterSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class GuestRegisterRequestSerializer(serializers.Serializer):
    """Request body of the public guest sign-up endpoint (camelCase keys)."""
    eventId = serializers.CharField()
    fullName = serializers.CharField()
    email = serializers.EmailField()


class GuestRegistrationSerializer(serializers.ModelSerializer):

    class Meta:
        model = GuestRegistration
        fields = ["id", "event", "full_name", "email", "status", "registered_at"]


# ---------- Blog ----------
class BlogWriteSerializer(serializers.ModelSerializer):
    cluster_id = serializers.PrimaryKeyRelatedField(
        source="cluster", queryset=Cluster.objects.all(), required=False, allow_null=True
    )
    category = serializers.ChoiceField(choices=BlogCategory.choices, required=False)
    featured_image = serializers.FileField(required=False, allow_null=True, validators=[validate_image])

    class Meta:
        model = Blog
        fields = ["title", "excerpt", "content", "category", "cluster_id", "featured_image"]


class BlogReadSerializer(serializers.ModelSerializer):
    author = UserBriefSerializer(read_only=True)

    class Meta:
        model = Blog
        fields = [
            "id", "author", "cluster", "title", "slug", "excerpt", "content", "category", "featured_image",
            "status", "is_featured", "view_count", "rejected_reason", "approved_by", "approved_at",
            "published_at", "created_at", "updated_at",
        ]


class BlogRejectSerializer(serializers.Serializer):
    reason = serializers.CharField()


class BlogCommentSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)
    parent = serializers.PrimaryKeyRelatedField(
        queryset=BlogComment.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = BlogComment
        fields = ["id", "blog", "user", "content", "parent", "created_at"]
        read_only_fields = ["id", "blog", "user", "created_at"]
