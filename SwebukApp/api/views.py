"""REST API views for accounts, final year projects, academic sessions, clusters, events and blog posts."""

import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db.models import Q
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from SwebukApp.academics.models import AcademicSession, SessionProcessingLog
from SwebukApp.api.mixins import PaginationMixin
from SwebukApp.api.serializers import (
    AcademicSessionSerializer,
    BlogCommentSerializer,
    BlogReadSerializer,
    BlogRejectSerializer,
    BlogWriteSerializer,
    BulkAssignSerializer,
    ClusterMembershipSerializer,
    ClusterReadSerializer,
    ClusterWriteSerializer,
    EventReadSerializer,
    EventRegisterSerializer,
    EventRegistrationSerializer,
    EventWriteSerializer,
    FinalYearProjectDetailSerializer,
    FinalYearProjectReadSerializer,
    FYPCommentSerializer,
    FYPStatusSerializer,
    GithubRepoSerializer,
    GradeSerializer,
    GuestRegisterRequestSerializer,
    GuestRegistrationSerializer,
    MembershipDecisionSerializer,
    ProfileUpdateSerializer,
    ProjectMembershipSerializer,
    ProjectReadSerializer,
    ProjectWriteSerializer,
    ProposalWriteSerializer,
    RegistrationSerializer,
    ReviewSerializer,
    RoleUpdateSerializer,
    SessionProcessingLogSerializer,
    SubmissionReadSerializer,
    SubmissionUpdateSerializer,
    SubmissionWriteSerializer,
    SupervisorAssignSerializer,
    UserBriefSerializer,
    UserCreateSerializer,
    UserSerializer,
)
from SwebukApp.api.throttles import GuestRegistrationThrottle, SubmissionRateThrottle
from SwebukApp.blog.models import Blog, BlogComment
from SwebukApp.clusters.models import Cluster, ClusterMembership, Project, ProjectMembership
from SwebukApp.core.access import can_manage_cluster, can_manage_project, is_staff_or_admin
from SwebukApp.core.choices import MembershipStatus, ProjectVisibility
from SwebukApp.core.permissions import (
    IsAdminRole,
    IsClusterManagerOrReadOnly,
    IsEventManager,
    IsFypEligible,
    IsFypParticipant,
    IsProjectManagerOrReadOnly,
    IsStaffOrAdmin,
)
from SwebukApp.domain.services import (
    blog_service,
    event_service,
    fyp_service,
    membership_service,
    session_service,
    user_service,
)
from SwebukApp.events.models import Event, EventRegistration
from SwebukApp.fyp.models import FinalYearProject, Submission

logger = logging.getLogger(__name__)

AUTH_RESPONSES = {
    401: OpenApiResponse(description="Authentication required."),
    403: OpenApiResponse(description="Forbidden"),
    404: OpenApiResponse(description="Not Found"),
}

CONFLICT_RESPONSE = {
    409: OpenApiResponse(description="Conflict or invalid status transition."),
}

User = get_user_model()


# ---------- Auth ----------
@extend_schema(
    tags=["Auth"],
    request=RegistrationSerializer,
    responses={201: UserSerializer, 400: OpenApiResponse(description="Validation error."), **CONFLICT_RESPONSE},
    description="Register a new account. Every self-registered account is a student.",
)
class RegistrationView(APIView):
    """User registration endpoint."""
    permission_classes = [AllowAny]

    def post(self, request: Request) -> Response:
        ser = RegistrationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        user = user_service.register(data.pop("email"), data.pop("password"), **data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


# ---------- Users ----------
@extend_schema_view(
    list=extend_schema(tags=["Users"], responses={200: UserSerializer(many=True), **AUTH_RESPONSES}),
    retrieve=extend_schema(tags=["Users"], responses={200: UserSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Users"],
        request=UserCreateSerializer,
        responses={201: UserSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["admin"]}},
    ),
    me=extend_schema(tags=["Users"], request=ProfileUpdateSerializer, responses={200: UserSerializer, **AUTH_RESPONSES}),
    profile=extend_schema(
        tags=["Users"], request=ProfileUpdateSerializer, responses={200: UserSerializer, **AUTH_RESPONSES}
    ),
    role=extend_schema(
        tags=["Users"],
        request=RoleUpdateSerializer,
        responses={200: UserSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["admin", "staff"]}},
    ),
)
class UserViewSet(PaginationMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Account directory (staff/admin), own profile and role management."""
    serializer_class = UserSerializer
    queryset = User.objects.all().order_by("id")

    def get_permissions(self) -> list:
        if self.action == "me":
            return [IsAuthenticated()]
        if self.action == "create":
            return [IsAuthenticated(), IsAdminRole()]
        return [IsAuthenticated(), IsStaffOrAdmin()]

    def list(self, request: Request, *args, **kwargs) -> Response:
        qs = self.get_queryset()
        role = request.query_params.get("role")
        if role:
            qs = qs.filter(role=role)
        return self.paginate_and_respond(qs, UserSerializer)

    def create(self, request: Request, *args, **kwargs) -> Response:
        ser = UserCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        user = user_service.create_user(request.user, data.pop("email"), data.pop("password"), **data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get", "patch"], url_path="me")
    def me(self, request: Request) -> Response:
        """Current profile, read fresh from the database."""
        user = get_object_or_404(User, pk=request.user.pk)
        if request.method == "PATCH":
            ser = ProfileUpdateSerializer(data=request.data, partial=True)
            ser.is_valid(raise_exception=True)
            user = user_service.update_academic_profile(request.user, user, ser.validated_data)
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=["patch"], url_path="profile")
    def profile(self, request: Request, pk: int | None = None) -> Response:
        user = self.get_object()
        ser = ProfileUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        user = user_service.update_academic_profile(request.user, user, ser.validated_data)
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=["patch"], url_path="role")
    def role(self, request: Request, pk: int | None = None) -> Response:
        user = self.get_object()
        ser = RoleUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = user_service.update_role(request.user, user, ser.validated_data["role"])
        return Response(UserSerializer(user).data)


# ---------- Final year projects ----------
@extend_schema_view(
    list=extend_schema(tags=["FYP"], responses={200: FinalYearProjectReadSerializer(many=True), **AUTH_RESPONSES}),
    retrieve=extend_schema(tags=["FYP"], responses={200: FinalYearProjectDetailSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["FYP"],
        request=ProposalWriteSerializer,
        responses={201: FinalYearProjectDetailSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        description="Submit the project proposal. Level 400 students only; one project per student.",
        extensions={"x-permissions": {"required_roles": ["student"], "academic_level": "level_400"}},
    ),
    eligibility=extend_schema(
        tags=["FYP"],
        responses={200: OpenApiResponse(description="{eligible, academic_level}"), **AUTH_RESPONSES},
    ),
    mine=extend_schema(tags=["FYP"], responses={200: FinalYearProjectDetailSerializer, **AUTH_RESPONSES}),
    supervised=extend_schema(
        tags=["FYP"], responses={200: FinalYearProjectReadSerializer(many=True), **AUTH_RESPONSES}
    ),
    unassigned=extend_schema(
        tags=["FYP"], responses={200: FinalYearProjectReadSerializer(many=True), **AUTH_RESPONSES}
    ),
    supervisors=extend_schema(tags=["FYP"], responses={200: UserBriefSerializer(many=True), **AUTH_RESPONSES}),
    workload=extend_schema(tags=["FYP"], responses={200: OpenApiResponse(description="Per-supervisor counts")}),
    stats=extend_schema(tags=["FYP"], responses={200: OpenApiResponse(description="Staff dashboard numbers")}),
    admin_stats=extend_schema(tags=["FYP"], responses={200: OpenApiResponse(description="Admin dashboard numbers")}),
    assign_supervisor=extend_schema(
        tags=["FYP"],
        request=SupervisorAssignSerializer,
        responses={200: FinalYearProjectReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["staff", "admin"]}},
    ),
    bulk_assign=extend_schema(
        tags=["FYP"],
        request=BulkAssignSerializer,
        responses={200: OpenApiResponse(description="{updated}"), **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["admin"]}},
    ),
    set_status=extend_schema(
        tags=["FYP"],
        request=FYPStatusSerializer,
        responses={200: FinalYearProjectReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
    ),
    grade=extend_schema(
        tags=["FYP"],
        request=GradeSerializer,
        responses={200: FinalYearProjectReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
    ),
    github=extend_schema(
        tags=["FYP"], request=GithubRepoSerializer, responses={200: FinalYearProjectReadSerializer, **AUTH_RESPONSES}
    ),
    comments=extend_schema(
        tags=["FYP"], request=FYPCommentSerializer, responses={200: FYPCommentSerializer(many=True), **AUTH_RESPONSES}
    ),
)
class FinalYearProjectViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Proposal, supervision, status and dashboard endpoints for final year projects."""
    permission_classes = [IsAuthenticated]
    serializer_class = FinalYearProjectReadSerializer

    def get_queryset(self):
        return (
            FinalYearProject.objects
            .visible_to(self.request.user)
            .select_related("student", "supervisor")
            .prefetch_related("submissions")
        )

    def get_permissions(self) -> list:
        staff_actions = {"supervised", "unassigned", "supervisors", "stats", "assign_supervisor", "set_status", "grade"}
        admin_actions = {"workload", "admin_stats", "bulk_assign"}
        if self.action in staff_actions:
            return [IsAuthenticated(), IsStaffOrAdmin()]
        if self.action in admin_actions:
            return [IsAuthenticated(), IsAdminRole()]
        if self.action in ("create", "mine"):
            return [IsAuthenticated(), IsFypEligible()]
        if self.action in ("retrieve", "comments"):
            return [IsAuthenticated(), IsFypParticipant()]
        return [IsAuthenticated()]

    def retrieve(self, request: Request, *args, **kwargs) -> Response:
        return Response(FinalYearProjectDetailSerializer(self.get_object(), context={"request": request}).data)

    def create(self, request: Request, *args, **kwargs) -> Response:
        """Submit a proposal and create the caller's project."""
        ser = ProposalWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        fyp = fyp_service.submit_proposal(
            request.user,
            ser.validated_data["title"],
            ser.validated_data["description"],
            ser.validated_data.get("document"),
        )
        fyp = self.get_queryset().get(pk=fyp.pk)
        return Response(
            FinalYearProjectDetailSerializer(fyp, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"])
    def eligibility(self, request: Request) -> Response:
        return Response(fyp_service.check_eligibility(request.user))

    @action(detail=False, methods=["get"])
    def mine(self, request: Request) -> Response:
        fyp = fyp_service.student_project(request.user)
        if fyp is None:
            return Response({"detail": "No final year project yet."}, status=status.HTTP_404_NOT_FOUND)
        return Response(FinalYearProjectDetailSerializer(fyp, context={"request": request}).data)

    @action(detail=False, methods=["get"])
    def supervised(self, request: Request) -> Response:
        return self.paginate_and_respond(fyp_service.supervised_projects(request.user), FinalYearProjectReadSerializer)

    @action(detail=False, methods=["get"])
    def unassigned(self, request: Request) -> Response:
        return self.paginate_and_respond(fyp_service.unassigned_projects(request.user), FinalYearProjectReadSerializer)

    @action(detail=False, methods=["get"])
    def supervisors(self, request: Request) -> Response:
        return self.paginate_and_respond(fyp_service.list_supervisors(request.user), UserBriefSerializer)

    @action(detail=False, methods=["get"])
    def workload(self, request: Request) -> Response:
        return Response(fyp_service.supervisor_workload(request.user))

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        return Response(fyp_service.staff_stats(request.user))

    @action(detail=False, methods=["get"], url_path="admin-stats")
    def admin_stats(self, request: Request) -> Response:
        return Response(fyp_service.admin_stats(request.user))

    @action(detail=True, methods=["post"], url_path="assign-supervisor")
    def assign_supervisor(self, request: Request, pk: int | None = None) -> Response:
        fyp = self.get_object()
        ser = SupervisorAssignSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        supervisor = get_object_or_404(User, pk=ser.validated_data["supervisor_id"])
        fyp = fyp_service.assign_supervisor(request.user, fyp, supervisor)
        return Response(FinalYearProjectReadSerializer(fyp).data)

    @action(detail=False, methods=["post"], url_path="bulk-assign")
    def bulk_assign(self, request: Request) -> Response:
        ser = BulkAssignSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        supervisor = get_object_or_404(User, pk=ser.validated_data["supervisor_id"])
        updated = fyp_service.bulk_assign_supervisor(request.user, ser.validated_data["fyp_ids"], supervisor)
        return Response({"updated": updated})

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request: Request, pk: int | None = None) -> Response:
        fyp = self.get_object()
        ser = FYPStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        fyp = fyp_service.update_fyp_status(
            request.user, fyp, ser.validated_data["status"], ser.validated_data.get("feedback")
        )
        return Response(FinalYearProjectReadSerializer(fyp).data)

    @action(detail=True, methods=["post"])
    def grade(self, request: Request, pk: int | None = None) -> Response:
        fyp = self.get_object()
        ser = GradeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        fyp = fyp_service.grade_fyp(request.user, fyp, ser.validated_data["grade"], ser.validated_data["feedback"])
        return Response(FinalYearProjectReadSerializer(fyp).data)

    @action(detail=True, methods=["patch"])
    def github(self, request: Request, pk: int | None = None) -> Response:
        fyp = self.get_object()
        ser = GithubRepoSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        fyp = fyp_service.update_github_repo(request.user, fyp, ser.validated_data["github_repo_url"])
        return Response(FinalYearProjectReadSerializer(fyp).data)

    @action(detail=True, methods=["get", "post"])
    def comments(self, request: Request, pk: int | None = None) -> Response:
        fyp = self.get_object()
        if request.method == "POST":
            ser = FYPCommentSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            comment = fyp_service.post_comment(request.user, fyp, ser.validated_data["content"])
            return Response(FYPCommentSerializer(comment).data, status=status.HTTP_201_CREATED)
        return self.paginate_and_respond(fyp_service.list_comments(request.user, fyp), FYPCommentSerializer)


# ---------- Submissions ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Submissions"],
        parameters=[
            OpenApiParameter("type", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("latest", bool, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: SubmissionReadSerializer(many=True), **AUTH_RESPONSES},
    ),
    retrieve=extend_schema(tags=["Submissions"], responses={200: SubmissionReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Submissions"],
        request=SubmissionWriteSerializer,
        responses={
            201: SubmissionReadSerializer,
            429: OpenApiResponse(description="Too many requests / throttled."),
            **AUTH_RESPONSES,
            **CONFLICT_RESPONSE,
        },
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "fyp-owner"}},
    ),
    partial_update=extend_schema(
        tags=["Submissions"],
        request=SubmissionUpdateSerializer,
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES},
    ),
    history=extend_schema(
        tags=["Submissions"],
        parameters=[OpenApiParameter("type", str, OpenApiParameter.QUERY, required=True)],
        responses={200: SubmissionReadSerializer(many=True), **AUTH_RESPONSES},
    ),
    review=extend_schema(
        tags=["Submissions"],
        request=ReviewSerializer,
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["staff", "admin"]}},
    ),
)
class SubmissionViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Versioned document submissions of one project, with review."""
    permission_classes = [IsAuthenticated, IsFypParticipant]
    serializer_class = SubmissionReadSerializer
    throttle_classes: list[type] = []

    def _fyp(self) -> FinalYearProject:
        if not hasattr(self, "_resolved_fyp"):
            self._resolved_fyp = fyp_service.get_fyp_for(self.request.user, self.kwargs["fyp_pk"])
        return self._resolved_fyp

    def get_throttles(self):
        """Apply rate throttle only on create."""
        if self.action == "create":
            self.throttle_classes = [SubmissionRateThrottle]
        return super().get_throttles()

    def get_queryset(self):
        qs = Submission.objects.filter(fyp=self._fyp()).select_related("reviewed_by")
        sub_type = self.request.query_params.get("type")
        if sub_type:
            qs = qs.filter(submission_type=sub_type)
        if self.request.query_params.get("latest") in ("1", "true", "True"):
            qs = qs.latest_versions()
        return qs.order_by("submission_type", "-version_number")

    def list(self, request: Request, *args, **kwargs) -> Response:
        return self.paginate_and_respond(self.get_queryset(), SubmissionReadSerializer)

    def create(self, request: Request, *args, **kwargs) -> Response:
        """Upload a new version of a document."""
        ser = SubmissionWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = fyp_service.submit_document(
            request.user,
            self._fyp(),
            ser.validated_data["submission_type"],
            ser.validated_data["title"],
            ser.validated_data.get("description", ""),
            ser.validated_data.get("file"),
        )
        return Response(
            SubmissionReadSerializer(submission, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request: Request, *args, **kwargs) -> Response:
        submission = self.get_object()
        ser = SubmissionUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        submission = fyp_service.update_pending_submission(
            request.user,
            submission,
            title=ser.validated_data.get("title"),
            description=ser.validated_data.get("description"),
        )
        return Response(SubmissionReadSerializer(submission, context={"request": request}).data)

    @action(detail=False, methods=["get"])
    def history(self, request: Request, *args, **kwargs) -> Response:
        sub_type = request.query_params.get("type")
        if not sub_type:
            raise ValidationError({"type": ["This query parameter is required."]})
        qs = fyp_service.version_history(request.user, self._fyp(), sub_type)
        return self.paginate_and_respond(qs, SubmissionReadSerializer)

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsStaffOrAdmin])
    def review(self, request: Request, pk: int | None = None, *args, **kwargs) -> Response:
        submission = self.get_object()
        ser = ReviewSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = fyp_service.review_submission(
            request.user, submission, ser.validated_data["status"], ser.validated_data["feedback"]
        )
        return Response(SubmissionReadSerializer(submission, context={"request": request}).data)


# ---------- Academic sessions ----------
@extend_schema_view(
    list=extend_schema(tags=["Sessions"], responses={200: AcademicSessionSerializer(many=True), **AUTH_RESPONSES}),
    retrieve=extend_schema(tags=["Sessions"], responses={200: AcademicSessionSerializer, **AUTH_RESPONSES}),
    create=extend_schema(tags=["Sessions"], request=AcademicSessionSerializer, responses={201: AcademicSessionSerializer}),
    update=extend_schema(tags=["Sessions"], request=AcademicSessionSerializer, responses={200: AcademicSessionSerializer}),
    partial_update=extend_schema(
        tags=["Sessions"], request=AcademicSessionSerializer, responses={200: AcademicSessionSerializer}
    ),
    destroy=extend_schema(tags=["Sessions"], responses={204: OpenApiResponse(description="Deleted")}),
    process_end=extend_schema(
        tags=["Sessions"],
        request=None,
        responses={200: OpenApiResponse(description="Per-transition counts"), **AUTH_RESPONSES},
        description="Advance every student one academic level and close the active session.",
        extensions={"x-permissions": {"required_roles": ["staff", "admin"]}},
    ),
    logs=extend_schema(tags=["Sessions"], responses={200: SessionProcessingLogSerializer(many=True)}),
)
class AcademicSessionViewSet(PaginationMixin, viewsets.ModelViewSet):
    """Session CRUD and the end-of-session roll-forward (staff/admin)."""
    queryset = AcademicSession.objects.all()
    serializer_class = AcademicSessionSerializer

    def get_permissions(self) -> list:
        if self.action in ("list", "retrieve"):
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsStaffOrAdmin()]

    def perform_create(self, serializer) -> None:
        serializer.instance = session_service.create_session(self.request.user, serializer.validated_data)

    def perform_update(self, serializer) -> None:
        serializer.instance = session_service.update_session(
            self.request.user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance) -> None:
        session_service.delete_session(self.request.user, instance)

    @action(detail=False, methods=["post"], url_path="process-end")
    def process_end(self, request: Request) -> Response:
        changes = session_service.process_session_end(request.user)
        return Response({"academic_level_changes": changes})

    @action(detail=False, methods=["get"])
    def logs(self, request: Request) -> Response:
        qs = SessionProcessingLog.objects.select_related("created_by")
        return self.paginate_and_respond(qs, SessionProcessingLogSerializer)


# ---------- Clusters ----------
@extend_schema_view(
    list=extend_schema(tags=["Clusters"], responses={200: ClusterReadSerializer(many=True), **AUTH_RESPONSES}),
    retrieve=extend_schema(tags=["Clusters"], responses={200: ClusterReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Clusters"],
        request=ClusterWriteSerializer,
        responses={201: ClusterReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["staff", "admin"]}},
    ),
    partial_update=extend_schema(
        tags=["Clusters"], request=ClusterWriteSerializer, responses={200: ClusterReadSerializer, **AUTH_RESPONSES}
    ),
    join=extend_schema(
        tags=["Clusters"], request=None, responses={201: ClusterMembershipSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE}
    ),
    requests=extend_schema(tags=["Clusters"], responses={200: ClusterMembershipSerializer(many=True)}),
    members=extend_schema(tags=["Clusters"], responses={200: ClusterMembershipSerializer(many=True)}),
)
class ClusterViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Clusters and their join requests."""
    queryset = Cluster.objects.select_related("lead", "deputy", "staff_manager").order_by("name")
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_serializer_class(self):
        if self.action in ("create", "partial_update"):
            return ClusterWriteSerializer
        return ClusterReadSerializer

    def get_permissions(self) -> list:
        if self.action == "create":
            return [IsAuthenticated(), IsStaffOrAdmin()]
        if self.action == "join":
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsClusterManagerOrReadOnly()]

    def create(self, request: Request, *args, **kwargs) -> Response:
        ser = ClusterWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        cluster = membership_service.create_cluster(request.user, ser.validated_data)
        return Response(ClusterReadSerializer(cluster).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, *args, **kwargs) -> Response:
        cluster = self.get_object()
        ser = ClusterWriteSerializer(cluster, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        cluster = membership_service.update_cluster(request.user, cluster, ser.validated_data)
        return Response(ClusterReadSerializer(cluster).data)

    @action(detail=True, methods=["post"])
    def join(self, request: Request, pk: int | None = None) -> Response:
        cluster = self.get_object()
        membership = membership_service.request_cluster_membership(request.user, cluster)
        return Response(ClusterMembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"])
    def requests(self, request: Request, pk: int | None = None) -> Response:
        cluster = self.get_object()
        qs = membership_service.pending_cluster_requests(request.user, cluster)
        return self.paginate_and_respond(qs, ClusterMembershipSerializer)

    @action(detail=True, methods=["get"])
    def members(self, request: Request, pk: int | None = None) -> Response:
        return self.paginate_and_respond(
            membership_service.cluster_members(self.get_object()), ClusterMembershipSerializer
        )


@extend_schema_view(
    decide=extend_schema(
        tags=["Clusters"],
        request=MembershipDecisionSerializer,
        responses={200: ClusterMembershipSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
    ),
    destroy=extend_schema(tags=["Clusters"], responses={204: OpenApiResponse(description="Request cancelled")}),
)
class ClusterMembershipViewSet(mixins.RetrieveModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    """Decide or cancel a cluster join request."""
    permission_classes = [IsAuthenticated]
    serializer_class = ClusterMembershipSerializer

    def get_queryset(self):
        user = self.request.user
        qs = ClusterMembership.objects.select_related("cluster", "user")
        if is_staff_or_admin(user):
            return qs
        return qs.filter(pk__in=[
            m.pk for m in qs if m.user_id == user.pk or can_manage_cluster(user, m.cluster)
        ])

    @action(detail=True, methods=["post"])
    def decide(self, request: Request, pk: int | None = None) -> Response:
        membership = self.get_object()
        ser = MembershipDecisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        membership = membership_service.decide_cluster_membership(request.user, membership, ser.validated_data["status"])
        return Response(ClusterMembershipSerializer(membership).data)

    def destroy(self, request: Request, *args, **kwargs) -> Response:
        membership_service.cancel_cluster_request(request.user, self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)


# ---------- Projects ----------
@extend_schema_view(
    list=extend_schema(tags=["Projects"], responses={200: ProjectReadSerializer(many=True), **AUTH_RESPONSES}),
    retrieve=extend_schema(tags=["Projects"], responses={200: ProjectReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(tags=["Projects"], request=ProjectWriteSerializer, responses={201: ProjectReadSerializer}),
    partial_update=extend_schema(tags=["Projects"], request=ProjectWriteSerializer, responses={200: ProjectReadSerializer}),
    join=extend_schema(tags=["Projects"], request=None, responses={201: ProjectMembershipSerializer, **CONFLICT_RESPONSE}),
    requests=extend_schema(tags=["Projects"], responses={200: ProjectMembershipSerializer(many=True)}),
)
class ProjectViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        user = self.request.user
        qs = Project.objects.select_related("owner", "cluster").order_by("-created_at")
        if is_staff_or_admin(user):
            return qs
        return qs.filter(
            Q(visibility=ProjectVisibility.PUBLIC)
            | Q(owner=user)
            | Q(memberships__user=user, memberships__status=MembershipStatus.APPROVED)
        ).distinct()

    def get_serializer_class(self):
        if self.action in ("create", "partial_update"):
            return ProjectWriteSerializer
        return ProjectReadSerializer

    def get_permissions(self) -> list:
        if self.action == "join":
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsProjectManagerOrReadOnly()]

    def create(self, request: Request, *args, **kwargs) -> Response:
        ser = ProjectWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        project = membership_service.create_project(request.user, ser.validated_data)
        return Response(ProjectReadSerializer(project).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, *args, **kwargs) -> Response:
        project = self.get_object()
        ser = ProjectWriteSerializer(project, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        project = membership_service.update_project(request.user, project, ser.validated_data)
        return Response(ProjectReadSerializer(project).data)

    @action(detail=True, methods=["post"])
    def join(self, request: Request, pk: int | None = None) -> Response:
        membership = membership_service.request_project_membership(request.user, self.get_object())
        return Response(ProjectMembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"])
    def requests(self, request: Request, pk: int | None = None) -> Response:
        qs = membership_service.pending_project_requests(request.user, self.get_object())
        return self.paginate_and_respond(qs, ProjectMembershipSerializer)


@extend_schema_view(
    decide=extend_schema(
        tags=["Projects"],
        request=MembershipDecisionSerializer,
        responses={200: ProjectMembershipSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
    ),
    destroy=extend_schema(tags=["Projects"], responses={204: OpenApiResponse(description="Request cancelled")}),
)
class ProjectMembershipViewSet(mixins.RetrieveModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ProjectMembershipSerializer

    def get_queryset(self):
        user = self.request.user
        qs = ProjectMembership.objects.select_related("project__cluster", "user")
        if is_staff_or_admin(user):
            return qs
        return qs.filter(pk__in=[
            m.pk for m in qs if m.user_id == user.pk or can_manage_project(user, m.project)
        ])

    @action(detail=True, methods=["post"])
    def decide(self, request: Request, pk: int | None = None) -> Response:
        membership = self.get_object()
        ser = MembershipDecisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        membership = membership_service.decide_project_membership(request.user, membership, ser.validated_data["status"])
        return Response(ProjectMembershipSerializer(membership).data)

    def destroy(self, request: Request, *args, **kwargs) -> Response:
        membership_service.cancel_project_request(request.user, self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)


# ---------- Events ----------
@extend_schema_view(
    list=extend_schema(tags=["Events"], responses={200: EventReadSerializer(many=True)}),
    retrieve=extend_schema(tags=["Events"], responses={200: EventReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Events"],
        request=EventWriteSerializer,
        responses={201: EventReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["staff", "admin", "lead", "deputy"]}},
    ),
    partial_update=extend_schema(tags=["Events"], request=EventWriteSerializer, responses={200: EventReadSerializer}),
    publish=extend_schema(tags=["Events"], request=None, responses={200: EventReadSerializer, **CONFLICT_RESPONSE}),
    cancel=extend_schema(tags=["Events"], request=None, responses={200: EventReadSerializer, **CONFLICT_RESPONSE}),
    complete=extend_schema(tags=["Events"], request=None, responses={200: EventReadSerializer, **CONFLICT_RESPONSE}),
    register=extend_schema(
        tags=["Events"],
        request=EventRegisterSerializer,
        responses={201: EventRegistrationSerializer, 400: OpenApiResponse(description="Registration rejected.")},
    ),
    unregister=extend_schema(tags=["Events"], request=None, responses={200: EventRegistrationSerializer}),
    registrations=extend_schema(tags=["Events"], responses={200: EventRegistrationSerializer(many=True)}),
    guests=extend_schema(tags=["Events"], responses={200: GuestRegistrationSerializer(many=True)}),
    my_registrations=extend_schema(tags=["Events"], responses={200: EventRegistrationSerializer(many=True)}),
)
class EventViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Events, their lifecycle and attendee registration."""
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        return Event.objects.visible_to(self.request.user).select_related("organizer")

    def get_serializer_class(self):
        if self.action in ("create", "partial_update"):
            return EventWriteSerializer
        return EventReadSerializer

    def get_permissions(self) -> list:
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        if self.action in ("partial_update", "publish", "cancel", "complete", "registrations", "guests"):
            return [IsAuthenticated(), IsEventManager()]
        return [IsAuthenticated()]

    def create(self, request: Request, *args, **kwargs) -> Response:
        ser = EventWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        event = event_service.create_event(request.user, ser.validated_data)
        return Response(EventReadSerializer(event).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, *args, **kwargs) -> Response:
        event = self.get_object()
        ser = EventWriteSerializer(event, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        event = event_service.update_event(request.user, event, ser.validated_data)
        return Response(EventReadSerializer(event).data)

    @action(detail=True, methods=["post"])
    def publish(self, request: Request, pk: int | None = None) -> Response:
        return Response(EventReadSerializer(event_service.publish_event(request.user, self.get_object())).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: int | None = None) -> Response:
        return Response(EventReadSerializer(event_service.cancel_event(request.user, self.get_object())).data)

    @action(detail=True, methods=["post"])
    def complete(self, request: Request, pk: int | None = None) -> Response:
        return Response(EventReadSerializer(event_service.complete_event(request.user, self.get_object())).data)

    @action(detail=True, methods=["post"])
    def register(self, request: Request, pk: int | None = None) -> Response:
        ser = EventRegisterSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        registration = event_service.register(request.user, self.get_object(), ser.validated_data["notes"])
        return Response(EventRegistrationSerializer(registration).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def unregister(self, request: Request, pk: int | None = None) -> Response:
        registration = event_service.cancel_registration(request.user, self.get_object())
        return Response(EventRegistrationSerializer(registration).data)

    @action(detail=True, methods=["get"])
    def registrations(self, request: Request, pk: int | None = None) -> Response:
        qs = event_service.event_registrations(request.user, self.get_object())
        return self.paginate_and_respond(qs, EventRegistrationSerializer)

    @action(detail=True, methods=["get"])
    def guests(self, request: Request, pk: int | None = None) -> Response:
        return self.paginate_and_respond(self.get_object().guest_registrations.all(), GuestRegistrationSerializer)

    @action(detail=False, methods=["get"], url_path="my-registrations")
    def my_registrations(self, request: Request) -> Response:
        return self.paginate_and_respond(event_service.my_registrations(request.user), EventRegistrationSerializer)


@extend_schema_view(
    check_in=extend_schema(
        tags=["Events"], request=None, responses={200: EventRegistrationSerializer, **AUTH_RESPONSES}
    ),
)
class EventRegistrationViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Organizer-side handling of a single registration."""
    permission_classes = [IsAuthenticated, IsEventManager]
    serializer_class = EventRegistrationSerializer
    queryset = EventRegistration.objects.select_related("event", "user")

    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request: Request, pk: int | None = None) -> Response:
        registration = event_service.check_in(request.user, self.get_object())
        return Response(EventRegistrationSerializer(registration).data)


@extend_schema(
    tags=["Events"],
    request=GuestRegisterRequestSerializer,
    responses={
        200: OpenApiResponse(description="{success, message, hasAccount, status}"),
        400: OpenApiResponse(description="{error, ...} missing fields, closed event or already registered"),
        404: OpenApiResponse(description="{error} event not found"),
        429: OpenApiResponse(description="Too many requests / throttled."),
        500: OpenApiResponse(description="{error} unexpected failure"),
    },
    description="Register for a published event by email, with or without an account.",
)
class GuestRegistrationView(APIView):
    """Public sign-up endpoint; errors are rendered as ``{"error": ...}`` bodies."""
    authentication_classes: list[type] = []
    permission_classes = [AllowAny]
    throttle_classes = [GuestRegistrationThrottle]

    def post(self, request: Request) -> Response:
        data = {}
        try:
            if hasattr(request.data, "get"):
                data = request.data
            payload = event_service.guest_register(data.get("eventId"), data.get("fullName"), data.get("email"))
        except APIException as exc:
            body = {"error": str(exc.detail), **getattr(exc, "extra", {})}
            return Response(body, status=exc.status_code)
        except DatabaseError:
            logger.exception("Guest registration failed for event %s", data.get("eventId"))
            return Response({"error": "Failed to register for event"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(payload)


# ---------- Blog ----------
@extend_schema_view(
    list=extend_schema(tags=["Blog"], responses={200: BlogReadSerializer(many=True)}),
    retrieve=extend_schema(tags=["Blog"], responses={200: BlogReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(tags=["Blog"], request=BlogWriteSerializer, responses={201: BlogReadSerializer}),
    partial_update=extend_schema(tags=["Blog"], request=BlogWriteSerializer, responses={200: BlogReadSerializer}),
    destroy=extend_schema(tags=["Blog"], responses={204: OpenApiResponse(description="Deleted")}),
    by_slug=extend_schema(tags=["Blog"], responses={200: BlogReadSerializer, 404: OpenApiResponse(description="Not Found")}),
    submit=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}),
    draft=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}),
    approve=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}),
    reject=extend_schema(
        tags=["Blog"], request=BlogRejectSerializer, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}
    ),
    unpublish=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}),
    archive=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}),
    unarchive=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer, **CONFLICT_RESPONSE}),
    feature=extend_schema(tags=["Blog"], request=None, responses={200: BlogReadSerializer}),
    pending=extend_schema(tags=["Blog"], responses={200: BlogReadSerializer(many=True)}),
    comments=extend_schema(tags=["Blog"], request=BlogCommentSerializer, responses={200: BlogCommentSerializer(many=True)}),
)
class BlogViewSet(
    PaginationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Blog authoring, moderation and public reading."""
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        qs = Blog.objects.visible_to(self.request.user).select_related("author", "cluster")
        category = self.request.query_params.get("category")
        if category:
            qs = qs.filter(category=category)
        return qs

    def get_serializer_class(self):
        if self.action in ("create", "partial_update"):
            return BlogWriteSerializer
        return BlogReadSerializer

    def get_permissions(self) -> list:
        if self.action in ("list", "retrieve", "by_slug") or (self.action == "comments" and self.request.method == "GET"):
            return [AllowAny()]
        return [IsAuthenticated()]

    def _blog(self, pk) -> Blog:
        """Any post by id for moderation actions; services apply the permission rules."""
        return get_object_or_404(Blog, pk=pk)

    def create(self, request: Request, *args, **kwargs) -> Response:
        ser = BlogWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        blog = blog_service.create_blog(request.user, ser.validated_data)
        return Response(BlogReadSerializer(blog).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, *args, **kwargs) -> Response:
        blog = self.get_object()
        ser = BlogWriteSerializer(blog, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        blog = blog_service.update_blog(request.user, blog, ser.validated_data)
        return Response(BlogReadSerializer(blog).data)

    def destroy(self, request: Request, *args, **kwargs) -> Response:
        blog_service.delete_blog(request.user, self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path=r"by-slug/(?P<slug>[-\w]+)")
    def by_slug(self, request: Request, slug: str | None = None) -> Response:
        """Read a published post and count the view."""
        return Response(BlogReadSerializer(blog_service.published_by_slug(slug)).data)

    @action(detail=True, methods=["post"])
    def submit(self, request: Request, pk: int | None = None) -> Response:
        return Response(BlogReadSerializer(blog_service.submit_for_approval(request.user, self._blog(pk))).data)

    @action(detail=True, methods=["post"])
    def draft(self, request: Request, pk: int | None = None) -> Response:
        return Response(BlogReadSerializer(blog_service.save_as_draft(request.user, self._blog(pk))).data)

    @action(detail=True, methods=["post"])
    def approve(self, request: Request, pk: int | None = None) -> Response:
        return Response(BlogReadSerializer(blog_service.approve_blog(request.user, self._blog(pk))).data)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: int | None = None) -> Response:
        ser = BlogRejectSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        blog = blog_service.reject_blog(request.user, self._blog(pk), ser.validated_data["reason"])
        return Response(BlogReadSerializer(blog).data)

    @action(detail=True, methods=["post"])
    def unpublish(self, request: Request, pk: int | None = None) -> Response:
        reason = request.data.get("reason", "") if hasattr(request.data, "get") else ""
        return Response(BlogReadSerializer(blog_service.unpublish_blog(request.user, self._blog(pk), reason)).data)

    @action(detail=True, methods=["post"])
    def archive(self, request: Request, pk: int | None = None) -> Response:
        return Response(BlogReadSerializer(blog_service.archive_blog(request.user, self._blog(pk))).data)

    @action(detail=True, methods=["post"])
    def unarchive(self, request: Request, pk: int | None = None) -> Response:
        return Response(BlogReadSerializer(blog_service.unarchive_blog(request.user, self._blog(pk))).data)

    @action(detail=True, methods=["post"])
    def feature(self, request: Request, pk: int | None = None) -> Response:
        return Response(BlogReadSerializer(blog_service.toggle_featured(request.user, self._blog(pk))).data)

    @action(detail=False, methods=["get"])
    def pending(self, request: Request) -> Response:
        return self.paginate_and_respond(blog_service.moderation_queue(request.user), BlogReadSerializer)

    @action(detail=True, methods=["get", "post"])
    def comments(self, request: Request, pk: int | None = None) -> Response:
        blog = self.get_object()
        if request.method == "POST":
            ser = BlogCommentSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            comment = blog_service.post_comment(
                request.user, blog, ser.validated_data["content"], ser.validated_data.get("parent")
            )
            return Response(BlogCommentSerializer(comment).data, status=status.HTTP_201_CREATED)
        return self.paginate_and_respond(blog.comments.select_related("user"), BlogCommentSerializer)


@extend_schema_view(
    destroy=extend_schema(tags=["Blog"], responses={204: OpenApiResponse(description="Deleted")}),
)
class BlogCommentViewSet(mixins.DestroyModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    queryset = BlogComment.objects.all()
    serializer_class = BlogCommentSerializer

    def destroy(self, request: Request, *args, **kwargs) -> Response:
        blog_service.delete_comment(request.user, self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)
