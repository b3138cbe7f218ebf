from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_nested import routers
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from SwebukApp.api.views import (
    AcademicSessionViewSet,
    BlogCommentViewSet,
    BlogViewSet,
    ClusterMembershipViewSet,
    ClusterViewSet,
    EventRegistrationViewSet,
    EventViewSet,
    FinalYearProjectViewSet,
    ProjectMembershipViewSet,
    ProjectViewSet,
    RegistrationView,
    SubmissionViewSet,
    UserViewSet,
)

router = routers.SimpleRouter()
router.register(r"users", UserViewSet, basename="user")
router.register(r"fyp", FinalYearProjectViewSet, basename="fyp")
router.register(r"sessions", AcademicSessionViewSet, basename="session")
router.register(r"clusters", ClusterViewSet, basename="cluster")
router.register(r"cluster-memberships", ClusterMembershipViewSet, basename="cluster-membership")
router.register(r"projects", ProjectViewSet, basename="project")
router.register(r"project-memberships", ProjectMembershipViewSet, basename="project-membership")
router.register(r"events", EventViewSet, basename="event")
router.register(r"event-registrations", EventRegistrationViewSet, basename="event-registration")
router.register(r"blogs", BlogViewSet, basename="blog")
router.register(r"blog-comments", BlogCommentViewSet, basename="blog-comment")

fyp_router = routers.NestedSimpleRouter(router, r"fyp", lookup="fyp")
fyp_router.register(r"submissions", SubmissionViewSet, basename="fyp-submissions")

urlpatterns = [
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="docs"),
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/register/", RegistrationView.as_view(), name="auth-register"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("", include(router.urls)),
    path("", include(fyp_router.urls)),
]
