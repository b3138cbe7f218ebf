from django.conf import settings
from django.conf.urls.static import static
from django.urls import include, path

from SwebukApp.api.views import GuestRegistrationView

urlpatterns = [
    path("api/v1/", include("SwebukApp.api.urls")),
    path("api/events/guest-register", GuestRegistrationView.as_view(), name="guest-register"),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
