"""API throttling classes."""

from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from SwebukApp.core.conf import swebuk_setting


class SubmissionRateThrottle(UserRateThrottle):
    """Throttle limiting document uploads per user."""
    scope = "submission_create"

    def get_rate(self) -> str:
        return swebuk_setting("SUBMISSION_RATE")


class GuestRegistrationThrottle(AnonRateThrottle):
    """Throttle the public guest sign-up endpoint per client IP."""
    scope = "guest_register"

    def get_rate(self) -> str:
        return swebuk_setting("GUEST_REGISTRATION_RATE")
