"""API exceptions raised by domain services beyond the DRF built-ins."""

from typing import Any

from rest_framework import status
from rest_framework.exceptions import APIException


class InvalidTransition(APIException):
    """A workflow edge that the transition table does not allow."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invalid status transition."
    default_code = "invalid_transition"


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


class RegistrationRejected(APIException):
    """Event registration refused; ``extra`` is merged into the error body."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Registration rejected."
    default_code = "registration_rejected"

    def __init__(self, detail: str | None = None, **extra: Any) -> None:
        super().__init__(detail)
        self.extra = extra
