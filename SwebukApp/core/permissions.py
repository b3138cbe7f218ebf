"""Custom DRF permission classes built on the central access predicates."""

from typing import Any

from rest_framework.permissions import SAFE_METHODS, BasePermission
from rest_framework.request import Request

from SwebukApp.core.access import (
    can_access_fyp,
    can_manage_cluster,
    can_manage_event,
    can_manage_project,
    is_admin,
    is_fyp_participant,
    is_staff_or_admin,
)


class IsStaffOrAdmin(BasePermission):
    """Allow staff and admin roles (stored role, not ``is_staff``)."""

    def has_permission(self, request: Request, view: Any) -> bool:
        return is_staff_or_admin(request.user)


class IsAdminRole(BasePermission):

    def has_permission(self, request: Request, view: Any) -> bool:
        return is_admin(request.user)


class IsFypEligible(BasePermission):
    """Final-year students only; the level is read from the database."""
    message = "Only Level 400 students can access the final year project module."

    def has_permission(self, request: Request, view: Any) -> bool:
        return can_access_fyp(request.user)


class IsFypParticipant(BasePermission):
    """Owner student, assigned supervisor or staff/admin."""

    def has_object_permission(self, request: Request, view: Any, obj: Any) -> bool:
        fyp = getattr(obj, "fyp", obj)
        return is_fyp_participant(request.user, fyp)


class IsClusterManagerOrReadOnly(BasePermission):

    def has_object_permission(self, request: Request, view: Any, obj: Any) -> bool:
        if request.method in SAFE_METHODS:
            return True
        return can_manage_cluster(request.user, obj)


class IsProjectManagerOrReadOnly(BasePermission):

    def has_object_permission(self, request: Request, view: Any, obj: Any) -> bool:
        if request.method in SAFE_METHODS:
            return True
        return can_manage_project(request.user, obj)


class IsEventManager(BasePermission):
    """Event organizer or staff/admin."""

    def has_object_permission(self, request: Request, view: Any, obj: Any) -> bool:
        event = getattr(obj, "event", obj)
        return can_manage_event(request.user, event)
