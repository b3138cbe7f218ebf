"""Explicit status transition tables shared by every review-style workflow.

Each workflow is a mapping ``state -> allowed next states``. Services never
assign a status directly; they call ``Workflow.ensure(current, target)`` first,
so every legal move of a submission, join request, project, blog post or event
is listed in exactly one table below.

    Submission review:   pending -> approved | needs_revision | rejected
    Membership request:  pending -> approved | rejected
"""

import logging
from dataclasses import dataclass

from SwebukApp.core.choices import (
    BlogStatus,
    EventStatus,
    FYPStatus,
    MembershipStatus,
    SubmissionStatus,
)
from SwebukApp.core.exceptions import InvalidTransition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workflow:
    """Immutable transition table with lookup helpers.

    States are stored as plain strings so values loaded from the database and
    TextChoices members compare equal.
    """
    name: str
    transitions: dict[str, frozenset[str]]

    def __post_init__(self) -> None:
        normalized = {
            str(src): frozenset(str(dst) for dst in targets)
            for src, targets in self.transitions.items()
        }
        object.__setattr__(self, "transitions", normalized)

    def targets(self, state: str) -> frozenset[str]:
        return self.transitions.get(str(state), frozenset())

    def can(self, src: str, dst: str) -> bool:
        return str(dst) in self.targets(src)

    def is_terminal(self, state: str) -> bool:
        return not self.targets(state)

    def ensure(self, src: str, dst: str) -> None:
        """Raise InvalidTransition unless ``src -> dst`` is a listed edge."""
        if not self.can(src, dst):
            logger.warning("%s: rejected transition %s -> %s", self.name, src, dst)
            raise InvalidTransition(f"Cannot move {self.name} from '{str(src)}' to '{str(dst)}'.")


SUBMISSION_REVIEW = Workflow(
    "submission",
    {
        SubmissionStatus.PENDING: frozenset({
            SubmissionStatus.APPROVED,
            SubmissionStatus.NEEDS_REVISION,
            SubmissionStatus.REJECTED,
        }),
    },
)

MEMBERSHIP_REQUEST = Workflow(
    "membership",
    {
        MembershipStatus.PENDING: frozenset({
            MembershipStatus.APPROVED,
            MembershipStatus.REJECTED,
        }),
    },
)

FYP_LIFECYCLE = Workflow(
    "final year project",
    {
        FYPStatus.PROPOSAL_SUBMITTED: frozenset({FYPStatus.PROPOSAL_APPROVED, FYPStatus.REJECTED}),
        FYPStatus.PROPOSAL_APPROVED: frozenset({FYPStatus.IN_PROGRESS, FYPStatus.COMPLETED}),
        FYPStatus.IN_PROGRESS: frozenset({FYPStatus.COMPLETED}),
        FYPStatus.REJECTED: frozenset({FYPStatus.PROPOSAL_SUBMITTED}),
    },
)

BLOG_MODERATION = Workflow(
    "blog",
    {
        BlogStatus.DRAFT: frozenset({BlogStatus.PENDING_APPROVAL}),
        BlogStatus.PENDING_APPROVAL: frozenset({
            BlogStatus.PUBLISHED,
            BlogStatus.REJECTED,
            BlogStatus.DRAFT,
        }),
        BlogStatus.REJECTED: frozenset({BlogStatus.PENDING_APPROVAL, BlogStatus.DRAFT}),
        BlogStatus.PUBLISHED: frozenset({BlogStatus.ARCHIVED, BlogStatus.DRAFT}),
        BlogStatus.ARCHIVED: frozenset({BlogStatus.PUBLISHED}),
    },
)

EVENT_LIFECYCLE = Workflow(
    "event",
    {
        EventStatus.DRAFT: frozenset({EventStatus.PUBLISHED, EventStatus.CANCELLED}),
        EventStatus.PUBLISHED: frozenset({EventStatus.CANCELLED, EventStatus.COMPLETED}),
        EventStatus.CANCELLED: frozenset({EventStatus.ARCHIVED}),
        EventStatus.COMPLETED: frozenset({EventStatus.ARCHIVED}),
        EventStatus.ARCHIVED: frozenset({EventStatus.DRAFT}),
    },
)
