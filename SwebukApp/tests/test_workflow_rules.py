import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from SwebukApp.core.access import is_fyp_eligible
from SwebukApp.core.choices import AcademicLevel, MembershipStatus, SubmissionStatus
from SwebukApp.core.exceptions import InvalidTransition
from SwebukApp.core.workflow import (
    BLOG_MODERATION,
    EVENT_LIFECYCLE,
    FYP_LIFECYCLE,
    MEMBERSHIP_REQUEST,
    SUBMISSION_REVIEW,
)

WORKFLOWS = [SUBMISSION_REVIEW, MEMBERSHIP_REQUEST, FYP_LIFECYCLE, BLOG_MODERATION, EVENT_LIFECYCLE]

level_strings = st.one_of(st.sampled_from(list(AcademicLevel.values) + [None, "", "level_500"]), st.text(max_size=12))

# the autouse media/cache fixture is function scoped; these properties touch neither
relaxed = settings(suppress_health_check=[HealthCheck.function_scoped_fixture])


@relaxed
@given(level_strings)
def test_only_final_year_levels_are_eligible(level):
    assert is_fyp_eligible(level) == (level in ("level_400", "400"))


def _states(workflow):
    states = set(workflow.transitions)
    for targets in workflow.transitions.values():
        states |= targets
    return sorted(states)


@pytest.mark.parametrize("workflow", WORKFLOWS, ids=lambda w: w.name)
def test_can_matches_table(workflow):
    states = _states(workflow)
    for src in states:
        for dst in states:
            assert workflow.can(src, dst) == (dst in workflow.transitions.get(src, frozenset()))


@relaxed
@given(st.sampled_from(SubmissionStatus.values), st.sampled_from(SubmissionStatus.values))
def test_review_moves_only_out_of_pending(src, dst):
    if workflow_allows := SUBMISSION_REVIEW.can(src, dst):
        assert src == SubmissionStatus.PENDING and dst != SubmissionStatus.PENDING
    else:
        with pytest.raises(InvalidTransition):
            SUBMISSION_REVIEW.ensure(src, dst)
    assert workflow_allows == (src == "pending" and dst in ("approved", "needs_revision", "rejected"))


def test_review_outcomes_are_terminal():
    for state in (SubmissionStatus.APPROVED, SubmissionStatus.NEEDS_REVISION, SubmissionStatus.REJECTED):
        assert SUBMISSION_REVIEW.is_terminal(state)
    assert not SUBMISSION_REVIEW.is_terminal(SubmissionStatus.PENDING)


def test_membership_edges_are_a_subset_of_review_edges():
    for src, targets in MEMBERSHIP_REQUEST.transitions.items():
        for dst in targets:
            assert SUBMISSION_REVIEW.can(src, dst)
    assert MEMBERSHIP_REQUEST.targets(MembershipStatus.PENDING) == {"approved", "rejected"}


def test_choices_members_and_plain_strings_are_interchangeable():
    assert FYP_LIFECYCLE.can("proposal_submitted", "proposal_approved")
    assert SUBMISSION_REVIEW.can(SubmissionStatus.PENDING, "approved")
    assert not BLOG_MODERATION.can("draft", "published")
