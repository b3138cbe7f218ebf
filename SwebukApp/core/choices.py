"""Typed enumerations (TextChoices) for roles, academic levels and every workflow status."""
from django.db import models


class UserRole(models.TextChoices):
    """Functional permission of an account, independent of academic level."""
    STUDENT = "student", "Student"
    STAFF = "staff", "Staff"
    LEAD = "lead", "Cluster Lead"
    DEPUTY = "deputy", "Deputy Lead"
    ADMIN = "admin", "Admin"


class AcademicLevel(models.TextChoices):
    """Progression of a student through the programme."""
    LEVEL_100 = "level_100", "Level 100"
    LEVEL_200 = "level_200", "Level 200"
    LEVEL_300 = "level_300", "Level 300"
    LEVEL_400 = "level_400", "Level 400"
    LEGACY_400 = "400", "Level 400 (legacy)"
    ALUMNI = "alumni", "Alumni"


class FYPStatus(models.TextChoices):
    """Lifecycle of a final year project record."""
    PROPOSAL_SUBMITTED = "proposal_submitted", "Proposal submitted"
    PROPOSAL_APPROVED = "proposal_approved", "Proposal approved"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    REJECTED = "rejected", "Rejected"


class SubmissionType(models.TextChoices):
    PROPOSAL = "proposal", "Proposal"
    CHAPTER_1 = "chapter_1", "Chapter 1"
    CHAPTER_2 = "chapter_2", "Chapter 2"
    CHAPTER_3 = "chapter_3", "Chapter 3"
    CHAPTER_4 = "chapter_4", "Chapter 4"
    CHAPTER_5 = "chapter_5", "Chapter 5"
    FINAL_THESIS = "final_thesis", "Final thesis"
    PROGRESS_REPORT = "progress_report", "Progress report"
    CHAPTER_DRAFT = "chapter_draft", "Chapter draft"


class SubmissionStatus(models.TextChoices):
    """Review state of a single submission version."""
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    NEEDS_REVISION = "needs_revision", "Needs revision"
    REJECTED = "rejected", "Rejected"


class MembershipStatus(models.TextChoices):
    """State of a cluster or project join request."""
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class MemberRole(models.TextChoices):
    MEMBER = "member", "Member"
    LEAD = "lead", "Lead"
    DEPUTY = "deputy", "Deputy"


class ProjectVisibility(models.TextChoices):
    PUBLIC = "public", "Public"
    PRIVATE = "private", "Private"


class EventStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"
    ARCHIVED = "archived", "Archived"


class EventType(models.TextChoices):
    WORKSHOP = "workshop", "Workshop"
    SEMINAR = "seminar", "Seminar"
    HACKATHON = "hackathon", "Hackathon"
    MEETUP = "meetup", "Meetup"
    CONFERENCE = "conference", "Conference"
    TRAINING = "training", "Training"
    WEBINAR = "webinar", "Webinar"
    COMPETITION = "competition", "Competition"
    OTHER = "other", "Other"


class LocationType(models.TextChoices):
    PHYSICAL = "physical", "In-Person"
    ONLINE = "online", "Online"
    HYBRID = "hybrid", "Hybrid"


class RegistrationStatus(models.TextChoices):
    REGISTERED = "registered", "Registered"
    WAITLISTED = "waitlisted", "Waitlisted"
    CANCELLED = "cancelled", "Cancelled"
    ATTENDED = "attended", "Attended"
    NO_SHOW = "no_show", "No show"


class BlogStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_APPROVAL = "pending_approval", "Pending approval"
    PUBLISHED = "published", "Published"
    REJECTED = "rejected", "Rejected"
    ARCHIVED = "archived", "Archived"


class BlogCategory(models.TextChoices):
    TECHNICAL = "technical", "Technical"
    CAREER = "career", "Career"
    EVENTS = "events", "Events"
    PROJECTS = "projects", "Projects"
    COMMUNITY = "community", "Community"
    OTHER = "other", "Other"
