from django.contrib.auth.models import AbstractUser
from django.db import models

from simple_history.models import HistoricalRecords

from SwebukApp.core.choices import AcademicLevel, UserRole


class User(AbstractUser):
    """Portal profile: functional ``role`` and programme ``academic_level`` are independent."""
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.STUDENT)
    academic_level = models.CharField(max_length=16, choices=AcademicLevel.choices, blank=True, null=True)
    department = models.CharField(max_length=255, blank=True)
    faculty = models.CharField(max_length=255, blank=True)
    institution = models.CharField(max_length=255, blank=True)
    linkedin_url = models.URLField(blank=True)
    github_url = models.URLField(blank=True)
    history = HistoricalRecords()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    def __str__(self) -> str:
        return self.full_name or self.email
