"""Access to the ``SWEBUK`` settings block with defaults."""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "FYP_ELIGIBLE_LEVELS": ("level_400", "400"),
    "DOCUMENT_MAX_MB": 25,
    "IMAGE_MAX_MB": 5,
    "PROPOSAL_TITLE_MIN": 10,
    "PROPOSAL_DESCRIPTION_MIN": 50,
    "SUBMISSION_RATE": "20/hour",
    "GUEST_REGISTRATION_RATE": "30/hour",
}


def swebuk_setting(name: str) -> Any:
    return getattr(settings, "SWEBUK", {}).get(name, DEFAULTS[name])
