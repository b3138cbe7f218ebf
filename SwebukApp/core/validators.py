"""Validation helpers for uploaded documents, images and external URLs."""

from pathlib import PurePath
from typing import Any
from urllib.parse import urlparse

import magic
from django.core.exceptions import ValidationError

from SwebukApp.core.conf import swebuk_setting

DOCUMENT_EXTENSIONS: set[str] = {"pdf", "doc", "docx"}
ALLOWED_DOCUMENT_MIME: set[str] = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
# libmagic reports container formats for some Word files
CONTAINER_MIME_BY_EXTENSION: dict[str, set[str]] = {
    "docx": {"application/zip"},
    "doc": {"application/x-ole-storage", "application/CDFV2"},
}
ALLOWED_IMAGE_MIME: set[str] = {"image/png", "image/jpeg", "image/webp", "image/gif"}


def _extension(file_obj: Any) -> str:
    return PurePath(getattr(file_obj, "name", "") or "").suffix.lstrip(".").lower()


def _sniff_mime(file_obj: Any) -> str | None:
    """Read initial bytes to detect MIME type using libmagic."""
    if not file_obj:
        return None
    header = file_obj.read(4096)
    file_obj.seek(0)
    return magic.from_buffer(header, mime=True)


def validate_document_size(file_obj: Any) -> None:
    max_mb = swebuk_setting("DOCUMENT_MAX_MB")
    if file_obj and file_obj.size > max_mb * 1024 * 1024:
        raise ValidationError(f"File exceeds {max_mb} MB limit.")


def validate_document_mime(file_obj: Any) -> None:
    """Accept PDF and Word documents only (extension and sniffed content must agree)."""
    if not file_obj:
        return
    ext = _extension(file_obj)
    if ext not in DOCUMENT_EXTENSIONS:
        raise ValidationError("Only PDF, DOC or DOCX files are accepted.")
    mime = _sniff_mime(file_obj)
    if mime in ALLOWED_DOCUMENT_MIME or mime in CONTAINER_MIME_BY_EXTENSION.get(ext, set()):
        return
    raise ValidationError(f"Unsupported document mime: {mime}")


def validate_image(file_obj: Any) -> None:
    if not file_obj:
        return
    max_mb = swebuk_setting("IMAGE_MAX_MB")
    if file_obj.size > max_mb * 1024 * 1024:
        raise ValidationError(f"Image exceeds {max_mb} MB limit.")
    mime = _sniff_mime(file_obj)
    if mime not in ALLOWED_IMAGE_MIME:
        raise ValidationError(f"Unsupported image mime: {mime}")


def validate_github_url(url: str) -> None:
    """Ensure URL is an https link to a github.com repository."""
    result = urlparse(url)
    if result.scheme != "https":
        raise ValidationError("URL must use https.")
    if result.netloc.lower() not in ("github.com", "www.github.com"):
        raise ValidationError("Repository must be hosted on github.com.")
    if len([p for p in result.path.split("/") if p]) < 2:
        raise ValidationError("URL must point to a repository (owner/name).")
