"""Django settings for the Swebuk portal.

Values come from the environment (``SWEBUK_*`` variables) with development
defaults, so the same module serves local runs, tests and deployments.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("SWEBUK_SECRET_KEY", "dev-insecure-swebuk-secret-key-change-me-0123456789")
DEBUG = _env_bool("SWEBUK_DEBUG", True)
ALLOWED_HOSTS = [h for h in os.getenv("SWEBUK_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "simple_history",
    "SwebukApp.core",
    "SwebukApp.users",
    "SwebukApp.academics",
    "SwebukApp.fyp",
    "SwebukApp.clusters",
    "SwebukApp.events",
    "SwebukApp.blog",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "simple_history.middleware.HistoryRequestMiddleware",
]

ROOT_URLCONF = "SwebukApp.urls"
WSGI_APPLICATION = "SwebukApp.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {"context_processors": ["django.template.context_processors.request"]},
    },
]

DATABASES = {
    "default": {
        "ENGINE": os.getenv("SWEBUK_DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("SWEBUK_DB_NAME", str(BASE_DIR / "swebuk.sqlite3")),
        "USER": os.getenv("SWEBUK_DB_USER", ""),
        "PASSWORD": os.getenv("SWEBUK_DB_PASSWORD", ""),
        "HOST": os.getenv("SWEBUK_DB_HOST", ""),
        "PORT": os.getenv("SWEBUK_DB_PORT", ""),
    }
}

AUTH_USER_MODEL = "users.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_URL = "/media/"
MEDIA_ROOT = os.getenv("SWEBUK_MEDIA_ROOT", str(BASE_DIR / "media"))

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.getenv("SWEBUK_ACCESS_TOKEN_MINUTES", "30"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.getenv("SWEBUK_REFRESH_TOKEN_DAYS", "7"))),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Swebuk Portal API",
    "DESCRIPTION": "Clusters, events, blog moderation and final year project workflow.",
    "VERSION": "0.1.0",
}

SWEBUK = {
    "FYP_ELIGIBLE_LEVELS": ("level_400", "400"),
    "DOCUMENT_MAX_MB": int(os.getenv("SWEBUK_DOCUMENT_MAX_MB", "25")),
    "IMAGE_MAX_MB": int(os.getenv("SWEBUK_IMAGE_MAX_MB", "5")),
    "PROPOSAL_TITLE_MIN": 10,
    "PROPOSAL_DESCRIPTION_MIN": 50,
    "SUBMISSION_RATE": os.getenv("SWEBUK_SUBMISSION_RATE", "20/hour"),
    "GUEST_REGISTRATION_RATE": os.getenv("SWEBUK_GUEST_REGISTRATION_RATE", "30/hour"),
}

LOG_LEVEL = os.getenv("SWEBUK_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("SWEBUK_LOG_FILE")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "simple": {
            "format": "%(levelname)s - %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": LOG_LEVEL,
            "formatter": "detailed",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "SwebukApp": {
            "level": "DEBUG",
            "handlers": ["console"],
            "propagate": True,
        },
        "django.request": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False,
        },
    },
}

if LOG_FILE:
    LOGGING["handlers"]["file"] = {
        "class": "logging.FileHandler",
        "level": "DEBUG",
        "formatter": "detailed",
        "filename": LOG_FILE,
        "mode": "a",
    }
    LOGGING["loggers"]["SwebukApp"]["handlers"].append("file")
