"""
Test settings for the reference actions project.
"""

import tempfile
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
# Journaux (jobs, audit) écrits hors de l'arborescence du projet
VAR_DIR = Path(tempfile.mkdtemp(prefix="refactions-tests-"))

SECRET_KEY = "test-secret-key"

DEBUG = False

ALLOWED_HOSTS = ["testserver", "localhost"]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "sitecfg.apps.SitecfgConfig",
    "ops",
    "refactions",
    "content",
]

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "sitecfg.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STATIC_URL = "/static/"

USE_TZ = True
TIME_ZONE = "Europe/Paris"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REFERENCE_ACTIONS = {
    "INLINE_THRESHOLD": 1,
    "PROCESS_ON_POLL": True,
    "POLL_CHUNK": 10,
}

# Use in-memory database and disable migrations for testing
MIGRATION_MODULES = {
    "ops": None,
    "content": None,
    "refactions": None,
}
