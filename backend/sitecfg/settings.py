# backend/sitecfg/settings.py

import os
from pathlib import Path
from dotenv import load_dotenv

# === Base paths & env =========================================================
# BASE_DIR = dossier "backend"
BASE_DIR = Path(__file__).resolve().parent.parent
# .env au niveau du projet (parent de backend)
load_dotenv(BASE_DIR.parent / ".env")

# Répertoire de travail applicatif
VAR_DIR = BASE_DIR / "var"

# Sous-dossiers normalisés utilisés par l'app
VAR_SUBDIRS = {
    "logs": VAR_DIR / "logs",
    "locks": VAR_DIR / "locks",
}

# Création silencieuse des dossiers var/* (idempotent)
for p in VAR_SUBDIRS.values():
    p.mkdir(parents=True, exist_ok=True)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


# === Core security/debug ======================================================
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret-key")
DEBUG = _env_bool("DJANGO_DEBUG", "true")
# Autoriser tout en dev, sinon lire depuis l'env (séparateur ",")
if DEBUG:
    ALLOWED_HOSTS = ["*"]
else:
    ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if h.strip()]

if not DEBUG:
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True

# === Applications =============================================================
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Apps projet
    "sitecfg.apps.SitecfgConfig",   # <- ready() enregistre les checks
    "ops",
    "refactions",
    "content",

    # Postgres helpers
    "django.contrib.postgres",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "sitecfg.urls"

# === Templates ================================================================
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [
            BASE_DIR / "templates",
            BASE_DIR / "refactions" / "templates",
        ],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
                "django.template.context_processors.static",
            ],
        },
    },
]

# === Database (PostgreSQL only) ==============================================
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": os.getenv("PGHOST", "localhost"),
        "PORT": os.getenv("PGPORT", "5432"),
        "NAME": os.getenv("POSTGRES_DB", "app"),
        "USER": os.getenv("POSTGRES_USER", "app"),
        "PASSWORD": os.getenv("POSTGRES_PASSWORD", "app"),
        "CONN_MAX_AGE": int(os.getenv("PG_CONN_MAX_AGE", "60")),  # keepalive
    }
}

# === Auth password validators ================================================
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# === I18N / TZ ================================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Europe/Paris"
USE_I18N = True
USE_TZ = True

# === Static ===================================================================
STATIC_URL = "/static/"
STATIC_ROOT = VAR_DIR / "staticfiles"         # collectstatic en prod
STATICFILES_DIRS = [BASE_DIR / "static"] if (BASE_DIR / "static").exists() else []

# === Primary key type par défaut =============================================
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# === Logging =================================================================
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "[{levelname}] {asctime} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "file_django": {
            "class": "logging.FileHandler",
            "filename": str(VAR_SUBDIRS["logs"] / "django.log"),
            "formatter": "simple",
        },
        "file_ops": {
            "class": "logging.FileHandler",
            "filename": str(VAR_SUBDIRS["logs"] / "ops.log"),
            "formatter": "simple",
        },
        "file_refactions": {
            "class": "logging.FileHandler",
            "filename": str(VAR_SUBDIRS["logs"] / "refactions.log"),
            "formatter": "simple",
        },
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console", "file_django"],
        "level": "INFO",
    },
    "loggers": {
        # Jobs ops.* (file d'attente, commandes de maintenance)
        "ops": {
            "handlers": ["file_ops", "console"],
            "level": "INFO",
            "propagate": False,
        },
        # Dispatch, refus d'accès, vues admin
        "refactions": {
            "handlers": ["file_refactions", "console"],
            "level": os.getenv("REFACTIONS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# === Reference actions ========================================================
REFERENCE_ACTIONS = {
    # Au-delà de ce nombre d'entités, l'action passe par un job ops
    "INLINE_THRESHOLD": int(os.getenv("REFACTIONS_INLINE_THRESHOLD", "1")),
    # La page de progression fait avancer le job (sinon : manage.py run_jobs)
    "PROCESS_ON_POLL": _env_bool("REFACTIONS_PROCESS_ON_POLL", "true"),
    "POLL_CHUNK": int(os.getenv("REFACTIONS_POLL_CHUNK", "10")),
    "POLL_INTERVAL_SECONDS": int(os.getenv("REFACTIONS_POLL_INTERVAL_SECONDS", "1")),
    "TOKEN_MAX_AGE": int(os.getenv("REFACTIONS_TOKEN_MAX_AGE", "3600")),
    "JOB_TTL_HOURS": int(os.getenv("REFACTIONS_JOB_TTL_HOURS", "24")),
    "DEFAULT_ACTION_TITLE": os.getenv("REFACTIONS_DEFAULT_ACTION_TITLE", "Action"),
}
