"""
Django settings for paradocks_backend project.

Configuration for the Paradocks notifications backend:
- DRF + JWT (SimpleJWT) for staff endpoints
- CORS Headers
- PostgreSQL via environment variables with SQLite fallback in development
- SMS pipeline (SMSAPI.pl) configured from the environment, overridable at
  runtime through the `sms.SmsSettings` model
"""

from pathlib import Path
import os

from celery.schedules import crontab

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv(
    "DJANGO_SECRET_KEY",
    "django-insecure-p4r4d0cks-dev-only-7q!x2m#r9v0b3k8w$e1z",
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = _env_bool("DJANGO_DEBUG", "true")

ALLOWED_HOSTS = (
    os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",")
    if os.getenv("DJANGO_ALLOWED_HOSTS")
    else (["*"] if DEBUG else [])
)


# Application definition

INSTALLED_APPS = [
    # Django core
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "rest_framework",
    "corsheaders",
    "django_filters",

    # Local apps
    "core",
    "sms",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    # CORS must sit right after SecurityMiddleware
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "paradocks_backend.urls"

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

WSGI_APPLICATION = "paradocks_backend.wsgi.application"


# Database
# PostgreSQL via environment variables; SQLite fallback for local development
if os.getenv("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": 60,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "paradocks-default",
    }
}


# Password validation
# https://docs.djangoproject.com/en/5.2/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]


LANGUAGE_CODE = "pl"

TIME_ZONE = "Europe/Warsaw"

USE_I18N = True

USE_TZ = True


STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Django REST Framework
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_FILTER_BACKENDS": (
        "django_filters.rest_framework.DjangoFilterBackend",
    ),
}

# CORS
CORS_ALLOWED_ORIGINS = [
    origin
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
    if origin.strip()
]

if DEBUG and not CORS_ALLOWED_ORIGINS:
    CORS_ALLOW_ALL_ORIGINS = True

# Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", "false")
CELERY_TASK_DEFAULT_QUEUE = "default"
CELERY_TASK_ROUTES = {
    "sms.tasks.send_sms_from_template": {"queue": "sms"},
}
# Run with `celery -A paradocks_backend beat` next to the worker.
CELERY_BEAT_SCHEDULE = {
    "sms-cleanup-old-logs": {
        "task": "sms.tasks.cleanup_old_sms_logs",
        "schedule": crontab(
            hour=int(os.getenv("SMS_CLEANUP_HOUR", "3")),
            minute=int(os.getenv("SMS_CLEANUP_MINUTE", "0")),
        ),
    },
}

# Email (spending alerts)
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "no-reply@localhost")

# SMS
SMS_ENABLED = _env_bool("SMS_ENABLED", "true")
SMS_GATEWAY_BACKEND = os.getenv("SMS_GATEWAY_BACKEND", "console").strip().lower()
SMSAPI_TOKEN = os.getenv("SMSAPI_TOKEN", "")
SMSAPI_SERVICE = os.getenv("SMSAPI_SERVICE", "pl")
SMSAPI_SENDER_NAME = os.getenv("SMSAPI_SENDER_NAME", "Paradocks")
SMSAPI_TEST_MODE = _env_bool("SMSAPI_TEST_MODE", "false")
SMSAPI_TIMEOUT_SECONDS = int(os.getenv("SMSAPI_TIMEOUT_SECONDS", "10"))
SMSAPI_WEBHOOK_SECRET = os.getenv("SMSAPI_WEBHOOK_SECRET", "")
SMS_DAILY_LIMIT = int(os.getenv("SMS_DAILY_LIMIT", "500"))
SMS_MONTHLY_LIMIT = int(os.getenv("SMS_MONTHLY_LIMIT", "10000"))
SMS_ALERT_THRESHOLD = int(os.getenv("SMS_ALERT_THRESHOLD", "80"))
SMS_ALERT_EMAIL = os.getenv("SMS_ALERT_EMAIL", "")
SMS_RETENTION_DAYS = int(os.getenv("SMS_RETENTION_DAYS", "90"))
SMS_MARKETING_DEFAULT_OPT_IN = _env_bool("SMS_MARKETING_DEFAULT_OPT_IN", "false")

# Logging
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": os.getenv("DJANGO_LOG_LEVEL", "INFO")},
}
