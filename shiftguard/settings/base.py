"""
Base Django settings for ShiftGuard.

All environment-specific settings (local.py, production.py, test.py) extend this module.
Values that MUST be overridden per environment are marked with # REQUIRED OVERRIDE.
"""

from pathlib import Path

import environ
from celery.schedules import crontab

# ---------------------------------------------------------------------------
# Path configuration
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# django-environ reads from .env file or OS environment
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
)

environ.Env.read_env(BASE_DIR / ".env")

# ---------------------------------------------------------------------------
# Security
# ---------------------------------------------------------------------------
SECRET_KEY = env("SECRET_KEY")  # REQUIRED OVERRIDE
DEBUG = env("DEBUG")
ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# ---------------------------------------------------------------------------
# Application definition
# ---------------------------------------------------------------------------
DJANGO_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

THIRD_PARTY_APPS = [
    "channels",
    "django_celery_beat",
]

LOCAL_APPS = [
    "apps.accounts",
    "apps.locations",
    "apps.scheduling",
    "apps.workforce",
    "apps.notifications",
    "apps.analytics",
    "apps.audit",
    "core",
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "shiftguard.urls"

# ---------------------------------------------------------------------------
# Templates (Django admin only; the scheduling API speaks JSON)
# ---------------------------------------------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# ---------------------------------------------------------------------------
# ASGI / Channels
# ---------------------------------------------------------------------------
ASGI_APPLICATION = "shiftguard.asgi.application"

# One Redis serves the channel layer, the Celery broker and the result backend
REDIS_URL = env("REDIS_URL", default="redis://localhost:6379/0")

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {
            "hosts": [REDIS_URL],
        },
    },
}

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": env("DB_NAME"),
        "USER": env("DB_USER"),
        "PASSWORD": env("DB_PASSWORD"),
        "HOST": env("DB_HOST"),
        "PORT": env("DB_PORT"),
    }
}

DATABASES["default"]["ATOMIC_REQUESTS"] = True  # Wrap every request in a transaction

# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
AUTH_USER_MODEL = "accounts.User"

LOGIN_URL = "/admin/login/"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# ---------------------------------------------------------------------------
# Internationalization & Timezone
# ---------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"  # Server runs in UTC; shift times are location wall-clock values
USE_I18N = True
USE_TZ = True

# ---------------------------------------------------------------------------
# Static files
# ---------------------------------------------------------------------------
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ---------------------------------------------------------------------------
# Celery
# ---------------------------------------------------------------------------
CELERY_BROKER_URL = REDIS_URL
CELERY_RESULT_BACKEND = REDIS_URL
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"

# Queues: default for schedule housekeeping, workforce for attendance scans
CELERY_TASK_QUEUES = {
    "default": {},
    "workforce": {},
}
CELERY_TASK_DEFAULT_QUEUE = "default"
CELERY_TASK_ROUTES = {
    "workforce.*": {"queue": "workforce"},
}

# Seeded into django_celery_beat on first start
CELERY_BEAT_SCHEDULE = {
    "detect-no-shows": {
        "task": "workforce.detect_no_shows",
        "schedule": crontab(minute="*/15"),
    },
    "auto-lock-periods": {
        "task": "scheduling.auto_lock_periods",
        "schedule": crontab(minute=0),
    },
}

# ---------------------------------------------------------------------------
# ShiftGuard Business Rules (override in settings if needed)
# ---------------------------------------------------------------------------
SHIFTGUARD = {
    # Weekday that opens a schedule period (0=Monday, ISO weeks)
    "WEEK_STARTS_ON": 0,
    # "Publish week" skips shifts dated before today; "publish day" never does
    "PUBLISH_WEEK_EXCLUDES_PAST": True,
    # Re-run the operating-hours check when a change request is approved
    # (reported as a warning, never blocks the approval)
    "REVALIDATE_ON_APPROVAL": True,
    # Workforce policy defaults when no company/location policy row exists
    "DEFAULT_GRACE_MINUTES": 60,
    "DEFAULT_LATE_THRESHOLD_MINUTES": 15,
    "DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES": 15,
    "DEFAULT_UNSCHEDULED_CLOCK_IN_POLICY": "exception_ticket",
    "DEFAULT_REQUIRE_REASON_ON_LOCKED_EDITS": True,
    # Worked hours in a day above which an overtime exception is raised
    "OVERTIME_DAILY_HOURS": 12,
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
