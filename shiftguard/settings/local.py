"""Local development settings for ShiftGuard."""

from .base import *  # noqa: F401, F403

DEBUG = True
ALLOWED_HOSTS = ["*"]

# Use console email backend so notifications are visible in logs without SMTP
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Verbose scheduling logs while developing governance rules
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "apps": {"handlers": ["console"], "level": "DEBUG", "propagate": False},
    },
}
