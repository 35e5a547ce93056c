"""
Production settings for ShiftGuard.

Runs behind a TLS-terminating proxy on Fly.io; web, worker and beat processes
share this module and differ only in their start command.
"""

from .base import *  # noqa: F401, F403

DEBUG = False

# The edge proxy redirects to HTTPS and forwards plain HTTP internally
SECURE_SSL_REDIRECT = False
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["shiftguard.fly.dev", "localhost"])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=["https://shiftguard.fly.dev"])

# Persistent connections; Celery workers hold theirs for the task lifetime
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)

EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Business-rule overrides per deployment
SHIFTGUARD = {
    **SHIFTGUARD,
    "OVERTIME_DAILY_HOURS": env.int("SHIFTGUARD_OVERTIME_DAILY_HOURS", default=SHIFTGUARD["OVERTIME_DAILY_HOURS"]),
    "REVALIDATE_ON_APPROVAL": env.bool(
        "SHIFTGUARD_REVALIDATE_ON_APPROVAL", default=SHIFTGUARD["REVALIDATE_ON_APPROVAL"]
    ),
}

LOG_LEVEL = env("LOG_LEVEL", default="INFO")

# Line-per-event logging to stdout; the platform collects it
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(levelname)s %(asctime)s %(name)s %(process)d %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "celery": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
