"""
Django settings for example project.

Minimal settings for seeding a local Redis with batched writes.
"""

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = "django-insecure-example-key-do-not-use-in-production"  # noqa: S105

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    },
}

# Batch submitter configuration
BATCH_SUBMITTERS = {
    "default": {
        "BACKEND": "django_batchex.executor.RedisPipelineExecutor",
        "LOCATION": "redis://127.0.0.1:6379/0",
        "KEY_PREFIX": "example",
        "OPTIONS": {
            "serializer": "django_batchex.serializers.json.JSONSerializer",
        },
    },
    "valkey": {
        "BACKEND": "django_batchex.executor.ValkeyPipelineExecutor",
        "LOCATION": "valkey://127.0.0.1:6379/1",
        "OPTIONS": {
            "transaction": True,
        },
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"console": {"class": "logging.StreamHandler"}},
    "loggers": {"django_batchex": {"handlers": ["console"], "level": "DEBUG"}},
}

TIME_ZONE = "UTC"
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
