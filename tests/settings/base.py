"""Base Django settings for tests."""

SECRET_KEY = "django_tests_secret_key"

INSTALLED_APPS = [
    "django.contrib.contenttypes",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    },
}

USE_TZ = False

# Tests never reach these servers unless they patch in a client or start a container.
# The 'doesnotexist' submitter points to an invalid port for testing failure handling.
BATCH_SUBMITTERS = {
    "default": {
        "BACKEND": "django_batchex.executor.RedisPipelineExecutor",
        "LOCATION": "redis://127.0.0.1:6379/1",
    },
    "doesnotexist": {
        "BACKEND": "django_batchex.executor.RedisPipelineExecutor",
        "LOCATION": "redis://127.0.0.1:56379/1",
    },
    "with_prefix": {
        "BACKEND": "django_batchex.executor.RedisPipelineExecutor",
        "LOCATION": "redis://127.0.0.1:6379/1",
        "KEY_PREFIX": "test-prefix",
        "OPTIONS": {
            "serializer": "django_batchex.serializers.json.JSONSerializer",
        },
    },
}
