"""Named batch submitters configured from Django settings.

``submitters`` works like ``django.core.cache.caches``: each alias in the
``BATCH_SUBMITTERS`` setting maps to a submitter built on first access and
kept per thread.

Usage:
    BATCH_SUBMITTERS = {
        "default": {
            "BACKEND": "django_batchex.executor.RedisPipelineExecutor",
            "LOCATION": "redis://127.0.0.1:6379/1",
            "KEY_PREFIX": "myapp",
            "OPTIONS": {
                "serializer": "django_batchex.serializers.json.JSONSerializer",
                "compressor": "django_batchex.compressors.ZlibCompressor",
            },
        },
    }

    from django_batchex.handler import submitters

    submitters["default"].set_values({"greeting": "hello"})
"""

from __future__ import annotations

import logging
from typing import Any

from asgiref.local import Local
from django.conf import settings as django_settings
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.connection import BaseConnectionHandler
from django.utils.module_loading import import_string

from django_batchex.compat import DEFAULT_SERIALIZER, create_codec
from django_batchex.exceptions import InvalidSubmitterBackendError
from django_batchex.submitter import BatchSubmitter

logger = logging.getLogger(__name__)

DEFAULT_SUBMITTER_ALIAS = "default"
DEFAULT_BACKEND = "django_batchex.executor.RedisPipelineExecutor"
DEFAULT_LOCATION = "redis://127.0.0.1:6379/0"


class SubmitterHandler(BaseConnectionHandler):
    settings_name = "BATCH_SUBMITTERS"
    exception_class = InvalidSubmitterBackendError

    def configure_settings(self, settings: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
        if settings is None:
            settings = getattr(django_settings, self.settings_name, None)
        if settings is None:
            settings = {DEFAULT_SUBMITTER_ALIAS: {}}
        if DEFAULT_SUBMITTER_ALIAS not in settings:
            msg = f"You must define a '{DEFAULT_SUBMITTER_ALIAS}' batch submitter in your {self.settings_name} setting."
            raise self.exception_class(msg)

        configured = {}
        for alias, config in settings.items():
            config = dict(config)
            config.setdefault("BACKEND", DEFAULT_BACKEND)
            config.setdefault("LOCATION", DEFAULT_LOCATION)
            config.setdefault("KEY_PREFIX", "")
            config["OPTIONS"] = dict(config.get("OPTIONS") or {})
            configured[alias] = config
        return configured

    def create_connection(self, alias: str) -> BatchSubmitter:
        params = self.settings[alias]
        backend = params["BACKEND"]
        try:
            backend_cls = import_string(backend) if isinstance(backend, str) else backend
        except ImportError as e:
            msg = f"Could not find backend '{backend}': {e}"
            raise self.exception_class(msg) from e

        options = params["OPTIONS"]
        codec_config = options.get("codec")
        codec_kwargs: dict[str, Any] = {}
        if codec_config is None:
            codec_kwargs = {
                "serializer": options.get("serializer", DEFAULT_SERIALIZER),
                "compressor": options.get("compressor"),
                "key_prefix": params["KEY_PREFIX"],
            }
        codec = create_codec(codec_config, **codec_kwargs)
        executor = backend_cls(params["LOCATION"], **options)

        logger.debug("Created batch submitter %r using %r", alias, executor)
        return BatchSubmitter(executor, codec)


submitters = SubmitterHandler()


@receiver(setting_changed)
def reset_submitters(*, setting: str, **kwargs: Any) -> None:
    """Rebuild submitters when tests override BATCH_SUBMITTERS."""
    if setting == SubmitterHandler.settings_name:
        submitters.close_all()
        submitters._settings = submitters.settings = submitters.configure_settings(None)
        submitters._connections = Local(submitters.thread_critical)
