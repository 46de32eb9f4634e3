"""Test fixtures for django-batchex."""

from tests.fixtures.containers import RedisContainerInfo, redis_container
from tests.fixtures.store import (
    RecordingContext,
    RecordingExecutor,
    codec,
    executor,
    fake_client,
    fake_server,
    recording_executor,
    recording_submitter,
    submitter,
)

__all__ = [
    "RecordingContext",
    "RecordingExecutor",
    "RedisContainerInfo",
    "codec",
    "executor",
    "fake_client",
    "fake_server",
    "recording_executor",
    "recording_submitter",
    "redis_container",
    "submitter",
]
