"""Pytest configuration for django-batchex tests."""

import sys
from pathlib import Path

from tests.fixtures import (
    codec,
    executor,
    fake_client,
    fake_server,
    recording_executor,
    recording_submitter,
    redis_container,
    submitter,
)

# Re-export fixtures so pytest can discover them
__all__ = [
    "codec",
    "executor",
    "fake_client",
    "fake_server",
    "recording_executor",
    "recording_submitter",
    "redis_container",
    "submitter",
]


def pytest_configure(config):
    """Add tests directory to Python path."""
    sys.path.insert(0, str(Path(__file__).absolute().parent))
