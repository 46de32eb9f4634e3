"""Container fixtures for a real Redis server using testcontainers.

Only the integration tests request these. They are skipped when no
Docker daemon is reachable, so the rest of the suite runs anywhere.
"""

from collections.abc import Generator
from contextlib import suppress
from typing import NamedTuple

import docker
import pytest
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

DEFAULT_REDIS_IMAGE = "redis:latest"


class RedisContainerInfo(NamedTuple):
    """Connection info for a running container."""

    host: str
    port: int

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.port}/0"


def _docker_available() -> bool:
    try:
        docker.from_env().ping()
    except Exception:  # noqa: BLE001
        return False
    return True


def _start_redis_container(image: str) -> DockerContainer:
    container = DockerContainer(image)
    container.with_exposed_ports(6379)
    container.with_command("redis-server --protected-mode no")
    container.start()
    wait_for_logs(container, "Ready to accept connections")
    return container


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainerInfo]:
    """One Redis container shared by the whole session."""
    if not _docker_available():
        pytest.skip("Docker is not available")

    container = _start_redis_container(DEFAULT_REDIS_IMAGE)
    try:
        yield RedisContainerInfo(
            host=container.get_container_host_ip(),
            port=int(container.get_exposed_port(6379)),
        )
    finally:
        with suppress(Exception):
            container.stop()
