"""Pytest configuration and fixtures."""

import asyncio
import logging
import os

import pytest
from botocore.exceptions import ClientError

from ecr_scanner.consts import ENV_PREFIX
from ecr_scanner.metrics.scan_counters import ScanCounters
from ecr_scanner.models.model_registry import Image, Repository
from ecr_scanner.registry.base_gateway import RegistryError, RegistryGateway


def make_client_error(code: str, operation: str = "StartImageScan", message: str = "") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError(
        {"Error": {"Code": code, "Message": message or f"{code} raised"}},
        operation,
    )


class FakeGateway(RegistryGateway):
    """In-memory registry for reconciler tests.

    Scan errors are keyed by image tag (or digest for untagged images).
    """

    def __init__(
        self,
        repositories: dict[str, list[Image]],
        scan_errors: dict[str, Exception] | None = None,
        image_listing_errors: dict[str, Exception] | None = None,
        repository_error: Exception | None = None,
        scan_delay: float = 0.0,
    ):
        self.repositories = repositories
        self.scan_errors = scan_errors or {}
        self.image_listing_errors = image_listing_errors or {}
        self.repository_error = repository_error
        self.scan_delay = scan_delay
        self.scan_calls: list[tuple[str, Image]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def registry_name(self) -> str:
        return "fake"

    async def iter_repositories(self):
        for name in self.repositories:
            await asyncio.sleep(0)
            yield Repository(name=name)
        if self.repository_error is not None:
            raise self.repository_error

    async def iter_images(self, repository: Repository):
        for image in self.repositories[repository.name]:
            await asyncio.sleep(0)
            yield image
        if repository.name in self.image_listing_errors:
            raise self.image_listing_errors[repository.name]

    async def start_image_scan(self, repository: Repository, image: Image) -> None:
        self.scan_calls.append((repository.name, image))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.scan_delay)
            error = self.scan_errors.get(image.tag or image.digest)
            if error is not None:
                raise error
        finally:
            self.in_flight -= 1


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any AWS_ECR_SCANNER_* variables leaking in from the host."""
    for key in list(os.environ):
        if key.upper().startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """configure_logging replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def counters() -> ScanCounters:
    return ScanCounters()


@pytest.fixture
def image_a() -> Image:
    return Image(digest="sha256:" + "a" * 64, tag="a")


@pytest.fixture
def image_b() -> Image:
    return Image(digest="sha256:" + "b" * 64, tag="b")


@pytest.fixture
def registry_error() -> RegistryError:
    return RegistryError("start_image_scan failed (ImageNotFoundException)")
