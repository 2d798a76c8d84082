"""AWS ECR registry gateway.

Wraps the boto3 ECR client with:
- Transparent nextToken pagination for repositories and images
- Classification of LimitExceededException as a rate-limit outcome
- Worker-thread dispatch so blocking calls don't stall the event loop
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError, NoRegionError

from ecr_scanner.consts import ECR_PAGE_SIZE, ECR_RATE_LIMIT_ERROR_CODE
from ecr_scanner.models.model_registry import Image, Repository
from ecr_scanner.registry.base_gateway import (
    RegistryConfigurationError,
    RegistryError,
    RegistryGateway,
    ScanRateLimitedError,
)

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class EcrGateway(RegistryGateway):
    """AWS ECR gateway sharing one boto3 client across all calls.

    The client is only read, never mutated, so it is safe to use from
    many concurrent worker threads.
    """

    def __init__(
        self,
        client: BaseClient,
        registry_id: str | None = None,
        page_size: int = ECR_PAGE_SIZE,
    ):
        """Initialize ECR gateway.

        Args:
            client: boto3 ECR client.
            registry_id: AWS account ID of the registry. None = caller's account.
            page_size: maxResults per page.
        """
        self._client = client
        self.registry_id = registry_id
        self.page_size = page_size

    @classmethod
    def from_environment(
        cls,
        region: str | None = None,
        registry_id: str | None = None,
    ) -> "EcrGateway":
        """Build a gateway from the ambient AWS credential chain.

        Args:
            region: AWS region. None = boto3 default resolution.
            registry_id: AWS account ID of the registry.

        Raises:
            RegistryConfigurationError: If credentials or region cannot be resolved.
        """
        logger.debug("loading AWS configuration")
        session = boto3.Session(region_name=region)

        try:
            credentials = session.get_credentials()
        except BotoCoreError as e:
            raise RegistryConfigurationError(f"failed to load AWS credentials: {e}") from e
        if credentials is None:
            raise RegistryConfigurationError("no AWS credentials found in the environment")

        logger.debug("creating AWS ECR client")
        try:
            client = session.client("ecr")
        except NoRegionError as e:
            raise RegistryConfigurationError(f"failed to load AWS configuration: {e}") from e

        return cls(client, registry_id=registry_id)

    @property
    def registry_name(self) -> str:
        """Return registry identifier."""
        return "ecr"

    def _base_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.registry_id:
            params["registryId"] = self.registry_id
        return params

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        """Invoke a client operation in a worker thread.

        Raises:
            RegistryError: Wrapping any botocore failure.
        """
        method = getattr(self._client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            raise RegistryError(f"{operation} failed ({_error_code(e)}): {e}") from e
        except BotoCoreError as e:
            raise RegistryError(f"{operation} failed: {e}") from e

    async def _paginate(
        self,
        operation: str,
        result_key: str,
        params: dict[str, Any],
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield items across pages until no nextToken is returned."""
        params = {**params, "maxResults": self.page_size}
        page = 0

        while True:
            data = await self._call(operation, **params)
            page += 1

            for item in data.get(result_key, []):
                yield item

            next_token = data.get("nextToken")
            if not next_token:
                logger.debug(f"{operation}: pagination exhausted after {page} page(s)")
                break

            params["nextToken"] = next_token

    async def iter_repositories(self) -> AsyncIterator[Repository]:
        """Yield all repositories in the registry.

        Yields:
            Repository objects.

        Raises:
            RegistryError: If any page fetch fails.
        """
        async for data in self._paginate("describe_repositories", "repositories", self._base_params()):
            yield Repository.from_api(data)

    async def iter_images(self, repository: Repository) -> AsyncIterator[Image]:
        """Yield all images in a repository.

        Entries with neither digest nor tag cannot be addressed and are skipped.
        """
        params = {**self._base_params(), "repositoryName": repository.name}
        if repository.registry_id and "registryId" not in params:
            params["registryId"] = repository.registry_id

        async for data in self._paginate("list_images", "imageIds", params):
            image = Image.from_api(data)
            if not image.is_identifiable:
                logger.debug(f"Skipping unidentifiable image entry in {repository.name}")
                continue
            yield image

    async def start_image_scan(self, repository: Repository, image: Image) -> None:
        """Request a basic scan for one image.

        Raises:
            ScanRateLimitedError: On LimitExceededException.
            RegistryError: On any other failure.
        """
        params = {
            **self._base_params(),
            "repositoryName": repository.name,
            "imageId": image.image_id(),
        }
        if repository.registry_id and "registryId" not in params:
            params["registryId"] = repository.registry_id

        try:
            await self._call("start_image_scan", **params)
        except RegistryError as e:
            cause = e.__cause__
            if isinstance(cause, ClientError) and _error_code(cause) == ECR_RATE_LIMIT_ERROR_CODE:
                raise ScanRateLimitedError(str(cause)) from cause
            raise
