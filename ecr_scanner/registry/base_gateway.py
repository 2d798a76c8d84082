"""Base registry gateway defining the contract the reconciler depends on."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from ecr_scanner.models.model_registry import Image, Repository


class RegistryError(Exception):
    """Raised when a registry API call fails."""


class ScanRateLimitedError(RegistryError):
    """Raised when the registry refuses a scan because the image was scanned recently."""


class RegistryConfigurationError(Exception):
    """Raised when the registry client cannot be built (credentials, region)."""


class RegistryGateway(ABC):
    """Abstract base class for container registries.

    Implementations must follow pagination transparently and translate
    vendor errors into RegistryError / ScanRateLimitedError.
    """

    @property
    @abstractmethod
    def registry_name(self) -> str:
        """Return the registry identifier used in logs (e.g., 'ecr')."""
        ...

    def iter_repositories(self) -> AsyncGenerator[Repository, None]:
        """Yield every repository in the registry.

        Raises:
            RegistryError: If any page fetch fails.

        Note:
            Not marked abstract due to Python ABC limitations with async generators.
        """
        raise NotImplementedError("Subclasses must implement iter_repositories()")

    def iter_images(self, repository: Repository) -> AsyncGenerator[Image, None]:
        """Yield every image in a repository.

        Raises:
            RegistryError: If any page fetch fails.
        """
        raise NotImplementedError("Subclasses must implement iter_images()")

    @abstractmethod
    async def start_image_scan(self, repository: Repository, image: Image) -> None:
        """Request a scan for a single image.

        Raises:
            ScanRateLimitedError: If the image was already scanned within the cooldown.
            RegistryError: On any other failure.
        """
        ...
