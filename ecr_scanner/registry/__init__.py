"""Registry gateways for listing repositories/images and requesting scans."""

from ecr_scanner.registry.base_gateway import (
    RegistryConfigurationError,
    RegistryError,
    RegistryGateway,
    ScanRateLimitedError,
)
from ecr_scanner.registry.ecr_gateway import EcrGateway

__all__ = [
    "EcrGateway",
    "RegistryConfigurationError",
    "RegistryError",
    "RegistryGateway",
    "ScanRateLimitedError",
]
