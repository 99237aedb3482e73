"""
Process startup.

Call ``initialize()`` once before serving deployments: it routes vendor SDK
logging into loguru and fills and freezes the deployer registry. A duplicate
provider type aborts startup with RegistryStartupError.
"""

import logging

from certdeploy.config import settings
from certdeploy.core.logging import intercept_standard_logging, logger
from certdeploy.deployment.registry import ProviderRegistry, bootstrap_registry


def initialize(
    registry: ProviderRegistry | None = None,
    sdk_log_level: int = logging.WARNING,
) -> ProviderRegistry:
    """
    Prepare the process for running deployments.

    Args:
        registry: Registry to bootstrap (defaults to the process-wide one)
        sdk_log_level: Minimum level forwarded from vendor SDK loggers

    Returns:
        The frozen registry

    Raises:
        RegistryStartupError: If any deployer registration failed
    """
    intercept_standard_logging(sdk_log_level)
    registry = bootstrap_registry(registry)
    logger.info(
        f"{settings.project_name} {settings.project_version} initialized with "
        f"providers: {', '.join(registry.provider_types())}"
    )
    return registry
