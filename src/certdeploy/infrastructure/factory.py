"""
Deployer factory for provider selection.

Builds a ready-to-run deployer from the options handed over by the calling
workflow. Providers are selected by looking up their type in the registry;
there is no hard-coded list here.

Usage:
    from certdeploy.infrastructure import DeployerFactory
    from certdeploy.models import ProviderFactoryOptions

    factory = DeployerFactory()
    provider = factory.create_deployer(
        ProviderFactoryOptions(
            provider="tencentcloud-eo",
            access_config={"secretId": "...", "secretKey": "..."},
            extended_config={"zoneId": "zone-1", "domains": "www.example.com"},
        )
    )
    await provider.deploy(certificate_pem, private_key_pem)
"""

from typing import Any

from loguru import logger

from certdeploy.deployment.registry import ProviderRegistry, bootstrap_registry
from certdeploy.domain.providers.deployer_base import DeployerProvider
from certdeploy.models.deployment import ProviderFactoryOptions
from certdeploy.models.errors import ConfigurationError


class DeployerFactory:
    """
    Factory for creating deployer instances.

    Provides dependency injection of the provider registry.
    """

    def __init__(self, registry: ProviderRegistry | None = None):
        """
        Initialize deployer factory.

        Args:
            registry: Registry to resolve provider types against.
                     If None, the process-wide registry is bootstrapped.
        """
        self.registry = bootstrap_registry(registry)

        logger.info(
            f"Initialized DeployerFactory with providers: "
            f"{', '.join(self.registry.provider_types())}"
        )

    def create_deployer(
        self,
        options: ProviderFactoryOptions,
        log: Any | None = None,
    ) -> DeployerProvider:
        """
        Build the deployer registered for ``options.provider``.

        Args:
            options: Provider type and untyped configuration
            log: Optional diagnostic sink handed to ``set_logger``

        Returns:
            Configured DeployerProvider

        Raises:
            ConfigurationError: If the provider type is unknown or its
                configuration is invalid
        """
        constructor = self.registry.lookup(options.provider)
        if constructor is None:
            raise ConfigurationError(
                f"unsupported deployer provider: '{options.provider}'",
                fields=["provider"],
            )

        provider = constructor(options)
        if log is not None:
            provider.set_logger(log)

        logger.debug(f"Created deployer for provider: {options.provider}")
        return provider
