"""
Deployer provider registry.

Maps a provider type identifier to the constructor that builds the provider
from ProviderFactoryOptions. The table is filled once at startup and is
read-only afterwards, so lookups take no lock.

Vendor modules self-register with the ``deployer`` decorator, which only
records a pending registration. ``bootstrap_registry`` imports the vendor
package and runs a validation pass over everything recorded, surfacing all
duplicates at once as a single RegistryStartupError.

Usage:
    from certdeploy.deployment.registry import deployer

    @deployer("flyio")
    def create_flyio_deployer(options: ProviderFactoryOptions) -> DeployerProvider:
        ...
"""

import importlib
import threading
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, TypeAlias

from loguru import logger

from certdeploy.models.errors import DuplicateProviderTypeError, RegistryStartupError

if TYPE_CHECKING:
    from certdeploy.domain.providers.deployer_base import DeployerProvider
    from certdeploy.models.deployment import ProviderFactoryOptions

ProviderConstructor: TypeAlias = Callable[
    ["ProviderFactoryOptions"], "DeployerProvider"
]

# Package whose import triggers the vendor ``@deployer`` decorators
BUILTIN_PROVIDERS_PACKAGE = "certdeploy.infrastructure.providers"


class ProviderRegistry:
    """Process-wide table of deployer constructors keyed by provider type."""

    def __init__(self) -> None:
        self._constructors: dict[str, ProviderConstructor] = {}
        self._lock = threading.Lock()
        self._frozen = False

    def register(self, provider_type: str, constructor: ProviderConstructor) -> None:
        """
        Register a constructor for a provider type.

        Args:
            provider_type: Registry key
            constructor: Callable building the provider from factory options

        Raises:
            DuplicateProviderTypeError: If the type is already registered
            RegistryStartupError: If the registry has been frozen
        """
        key = str(provider_type)
        with self._lock:
            if self._frozen:
                raise RegistryStartupError(
                    f"cannot register '{key}': deployer registry is frozen"
                )
            if key in self._constructors:
                raise DuplicateProviderTypeError(key)
            self._constructors[key] = constructor

        logger.debug(f"Registered deployer provider: {key}")

    def must_register(
        self, provider_type: str, constructor: ProviderConstructor
    ) -> None:
        """
        Register a constructor, treating any failure as a startup fault.

        Raises:
            RegistryStartupError: If the registration fails for any reason
        """
        try:
            self.register(provider_type, constructor)
        except DuplicateProviderTypeError as e:
            raise RegistryStartupError([e]) from e

    def register_all(
        self, registrations: Iterable[tuple[str, ProviderConstructor]]
    ) -> None:
        """
        Validation pass: attempt every registration, then report all failures.

        Args:
            registrations: (provider type, constructor) pairs

        Raises:
            RegistryStartupError: Listing every registration that failed
        """
        failures: list[Exception] = []
        for provider_type, constructor in registrations:
            try:
                self.register(provider_type, constructor)
            except (DuplicateProviderTypeError, RegistryStartupError) as e:
                logger.error(f"Deployer registration failed: {e}")
                failures.append(e)

        if failures:
            raise RegistryStartupError(failures)

    def freeze(self) -> None:
        """Make the registry read-only."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, provider_type: str) -> ProviderConstructor | None:
        """
        Get the constructor registered for a provider type.

        Returns:
            The constructor, or None if the type is unknown
        """
        return self._constructors.get(str(provider_type))

    def provider_types(self) -> list[str]:
        """Registered provider types, sorted."""
        return sorted(self._constructors)

    def __contains__(self, provider_type: object) -> bool:
        return str(provider_type) in self._constructors

    def __len__(self) -> int:
        return len(self._constructors)


# Pending self-registrations recorded by the ``deployer`` decorator
_pending_registrations: list[tuple[str, ProviderConstructor]] = []

# Process-wide registry, filled by bootstrap_registry()
deployer_registry = ProviderRegistry()


def deployer(provider_type: str) -> Callable[[ProviderConstructor], ProviderConstructor]:
    """
    Decorator recording a vendor constructor for registration at startup.

    Args:
        provider_type: Registry key for the decorated constructor
    """

    def decorator(constructor: ProviderConstructor) -> ProviderConstructor:
        _pending_registrations.append((str(provider_type), constructor))
        return constructor

    return decorator


def pending_registrations() -> list[tuple[str, ProviderConstructor]]:
    """Registrations recorded so far, in declaration order."""
    return list(_pending_registrations)


def bootstrap_registry(registry: ProviderRegistry | None = None) -> ProviderRegistry:
    """
    Fill and freeze a registry with every self-registered vendor deployer.

    Calling it again on an already frozen registry is a no-op.

    Args:
        registry: Registry to fill (defaults to the process-wide one)

    Returns:
        The frozen registry

    Raises:
        RegistryStartupError: If any registration failed
    """
    registry = registry if registry is not None else deployer_registry
    if registry.frozen:
        return registry

    importlib.import_module(BUILTIN_PROVIDERS_PACKAGE)

    registry.register_all(pending_registrations())
    registry.freeze()

    logger.info(
        f"Deployer registry ready with {len(registry)} providers: "
        f"{', '.join(registry.provider_types())}"
    )
    return registry
