"""Tests for the deployer factory."""

import pytest

from certdeploy.deployment.registry import ProviderRegistry, deployer_registry
from certdeploy.infrastructure import DeployerFactory
from certdeploy.infrastructure.providers.flyio import FlyioDeployer
from certdeploy.models.deployment import DeploymentProviderType, ProviderFactoryOptions
from certdeploy.models.errors import ConfigurationError


def test_factory_uses_process_registry():
    """Test the default factory bootstraps the process-wide registry."""
    factory = DeployerFactory()

    assert factory.registry is deployer_registry
    assert factory.registry.frozen
    for provider_type in DeploymentProviderType:
        assert provider_type in factory.registry


def test_factory_creates_registered_deployer():
    """Test the constructor registered for the type is used."""
    factory = DeployerFactory()

    provider = factory.create_deployer(
        ProviderFactoryOptions(
            provider="flyio",
            access_config={"apiToken": "fly-token"},
            extended_config={"appName": "my-app", "hostname": "www.example.com"},
        )
    )

    assert isinstance(provider, FlyioDeployer)
    assert provider.provider_type == "flyio"


def test_factory_unknown_provider():
    """Test an unknown provider type is a configuration error."""
    factory = DeployerFactory()

    with pytest.raises(ConfigurationError) as exc_info:
        factory.create_deployer(ProviderFactoryOptions(provider="unknown-vendor"))

    assert "unsupported deployer provider" in str(exc_info.value)
    assert exc_info.value.fields == ["provider"]


def test_factory_with_custom_registry():
    """Test a custom registry is used for lookups."""
    sentinel = object()
    registry = ProviderRegistry()
    registry.register("custom", lambda options: sentinel)
    registry.freeze()

    factory = DeployerFactory(registry)

    assert factory.create_deployer(ProviderFactoryOptions(provider="custom")) is sentinel


def test_factory_sets_logger(mocker):
    """Test an explicit sink is handed to the deployer."""
    provider = mocker.MagicMock()
    registry = ProviderRegistry()
    registry.register("custom", lambda options: provider)
    registry.freeze()
    sink = object()

    DeployerFactory(registry).create_deployer(
        ProviderFactoryOptions(provider="custom"), log=sink
    )

    provider.set_logger.assert_called_once_with(sink)
