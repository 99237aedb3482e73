"""
Abstract base class for deployment providers.

This module defines the contract that every vendor deployer must follow.
Deployers are selected by provider type through the registry, never by
isinstance checks.
"""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from certdeploy.core.logging import NullLogger
from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.models.deployment import DeployResult


class DeployerProvider(ABC):
    """
    Base class for certificate deployers.

    Implementations hold only their immutable config and SDK client handles,
    so ``deploy`` can be called any number of times.
    """

    provider_type: str = ""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(deployer=self.provider_type)

    def set_logger(self, sink: Any | None) -> None:
        """
        Replace the diagnostic sink.

        Args:
            sink: A loguru-compatible logger; None silences diagnostics
        """
        self.logger = sink if sink is not None else NullLogger()

    @abstractmethod
    async def deploy(
        self,
        certificate_pem: str,
        private_key_pem: str,
        cancel_token: CancellationToken | None = None,
    ) -> DeployResult:
        """
        Deploy a certificate to the vendor.

        Args:
            certificate_pem: PEM certificate chain, leaf first
            private_key_pem: PEM private key
            cancel_token: Cooperative cancellation signal

        Returns:
            DeployResult on success

        Raises:
            DeploymentError: Or one of its subclasses on failure
        """
        pass
