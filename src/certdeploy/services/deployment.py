"""
Certificate deployment service.

Entry point used by the workflow engine once a certificate has been issued:
builds the deployer selected by the node configuration and runs it, tagging
every log line of the run with a deployment id.
"""

import uuid
from typing import Any

from certdeploy.core.logging import logger
from certdeploy.core.trace_context import deployment_id_context
from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.infrastructure.factory import DeployerFactory
from certdeploy.models.deployment import DeployResult, ProviderFactoryOptions


class CertificateDeploymentService:
    """Runs certificate deployments through registered vendor deployers."""

    def __init__(self, factory: DeployerFactory | None = None):
        """Initialize deployment service.

        Args:
            factory: Deployer factory (defaults to one over the process-wide registry)
        """
        self.factory = factory if factory is not None else DeployerFactory()

    async def deploy(
        self,
        options: ProviderFactoryOptions,
        certificate_pem: str,
        private_key_pem: str,
        cancel_token: CancellationToken | None = None,
        log: Any | None = None,
    ) -> DeployResult:
        """Deploy a certificate with the provider named in ``options``.

        Args:
            options: Provider type and untyped configuration
            certificate_pem: PEM certificate chain, leaf first
            private_key_pem: PEM private key
            cancel_token: Cooperative cancellation signal
            log: Optional diagnostic sink for the deployer

        Returns:
            DeployResult on success

        Raises:
            DeploymentError: Or one of its subclasses on failure
        """
        deployment_id = str(uuid.uuid4())
        token = deployment_id_context.set(deployment_id)

        logger.info(f"Deployment started: provider={options.provider}")
        try:
            provider = self.factory.create_deployer(options, log=log)
            result = await provider.deploy(
                certificate_pem, private_key_pem, cancel_token=cancel_token
            )
            logger.info(f"Deployment completed: provider={options.provider}")
            return result

        except Exception:
            logger.exception(f"Deployment failed: provider={options.provider}")
            raise

        finally:
            # Clean up context (avoid leaking the id into the next run)
            deployment_id_context.reset(token)
