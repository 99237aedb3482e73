"""
Fly.io deployer.

Imports the certificate as a custom certificate for one hostname of a Fly.io
app through the Machines API.

Access config:
    apiToken: Fly.io API token
Extended config:
    appName: Fly.io app name (required)
    hostname: certificate hostname (required)
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from certdeploy.config import settings
from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.deployment.populate import (
    ProviderConfigModel,
    RequiredStr,
    get_string,
    populate,
    require,
)
from certdeploy.deployment.registry import deployer
from certdeploy.domain.providers.deployer_base import DeployerProvider
from certdeploy.models.deployment import (
    DeploymentProviderType,
    DeploymentStage,
    DeployResult,
    ProviderFactoryOptions,
)
from certdeploy.models.errors import DeploymentError, SDKRequestError


class FlyioAccessConfig(ProviderConfigModel):
    api_token: RequiredStr


@dataclass(frozen=True)
class FlyioConfig:
    api_token: str
    app_name: str = ""
    hostname: str = ""


class FlyioDeployer(DeployerProvider):
    """Deploys certificates to a Fly.io app hostname."""

    provider_type = DeploymentProviderType.FLYIO.value

    def __init__(self, config: FlyioConfig, base_url: str | None = None):
        super().__init__()
        self.config = config
        self.base_url = (base_url or settings.flyio_api_base_url).rstrip("/")

    async def deploy(
        self,
        certificate_pem: str,
        private_key_pem: str,
        cancel_token: CancellationToken | None = None,
    ) -> DeployResult:
        try:
            require(self.config.app_name, "appName")
            require(self.config.hostname, "hostname")

            if cancel_token is not None:
                cancel_token.raise_if_cancelled(DeploymentStage.UPDATING_DOMAINS)
            await self.create_custom_certificate(certificate_pem, private_key_pem)

        except DeploymentError as e:
            self.logger.error(f"Deployment failed: {e}")
            raise

        return DeployResult()

    async def create_custom_certificate(
        self, certificate_pem: str, private_key_pem: str
    ) -> dict[str, Any]:
        """
        Import a custom certificate for the configured hostname.

        Returns:
            Decoded API response (hostname, status, certificates)

        Raises:
            SDKRequestError: If the request fails or returns an error status
        """
        # REF: https://fly.io/docs/machines/api/certificates/
        app_name = quote(self.config.app_name, safe="")
        url = f"{self.base_url}/apps/{app_name}/certificates/custom"
        payload = {
            "hostname": self.config.hostname,
            "fullchain": certificate_pem,
            "private_key": private_key_pem,
        }

        try:
            async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds
            ) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.config.api_token}"},
                )
                response.raise_for_status()
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SDKRequestError(
                "flyio.CreateCustomCertificate",
                e,
                stage=DeploymentStage.UPDATING_DOMAINS,
            ) from e

        self.logger.debug(
            f"sdk request 'flyio.CreateCustomCertificate': "
            f"hostname={self.config.hostname}, response={result}"
        )
        self.logger.info(
            f"custom certificate imported for {self.config.hostname} "
            f"(app {self.config.app_name})"
        )
        return result


@deployer(DeploymentProviderType.FLYIO)
def create_flyio_deployer(options: ProviderFactoryOptions) -> FlyioDeployer:
    access = populate(options.access_config, FlyioAccessConfig)
    extended = options.extended_config

    return FlyioDeployer(
        FlyioConfig(
            api_token=access.api_token,
            app_name=get_string(extended, "appName"),
            hostname=get_string(extended, "hostname"),
        )
    )
