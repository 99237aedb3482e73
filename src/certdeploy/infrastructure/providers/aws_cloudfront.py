"""
AWS CloudFront deployer.

Imports the certificate into ACM (CloudFront only accepts viewer certificates
from us-east-1) and points one distribution's viewer certificate at it.

Extended config:
    distributionId: CloudFront distribution id (required)
    certificateArn: existing ACM certificate to re-import into (optional)
    region: ACM region (optional, defaults to us-east-1)
"""

from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

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
    UploadResult,
)
from certdeploy.models.errors import (
    DeploymentError,
    SDKRequestError,
    UploadError,
)
from certdeploy.utils.certs import split_certificate_chain

DEFAULT_MINIMUM_PROTOCOL_VERSION = "TLSv1.2_2021"


class AWSAccessConfig(ProviderConfigModel):
    """AWS IAM credentials (``accessKeyId`` / ``secretAccessKey``)."""

    access_key_id: RequiredStr
    secret_access_key: RequiredStr


@dataclass(frozen=True)
class AWSCloudFrontConfig:
    access_key_id: str
    secret_access_key: str
    distribution_id: str = ""
    certificate_arn: str = ""
    region: str = ""


class AWSCloudFrontDeployer(DeployerProvider):
    """Deploys certificates to the viewer certificate of a CloudFront distribution."""

    provider_type = DeploymentProviderType.AWS_CLOUDFRONT.value

    def __init__(
        self,
        config: AWSCloudFrontConfig,
        *,
        acm_client: Any | None = None,
        cloudfront_client: Any | None = None,
    ):
        super().__init__()
        self.config = config

        region = config.region or settings.aws_cloudfront_acm_region
        credentials = {
            "aws_access_key_id": config.access_key_id,
            "aws_secret_access_key": config.secret_access_key,
        }
        if acm_client is None:
            acm_client = boto3.client("acm", region_name=region, **credentials)
        if cloudfront_client is None:
            cloudfront_client = boto3.client(
                "cloudfront", region_name=region, **credentials
            )
        self.acm_client = acm_client
        self.cloudfront_client = cloudfront_client

    async def deploy(
        self,
        certificate_pem: str,
        private_key_pem: str,
        cancel_token: CancellationToken | None = None,
    ) -> DeployResult:
        try:
            require(self.config.distribution_id, "distributionId")

            if cancel_token is not None:
                cancel_token.raise_if_cancelled(DeploymentStage.UPLOADING_CERTIFICATE)
            upload = await self._upload(certificate_pem, private_key_pem)
            self.logger.info(f"ssl certificate uploaded: {upload}")

            if cancel_token is not None:
                cancel_token.raise_if_cancelled(DeploymentStage.UPDATING_DOMAINS)
            await self.update_distribution(upload.certificate_id)

        except DeploymentError as e:
            self.logger.error(f"Deployment failed: {e}")
            raise

        return DeployResult()

    async def upload_certificate(
        self, certificate_pem: str, private_key_pem: str
    ) -> UploadResult:
        """
        Import the certificate into ACM.

        Returns:
            UploadResult whose id is the ACM certificate ARN

        Raises:
            UploadError: If the chain cannot be parsed or ACM rejects it
        """
        try:
            server_pem, intermediates_pem = split_certificate_chain(certificate_pem)
        except ValueError as e:
            raise UploadError(f"failed to upload certificate file: {e}") from e

        # REF: https://docs.aws.amazon.com/acm/latest/APIReference/API_ImportCertificate.html
        params: dict[str, Any] = {
            "Certificate": server_pem.encode(),
            "PrivateKey": private_key_pem.encode(),
        }
        if intermediates_pem:
            params["CertificateChain"] = intermediates_pem.encode()
        if self.config.certificate_arn:
            params["CertificateArn"] = self.config.certificate_arn

        try:
            response = self.acm_client.import_certificate(**params)
        except (BotoCoreError, ClientError) as e:
            raise UploadError(
                f"failed to upload certificate file: "
                f"{SDKRequestError('acm.ImportCertificate', e)}"
            ) from e

        self.logger.debug(f"sdk request 'acm.ImportCertificate': response={response}")
        return UploadResult(certificate_id=response["CertificateArn"])

    async def _upload(self, certificate_pem: str, private_key_pem: str) -> UploadResult:
        try:
            return await self.upload_certificate(certificate_pem, private_key_pem)
        except UploadError:
            raise
        except Exception as e:
            raise UploadError(f"failed to upload certificate file: {e}") from e

    async def update_distribution(self, certificate_arn: str) -> None:
        """
        Point the distribution's viewer certificate at an ACM certificate.

        Skips the update when the distribution already serves the ARN.

        Raises:
            SDKRequestError: If a CloudFront request fails
        """
        distribution_id = self.config.distribution_id

        # REF: https://docs.aws.amazon.com/cloudfront/latest/APIReference/API_GetDistributionConfig.html
        try:
            response = self.cloudfront_client.get_distribution_config(
                Id=distribution_id
            )
        except (BotoCoreError, ClientError) as e:
            raise SDKRequestError(
                "cloudfront.GetDistributionConfig",
                e,
                stage=DeploymentStage.UPDATING_DOMAINS,
            ) from e

        distribution_config = response["DistributionConfig"]
        viewer_certificate = dict(distribution_config.get("ViewerCertificate") or {})
        if viewer_certificate.get("ACMCertificateArn") == certificate_arn:
            self.logger.info(
                f"distribution {distribution_id} already serves {certificate_arn}"
            )
            return

        # the default certificate carries protocol settings that do not apply to SNI
        if viewer_certificate.get("CloudFrontDefaultCertificate"):
            viewer_certificate = {}
        for legacy_key in ("IAMCertificateId", "Certificate", "CertificateSource"):
            viewer_certificate.pop(legacy_key, None)
        viewer_certificate.update(
            {
                "ACMCertificateArn": certificate_arn,
                "SSLSupportMethod": viewer_certificate.get("SSLSupportMethod")
                or "sni-only",
                "MinimumProtocolVersion": viewer_certificate.get(
                    "MinimumProtocolVersion"
                )
                or DEFAULT_MINIMUM_PROTOCOL_VERSION,
                "CloudFrontDefaultCertificate": False,
            }
        )
        distribution_config["ViewerCertificate"] = viewer_certificate

        # REF: https://docs.aws.amazon.com/cloudfront/latest/APIReference/API_UpdateDistribution.html
        try:
            self.cloudfront_client.update_distribution(
                Id=distribution_id,
                IfMatch=response["ETag"],
                DistributionConfig=distribution_config,
            )
        except (BotoCoreError, ClientError) as e:
            raise SDKRequestError(
                "cloudfront.UpdateDistribution",
                e,
                stage=DeploymentStage.UPDATING_DOMAINS,
            ) from e

        self.logger.info(
            f"distribution {distribution_id} updated to serve {certificate_arn}"
        )


@deployer(DeploymentProviderType.AWS_CLOUDFRONT)
def create_aws_cloudfront_deployer(
    options: ProviderFactoryOptions,
) -> AWSCloudFrontDeployer:
    access = populate(options.access_config, AWSAccessConfig)
    extended = options.extended_config

    return AWSCloudFrontDeployer(
        AWSCloudFrontConfig(
            access_key_id=access.access_key_id,
            secret_access_key=access.secret_access_key,
            distribution_id=get_string(extended, "distributionId"),
            certificate_arn=get_string(extended, "certificateArn"),
            region=get_string(extended, "region"),
        )
    )
