"""
Tencent Cloud SSL certificate uploader and shared SDK helpers.

Every Tencent Cloud deployer first uploads the certificate to the SSL
Certificates service and then binds the returned certificate id to its
product (EdgeOne zone hosts, CDN domains, ...).
"""

import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from tencentcloud.common import credential
from tencentcloud.common.exception.tencent_cloud_sdk_exception import (
    TencentCloudSDKException,
)
from tencentcloud.common.profile.client_profile import ClientProfile
from tencentcloud.common.profile.http_profile import HttpProfile
from tencentcloud.ssl.v20191205 import models as ssl_models
from tencentcloud.ssl.v20191205 import ssl_client

from certdeploy.config import settings
from certdeploy.deployment.populate import ProviderConfigModel, RequiredStr
from certdeploy.models.deployment import UploadResult
from certdeploy.models.errors import SDKRequestError

ResponseT = TypeVar("ResponseT")

SSL_INTL_ENDPOINT = "ssl.intl.tencentcloudapi.com"


class TencentCloudAccessConfig(ProviderConfigModel):
    """Tencent Cloud API credentials (``secretId`` / ``secretKey``)."""

    secret_id: RequiredStr
    secret_key: RequiredStr


def create_client_profile(endpoint: str = "") -> ClientProfile:
    """
    Build an SDK client profile.

    Args:
        endpoint: Custom API endpoint; empty keeps the SDK default
    """
    http_profile = HttpProfile()
    if endpoint:
        http_profile.endpoint = endpoint
    return ClientProfile(httpProfile=http_profile)


def ssl_endpoint_for(product_endpoint: str) -> str:
    """SSL API endpoint matching a product endpoint (international site or default)."""
    if product_endpoint.endswith(settings.tencentcloud_endpoint_intl_suffix):
        return SSL_INTL_ENDPOINT
    return ""


def call_sdk(
    log: Any,
    operation: str,
    method: Callable[[Any], ResponseT],
    request: Any,
    *,
    log_request: bool = True,
) -> ResponseT:
    """
    Execute one SDK request, wrapping SDK failures with the operation name.

    Args:
        log: Diagnostic sink
        operation: Operation name used in logs and errors, e.g. ``teo.ModifyHostsCertificate``
        method: Bound SDK client method
        request: SDK request model
        log_request: Whether the request body may be logged (False for key material)

    Raises:
        SDKRequestError: If the SDK raises
    """
    try:
        response = method(request)
    except TencentCloudSDKException as e:
        raise SDKRequestError(operation, e) from e

    if log_request:
        log.debug(f"sdk request '{operation}': request={request.to_json_string()}")
    log.debug(f"sdk request '{operation}': response={response}")
    return response


class TencentCloudSSLUploader:
    """Uploads certificates to Tencent Cloud SSL Certificates."""

    def __init__(
        self,
        secret_id: str,
        secret_key: str,
        endpoint: str = "",
        sdk_client: Any | None = None,
    ):
        """
        Initialize the uploader.

        Args:
            secret_id: Tencent Cloud SecretId
            secret_key: Tencent Cloud SecretKey
            endpoint: SSL API endpoint; empty keeps the SDK default
            sdk_client: Prebuilt ``SslClient`` (tests)
        """
        if sdk_client is None:
            sdk_client = ssl_client.SslClient(
                credential.Credential(secret_id, secret_key),
                "",
                create_client_profile(endpoint),
            )
        self.sdk_client = sdk_client
        self.logger: Any = logger

    async def upload(self, certificate_pem: str, private_key_pem: str) -> UploadResult:
        """
        Upload a certificate, reusing the existing id when Tencent Cloud already
        holds the same certificate.

        Returns:
            UploadResult with the certificate id to bind

        Raises:
            SDKRequestError: If the upload request fails
        """
        request = ssl_models.UploadCertificateRequest()
        request.CertificatePublicKey = certificate_pem
        request.CertificatePrivateKey = private_key_pem
        request.CertificateType = "SVR"
        request.Alias = f"certdeploy_{int(time.time() * 1000)}"
        request.Repeatable = False

        response = call_sdk(
            self.logger,
            "ssl.UploadCertificate",
            self.sdk_client.UploadCertificate,
            request,
            log_request=False,
        )

        if response.RepeatCertId:
            return UploadResult(
                certificate_id=response.RepeatCertId, certificate_name=request.Alias
            )
        return UploadResult(
            certificate_id=response.CertificateId, certificate_name=request.Alias
        )
