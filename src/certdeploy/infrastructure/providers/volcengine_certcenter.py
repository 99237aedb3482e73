"""
Volcengine Certificate Center uploader and shared OpenAPI helpers.

Volcengine deployers import the certificate into Certificate Center first and
then bind the returned instance id to their product (VOD domains, ...).
Requests go through the SDK's generic signed ``Service`` with one ``ApiInfo``
per action.
"""

import json
from collections.abc import Callable
from typing import Any

from loguru import logger
from volcengine.ApiInfo import ApiInfo
from volcengine.base.Service import Service
from volcengine.Credentials import Credentials
from volcengine.ServiceInfo import ServiceInfo

from certdeploy.config import settings
from certdeploy.deployment.populate import ProviderConfigModel, RequiredStr
from certdeploy.models.deployment import UploadResult
from certdeploy.models.errors import SDKRequestError

CERTCENTER_HOST = "open.volcengineapi.com"
CERTCENTER_SERVICE = "certificate_service"
CERTCENTER_REGION = "cn-beijing"
CERTCENTER_API_VERSION = "2024-10-01"


class VolcengineAccessConfig(ProviderConfigModel):
    """Volcengine API credentials (``accessKeyId`` / ``accessKeySecret``)."""

    access_key_id: RequiredStr
    access_key_secret: RequiredStr


def create_openapi_service(
    access_key_id: str,
    access_key_secret: str,
    *,
    host: str,
    service: str,
    region: str,
    actions: dict[str, tuple[str, str]],
) -> Service:
    """
    Build a signed OpenAPI client.

    Args:
        access_key_id: Volcengine AccessKeyId
        access_key_secret: Volcengine AccessKeySecret
        host: API host
        service: Service name used for request signing
        region: Region used for request signing
        actions: Action name -> (HTTP method, API version)

    Returns:
        SDK ``Service`` able to call every listed action
    """
    timeout = int(settings.http_timeout_seconds)
    service_info = ServiceInfo(
        host,
        {"Accept": "application/json"},
        Credentials(access_key_id, access_key_secret, service, region),
        timeout,
        timeout,
        "https",
    )
    api_info = {
        action: ApiInfo(method, "/", {"Action": action, "Version": version}, {}, {})
        for action, (method, version) in actions.items()
    }
    return Service(service_info, api_info)


def call_openapi(
    log: Any,
    operation: str,
    send: Callable[[], Any],
) -> dict[str, Any]:
    """
    Execute one OpenAPI request and return its ``Result`` object.

    The SDK raises a bare Exception holding the response body on non-2xx
    replies; errors reported inside ``ResponseMetadata`` are raised too.

    Args:
        log: Diagnostic sink
        operation: Operation name used in logs and errors, e.g. ``vod.ListDomain``
        send: Zero-argument callable performing the SDK request

    Raises:
        SDKRequestError: If the request fails or the API reports an error
    """
    try:
        body = send()
        payload = json.loads(body) if body else {}
    except Exception as e:
        raise SDKRequestError(operation, e) from e

    log.debug(f"sdk request '{operation}': response={payload}")

    error = (payload.get("ResponseMetadata") or {}).get("Error")
    if error:
        raise SDKRequestError(
            operation, f"code='{error.get('Code')}', message='{error.get('Message')}'"
        )
    return payload.get("Result") or {}


class VolcengineCertCenterUploader:
    """Imports certificates into Volcengine Certificate Center."""

    def __init__(
        self,
        access_key_id: str,
        access_key_secret: str,
        sdk_client: Any | None = None,
    ):
        if sdk_client is None:
            sdk_client = create_openapi_service(
                access_key_id,
                access_key_secret,
                host=CERTCENTER_HOST,
                service=CERTCENTER_SERVICE,
                region=CERTCENTER_REGION,
                actions={"ImportCertificate": ("POST", CERTCENTER_API_VERSION)},
            )
        self.sdk_client = sdk_client
        self.logger: Any = logger

    async def upload(self, certificate_pem: str, private_key_pem: str) -> UploadResult:
        """
        Import a certificate, reusing the existing instance when Certificate
        Center already holds the same certificate.

        Raises:
            SDKRequestError: If the import request fails
        """
        # REF: https://www.volcengine.com/docs/6638/1365580
        body = {
            "CertificateInfo": {
                "CertificateChain": certificate_pem,
                "PrivateKey": private_key_pem,
            },
            "Repeatable": False,
        }
        result = call_openapi(
            self.logger,
            "certcenter.ImportCertificate",
            lambda: self.sdk_client.json("ImportCertificate", {}, json.dumps(body)),
        )

        certificate_id = result.get("RepeatId") or result.get("InstanceId") or ""
        if not certificate_id:
            raise SDKRequestError(
                "certcenter.ImportCertificate", "response carries no certificate id"
            )
        return UploadResult(certificate_id=certificate_id)
