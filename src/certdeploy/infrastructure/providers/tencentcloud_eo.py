"""
Tencent Cloud EdgeOne (TEO) deployer.

Uploads the certificate to Tencent Cloud SSL, resolves the zone's
acceleration domains and binds the certificate to all of them with a single
``ModifyHostsCertificate`` call.

Extended config:
    zoneId: EdgeOne zone id (required)
    matchPattern: exact | wildcard | certsan (default exact)
    domains: acceleration domains, ``;`` separated or a list
    endpoint: TEO API endpoint (optional, e.g. teo.intl.tencentcloudapi.com)
"""

from dataclasses import dataclass, field
from typing import Any

from tencentcloud.common import credential
from tencentcloud.teo.v20220901 import models as teo_models
from tencentcloud.teo.v20220901 import teo_client

from certdeploy.deployment.pipeline import DomainCertificateDeployer
from certdeploy.deployment.populate import (
    get_string,
    get_string_list,
    populate,
    require,
)
from certdeploy.deployment.registry import deployer
from certdeploy.infrastructure.providers.tencentcloud_ssl import (
    TencentCloudAccessConfig,
    TencentCloudSSLUploader,
    call_sdk,
    create_client_profile,
    ssl_endpoint_for,
)
from certdeploy.models.deployment import (
    DeploymentProviderType,
    DomainMatchPattern,
    InventoryEntry,
    InventoryPage,
    ProviderFactoryOptions,
    UpdateStrategy,
    UploadResult,
)

# DescribeAccelerationDomains accepts at most 200 items per page
ACCELERATION_DOMAINS_PAGE_SIZE = 200


@dataclass(frozen=True)
class TencentCloudEOConfig:
    secret_id: str
    secret_key: str
    zone_id: str = ""
    match_pattern: str = ""
    domains: list[str] = field(default_factory=list)
    endpoint: str = ""


def _bound_certificate_id(domain: Any) -> str:
    """Certificate id served by an acceleration domain, empty unless exactly one."""
    certificate = getattr(domain, "Certificate", None)
    certificates = getattr(certificate, "List", None) or []
    if len(certificates) != 1:
        return ""
    return certificates[0].CertId or ""


class TencentCloudEODeployer(DomainCertificateDeployer):
    """Deploys certificates to the hosts of a Tencent Cloud EdgeOne zone."""

    provider_type = DeploymentProviderType.TENCENTCLOUD_EO.value
    update_strategy = UpdateStrategy.BULK
    inventory_page_size = ACCELERATION_DOMAINS_PAGE_SIZE
    supports_inventory = True
    inventory_reports_bindings = True

    def __init__(
        self,
        config: TencentCloudEOConfig,
        *,
        sdk_client: Any | None = None,
        ssl_uploader: TencentCloudSSLUploader | None = None,
    ):
        super().__init__()
        self.config = config

        if sdk_client is None:
            sdk_client = teo_client.TeoClient(
                credential.Credential(config.secret_id, config.secret_key),
                "",
                create_client_profile(config.endpoint),
            )
        self.sdk_client = sdk_client

        if ssl_uploader is None:
            ssl_uploader = TencentCloudSSLUploader(
                config.secret_id,
                config.secret_key,
                endpoint=ssl_endpoint_for(config.endpoint),
            )
        self.ssl_uploader = ssl_uploader
        self.ssl_uploader.logger = self.logger

    def set_logger(self, sink: Any | None) -> None:
        super().set_logger(sink)
        self.ssl_uploader.logger = self.logger

    @property
    def match_pattern(self) -> DomainMatchPattern:
        return DomainMatchPattern.parse(self.config.match_pattern)

    @property
    def domains(self) -> list[str]:
        return self.config.domains

    def validate_config(self) -> None:
        require(self.config.zone_id, "zoneId")

    async def upload_certificate(
        self, certificate_pem: str, private_key_pem: str
    ) -> UploadResult:
        return await self.ssl_uploader.upload(certificate_pem, private_key_pem)

    async def list_inventory_page(self, offset: int, limit: int) -> InventoryPage:
        # REF: https://cloud.tencent.com/document/api/1552/86336
        request = teo_models.DescribeAccelerationDomainsRequest()
        request.ZoneId = self.config.zone_id
        request.Offset = offset
        request.Limit = limit
        response = call_sdk(
            self.logger,
            "teo.DescribeAccelerationDomains",
            self.sdk_client.DescribeAccelerationDomains,
            request,
        )

        entries = [
            InventoryEntry(
                name=domain.DomainName,
                bound_certificate_id=_bound_certificate_id(domain),
            )
            for domain in response.AccelerationDomains or []
            if domain is not None and domain.DomainName
        ]
        total = response.TotalCount or 0
        return InventoryPage(entries=entries, has_more=offset + len(entries) < total)

    async def update_domains(self, domains: list[str], certificate_id: str) -> None:
        # REF: https://cloud.tencent.com/document/api/1552/80764
        server_cert = teo_models.ServerCertInfo()
        server_cert.CertId = certificate_id

        request = teo_models.ModifyHostsCertificateRequest()
        request.ZoneId = self.config.zone_id
        request.Mode = "sslcert"
        request.Hosts = domains
        request.ServerCertInfo = [server_cert]
        call_sdk(
            self.logger,
            "teo.ModifyHostsCertificate",
            self.sdk_client.ModifyHostsCertificate,
            request,
        )


@deployer(DeploymentProviderType.TENCENTCLOUD_EO)
def create_tencentcloud_eo_deployer(
    options: ProviderFactoryOptions,
) -> TencentCloudEODeployer:
    access = populate(options.access_config, TencentCloudAccessConfig)
    extended = options.extended_config

    return TencentCloudEODeployer(
        TencentCloudEOConfig(
            secret_id=access.secret_id,
            secret_key=access.secret_key,
            zone_id=get_string(extended, "zoneId"),
            match_pattern=get_string(extended, "matchPattern"),
            domains=get_string_list(extended, "domains"),
            endpoint=get_string(extended, "endpoint"),
        )
    )
