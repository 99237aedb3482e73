"""
Tencent Cloud CDN deployer.

Uploads the certificate to Tencent Cloud SSL, then updates the HTTPS config
of every resolved CDN domain one at a time.

Extended config:
    matchPattern: exact | wildcard | certsan (default exact)
    domains: CDN domains, ``;`` separated or a list
    endpoint: CDN API endpoint (optional)
"""

from dataclasses import dataclass, field
from typing import Any

from tencentcloud.cdn.v20180606 import cdn_client
from tencentcloud.cdn.v20180606 import models as cdn_models
from tencentcloud.common import credential

from certdeploy.deployment.pipeline import DomainCertificateDeployer
from certdeploy.deployment.populate import get_string, get_string_list, populate
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

# DescribeDomainsConfig accepts at most 1000 items per page
DOMAINS_CONFIG_PAGE_SIZE = 1000


@dataclass(frozen=True)
class TencentCloudCDNConfig:
    secret_id: str
    secret_key: str
    match_pattern: str = ""
    domains: list[str] = field(default_factory=list)
    endpoint: str = ""


def _bound_certificate_id(domain: Any) -> str:
    https = getattr(domain, "Https", None)
    cert_info = getattr(https, "CertInfo", None)
    return getattr(cert_info, "CertId", None) or ""


class TencentCloudCDNDeployer(DomainCertificateDeployer):
    """Deploys certificates to Tencent Cloud CDN domains."""

    provider_type = DeploymentProviderType.TENCENTCLOUD_CDN.value
    update_strategy = UpdateStrategy.PER_DOMAIN
    inventory_page_size = DOMAINS_CONFIG_PAGE_SIZE
    supports_inventory = True
    inventory_reports_bindings = True
    supports_binding_description = True

    def __init__(
        self,
        config: TencentCloudCDNConfig,
        *,
        sdk_client: Any | None = None,
        ssl_uploader: TencentCloudSSLUploader | None = None,
    ):
        super().__init__()
        self.config = config

        if sdk_client is None:
            sdk_client = cdn_client.CdnClient(
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

    async def upload_certificate(
        self, certificate_pem: str, private_key_pem: str
    ) -> UploadResult:
        return await self.ssl_uploader.upload(certificate_pem, private_key_pem)

    async def list_inventory_page(self, offset: int, limit: int) -> InventoryPage:
        # REF: https://cloud.tencent.com/document/api/228/41117
        request = cdn_models.DescribeDomainsConfigRequest()
        request.Offset = offset
        request.Limit = limit
        response = call_sdk(
            self.logger,
            "cdn.DescribeDomainsConfig",
            self.sdk_client.DescribeDomainsConfig,
            request,
        )

        entries = [
            InventoryEntry(
                name=domain.Domain,
                bound_certificate_id=_bound_certificate_id(domain),
            )
            for domain in response.Domains or []
            if domain is not None and domain.Domain
        ]
        total = response.TotalNumber or 0
        return InventoryPage(entries=entries, has_more=offset + len(entries) < total)

    async def describe_domain_binding(self, domain: str) -> str | None:
        # REF: https://cloud.tencent.com/document/api/228/41117
        domain_filter = cdn_models.DomainFilter()
        domain_filter.Name = "domain"
        domain_filter.Value = [domain]
        domain_filter.Fuzzy = False

        request = cdn_models.DescribeDomainsConfigRequest()
        request.Offset = 0
        request.Limit = 1
        request.Filters = [domain_filter]
        response = call_sdk(
            self.logger,
            "cdn.DescribeDomainsConfig",
            self.sdk_client.DescribeDomainsConfig,
            request,
        )

        for item in response.Domains or []:
            if item is not None and (item.Domain or "").lower() == domain.lower():
                return _bound_certificate_id(item) or None
        return None

    async def update_domain(self, domain: str, certificate_id: str) -> None:
        # REF: https://cloud.tencent.com/document/api/228/41116
        cert_info = cdn_models.ServerCert()
        cert_info.CertId = certificate_id

        https = cdn_models.Https()
        https.Switch = "on"
        https.CertInfo = cert_info

        request = cdn_models.UpdateDomainConfigRequest()
        request.Domain = domain
        request.Https = https
        call_sdk(
            self.logger,
            "cdn.UpdateDomainConfig",
            self.sdk_client.UpdateDomainConfig,
            request,
        )


@deployer(DeploymentProviderType.TENCENTCLOUD_CDN)
def create_tencentcloud_cdn_deployer(
    options: ProviderFactoryOptions,
) -> TencentCloudCDNDeployer:
    access = populate(options.access_config, TencentCloudAccessConfig)
    extended = options.extended_config

    return TencentCloudCDNDeployer(
        TencentCloudCDNConfig(
            secret_id=access.secret_id,
            secret_key=access.secret_key,
            match_pattern=get_string(extended, "matchPattern"),
            domains=get_string_list(extended, "domains"),
            endpoint=get_string(extended, "endpoint"),
        )
    )
