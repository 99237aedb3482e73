"""
Volcengine VOD deployer.

Imports the certificate into Volcengine Certificate Center, resolves the VOD
space's play or image domains and updates their HTTPS config one at a time.

Extended config:
    spaceName: VOD space name (required)
    domainType: play | image (required)
    matchPattern: exact | wildcard | certsan (default exact)
    domains: VOD domains, ``;`` separated or a list (``domain`` is accepted too)
"""

import json
from dataclasses import dataclass, field
from typing import Any

from certdeploy.deployment.pipeline import DomainCertificateDeployer
from certdeploy.deployment.populate import (
    get_string,
    get_string_list,
    populate,
    require,
)
from certdeploy.deployment.registry import deployer
from certdeploy.infrastructure.providers.volcengine_certcenter import (
    VolcengineAccessConfig,
    VolcengineCertCenterUploader,
    call_openapi,
    create_openapi_service,
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
from certdeploy.models.errors import ConfigurationError

VOD_HOST = "vod.volcengineapi.com"
VOD_SERVICE = "vod"
VOD_REGION = "cn-north-1"

# ListDomain accepts at most 1000 items per page
LIST_DOMAIN_PAGE_SIZE = 1000

DOMAIN_TYPE_PLAY = "play"
DOMAIN_TYPE_IMAGE = "image"

# Result key holding the instances of each domain type
_INSTANCE_INFO_KEYS = {
    DOMAIN_TYPE_PLAY: "PlayInstanceInfo",
    DOMAIN_TYPE_IMAGE: "ImageInstanceInfo",
}


@dataclass(frozen=True)
class VolcengineVODConfig:
    access_key_id: str
    access_key_secret: str
    space_name: str = ""
    domain_type: str = ""
    match_pattern: str = ""
    domains: list[str] = field(default_factory=list)


class VolcengineVODDeployer(DomainCertificateDeployer):
    """Deploys certificates to the domains of a Volcengine VOD space."""

    provider_type = DeploymentProviderType.VOLCENGINE_VOD.value
    update_strategy = UpdateStrategy.PER_DOMAIN
    inventory_page_size = LIST_DOMAIN_PAGE_SIZE
    supports_inventory = True

    def __init__(
        self,
        config: VolcengineVODConfig,
        *,
        sdk_client: Any | None = None,
        certcenter_uploader: VolcengineCertCenterUploader | None = None,
    ):
        super().__init__()
        self.config = config

        if sdk_client is None:
            sdk_client = create_openapi_service(
                config.access_key_id,
                config.access_key_secret,
                host=VOD_HOST,
                service=VOD_SERVICE,
                region=VOD_REGION,
                actions={
                    "ListDomain": ("GET", "2023-01-01"),
                    "UpdateDomainConfig": ("POST", "2023-07-01"),
                },
            )
        self.sdk_client = sdk_client

        if certcenter_uploader is None:
            certcenter_uploader = VolcengineCertCenterUploader(
                config.access_key_id, config.access_key_secret
            )
        self.certcenter_uploader = certcenter_uploader
        self.certcenter_uploader.logger = self.logger

    def set_logger(self, sink: Any | None) -> None:
        super().set_logger(sink)
        self.certcenter_uploader.logger = self.logger

    @property
    def match_pattern(self) -> DomainMatchPattern:
        return DomainMatchPattern.parse(self.config.match_pattern)

    @property
    def domains(self) -> list[str]:
        return self.config.domains

    def validate_config(self) -> None:
        require(self.config.space_name, "spaceName")
        if self.config.domain_type not in _INSTANCE_INFO_KEYS:
            raise ConfigurationError(
                f"unsupported domain type: '{self.config.domain_type}'",
                fields=["domainType"],
            )

    async def upload_certificate(
        self, certificate_pem: str, private_key_pem: str
    ) -> UploadResult:
        return await self.certcenter_uploader.upload(certificate_pem, private_key_pem)

    async def list_inventory_page(self, offset: int, limit: int) -> InventoryPage:
        # REF: https://www.volcengine.com/docs/4/106062
        params = {
            "SpaceName": self.config.space_name,
            "DomainType": self.config.domain_type,
            "SourceStationType": 1,
            "Offset": offset,
            "Limit": limit,
        }
        result = call_openapi(
            self.logger,
            "vod.ListDomain",
            lambda: self.sdk_client.get("ListDomain", params),
        )

        instance_info = result.get(_INSTANCE_INFO_KEYS[self.config.domain_type]) or {}
        entries = [
            InventoryEntry(name=domain["Domain"])
            for instance in instance_info.get("ByteInstances") or []
            for domain in instance.get("Domains") or []
            if domain.get("Domain")
        ]
        return InventoryPage(entries=entries)

    async def update_domain(self, domain: str, certificate_id: str) -> None:
        # REF: https://www.volcengine.com/docs/4/1317310
        body = {
            "SpaceName": self.config.space_name,
            "DomainType": self.config.domain_type,
            "Domain": domain,
            "Config": {
                "HTTPS": {
                    "Switch": True,
                    "CertInfo": {"CertId": certificate_id},
                }
            },
        }
        call_openapi(
            self.logger,
            "vod.UpdateDomainConfig",
            lambda: self.sdk_client.json("UpdateDomainConfig", {}, json.dumps(body)),
        )


@deployer(DeploymentProviderType.VOLCENGINE_VOD)
def create_volcengine_vod_deployer(
    options: ProviderFactoryOptions,
) -> VolcengineVODDeployer:
    access = populate(options.access_config, VolcengineAccessConfig)
    extended = options.extended_config

    return VolcengineVODDeployer(
        VolcengineVODConfig(
            access_key_id=access.access_key_id,
            access_key_secret=access.access_key_secret,
            space_name=get_string(extended, "spaceName"),
            domain_type=get_string(extended, "domainType").strip().lower(),
            match_pattern=(
                get_string(extended, "matchPattern")
                or get_string(extended, "domainMatchPattern")
            ),
            domains=(
                get_string_list(extended, "domains")
                or get_string_list(extended, "domain")
            ),
        )
    )
