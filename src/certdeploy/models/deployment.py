"""
Deployment data model.

Everything here is created fresh for one ``deploy`` call and discarded at its
end; only the provider registry outlives a deployment.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import Any


class DeploymentProviderType(StrEnum):
    """Built-in deployment provider identifiers (registry keys)."""

    AWS_CLOUDFRONT = "aws-cloudfront"
    FLYIO = "flyio"
    SYNOLOGY_DSM = "synologydsm"
    TENCENTCLOUD_CDN = "tencentcloud-cdn"
    TENCENTCLOUD_EO = "tencentcloud-eo"
    VOLCENGINE_VOD = "volcengine-vod"


class DomainMatchPattern(StrEnum):
    """How configured domains are turned into remote domain names."""

    EXACT = "exact"
    WILDCARD = "wildcard"
    CERTIFICATE_SAN = "certsan"

    @classmethod
    def parse(cls, value: "str | DomainMatchPattern | None") -> "DomainMatchPattern":
        """
        Parse a configured match pattern.

        Args:
            value: Raw configured value; empty or None means EXACT

        Returns:
            The match pattern

        Raises:
            ValueError: If the value names no known pattern
        """
        if value is None or value == "":
            return cls.EXACT
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class DeploymentStage(StrEnum):
    """Stages of one deploy call, in execution order."""

    VALIDATING_CONFIG = "validating_config"
    UPLOADING_CERTIFICATE = "uploading_certificate"
    RESOLVING_DOMAINS = "resolving_domains"
    FILTERING_ALREADY_BOUND = "filtering_already_bound"
    UPDATING_DOMAINS = "updating_domains"
    DONE = "done"
    FAILED = "failed"


class UpdateStrategy(StrEnum):
    """How the final domain batch is pushed to the vendor."""

    PER_DOMAIN = "per_domain"
    BULK = "bulk"


@dataclass(frozen=True)
class InventoryEntry:
    """
    A remote domain and the certificate currently serving it.

    Attributes:
        name: Domain name as reported by the vendor
        bound_certificate_id: Vendor certificate id bound to the domain,
            empty when unknown or when no single certificate is bound
    """

    name: str
    bound_certificate_id: str = ""

    def is_bound(self, target_id: str) -> bool:
        """Return True only when the domain is known to serve ``target_id``."""
        return bool(target_id) and self.bound_certificate_id == target_id


@dataclass(frozen=True)
class InventoryPage:
    """One page of a vendor inventory listing."""

    entries: list[InventoryEntry]
    has_more: bool = False


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of uploading a certificate to a vendor certificate store.

    Attributes:
        certificate_id: Identifier used by subsequent bind calls
        certificate_name: Optional human-readable name assigned by the vendor
    """

    certificate_id: str
    certificate_name: str = ""


@dataclass
class DeploymentBatch:
    """Domains about to be pushed to the vendor with the uploaded certificate."""

    certificate_id: str
    domains: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.domains)


@dataclass(frozen=True)
class DeployResult:
    """Success marker returned by ``deploy``; reserved for vendor metadata."""

    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderFactoryOptions:
    """
    Inputs handed over by the calling workflow to build a deployer.

    Attributes:
        provider: Provider type identifier (registry key)
        access_config: Untyped credential map
        extended_config: Untyped provider-specific options
        dns_propagation_timeout: Passed through from the workflow, unused by
            deployers themselves
        dns_ttl: Passed through from the workflow, unused by deployers
    """

    provider: str
    access_config: dict[str, Any] = field(default_factory=dict)
    extended_config: dict[str, Any] = field(default_factory=dict)
    dns_propagation_timeout: timedelta | None = None
    dns_ttl: int | None = None
