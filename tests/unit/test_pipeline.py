"""Tests for the domain deployment pipeline using an in-memory vendor."""

import pytest

from certdeploy.core.logging import NullLogger
from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.deployment.pipeline import DomainCertificateDeployer
from certdeploy.models.deployment import (
    DeployResult,
    DomainMatchPattern,
    InventoryEntry,
    InventoryPage,
    UpdateStrategy,
    UploadResult,
)
from certdeploy.models.errors import (
    AggregatedError,
    BulkUpdateError,
    CancellationError,
    ConfigurationError,
    ResolutionError,
    UploadError,
)


class InMemoryDeployer(DomainCertificateDeployer):
    """Vendor double keeping its domain bindings in a dict."""

    provider_type = "in-memory"
    inventory_page_size = 2
    supports_inventory = True
    inventory_reports_bindings = True
    supports_binding_description = True

    def __init__(
        self,
        domains: list[str],
        bindings: dict[str, str],
        pattern: str = "exact",
        certificate_id: str = "cert-new",
        failing: set[str] | None = None,
    ):
        super().__init__()
        self._domains = domains
        self._pattern = pattern
        self.bindings = bindings
        self.certificate_id = certificate_id
        self.failing = failing or set()
        self.uploads = 0
        self.page_requests: list[tuple[int, int]] = []
        self.describe_requests: list[str] = []
        self.updated: list[str] = []
        self.bulk_calls: list[list[str]] = []

    @property
    def match_pattern(self) -> DomainMatchPattern:
        return DomainMatchPattern.parse(self._pattern)

    @property
    def domains(self) -> list[str]:
        return self._domains

    async def upload_certificate(self, certificate_pem, private_key_pem):
        self.uploads += 1
        return UploadResult(certificate_id=self.certificate_id)

    async def list_inventory_page(self, offset, limit):
        self.page_requests.append((offset, limit))
        names = sorted(self.bindings)[offset : offset + limit]
        return InventoryPage(
            entries=[
                InventoryEntry(name, bound_certificate_id=self.bindings[name])
                for name in names
            ]
        )

    async def describe_domain_binding(self, domain):
        self.describe_requests.append(domain)
        return self.bindings.get(domain) or None

    async def update_domain(self, domain, certificate_id):
        if domain in self.failing:
            raise RuntimeError(f"{domain} rejected")
        self.bindings[domain] = certificate_id
        self.updated.append(domain)

    async def update_domains(self, domains, certificate_id):
        self.bulk_calls.append(list(domains))
        if self.failing:
            raise RuntimeError("bulk rejected")
        for domain in domains:
            self.bindings[domain] = certificate_id


class BulkInMemoryDeployer(InMemoryDeployer):
    update_strategy = UpdateStrategy.BULK


class NoInventoryDeployer(InMemoryDeployer):
    supports_inventory = False
    inventory_reports_bindings = False


# ===========================
# Happy Path Tests
# ===========================


@pytest.mark.asyncio
async def test_exact_deploy_updates_configured_domains(certificate_pem, private_key_pem):
    """Test exact mode updates every configured domain."""
    provider = InMemoryDeployer(
        ["a.example.com", "b.example.com"],
        {"a.example.com": "cert-old", "b.example.com": ""},
    )

    result = await provider.deploy(certificate_pem, private_key_pem)

    assert isinstance(result, DeployResult)
    assert provider.updated == ["a.example.com", "b.example.com"]
    assert provider.uploads == 1


@pytest.mark.asyncio
async def test_exact_deploy_never_lists_inventory(certificate_pem, private_key_pem):
    """Test exact mode checks configured names without paging the inventory."""
    bindings = {f"host{index}.example.com": "cert-old" for index in range(10)}
    provider = InMemoryDeployer(["host3.example.com"], bindings)

    await provider.deploy(certificate_pem, private_key_pem)

    assert provider.page_requests == []
    assert provider.describe_requests == ["host3.example.com"]
    assert provider.updated == ["host3.example.com"]


@pytest.mark.asyncio
async def test_exact_deploy_ignores_inventory_outage(certificate_pem, private_key_pem):
    """Test an unavailable inventory API does not affect exact mode."""
    provider = InMemoryDeployer(["a.example.com"], {"a.example.com": ""})

    async def failing_list(offset, limit):
        raise RuntimeError("inventory API down")

    provider.list_inventory_page = failing_list

    await provider.deploy(certificate_pem, private_key_pem)

    assert provider.updated == ["a.example.com"]


@pytest.mark.asyncio
async def test_wildcard_deploy_skips_already_bound(certificate_pem, private_key_pem):
    """Test the inventory is listed once and bound domains are skipped."""
    provider = InMemoryDeployer(
        ["*.example.com"],
        {
            "a.example.com": "cert-new",
            "b.example.com": "cert-old",
            "c.example.com": "",
            "sub.d.example.com": "",
            "example.com": "",
        },
        pattern="wildcard",
    )

    await provider.deploy(certificate_pem, private_key_pem)

    assert provider.updated == ["b.example.com", "c.example.com"]
    # 5 entries with page size 2: three requests, the last one short
    assert provider.page_requests == [(0, 2), (2, 2), (4, 2)]
    # bindings come from the listed inventory
    assert provider.describe_requests == []


@pytest.mark.asyncio
async def test_redeploy_is_noop(certificate_pem, private_key_pem):
    """Test a second deploy of the same certificate touches nothing."""
    provider = InMemoryDeployer(
        ["a.example.com", "b.example.com"],
        {"a.example.com": "", "b.example.com": ""},
    )

    await provider.deploy(certificate_pem, private_key_pem)
    provider.updated.clear()
    await provider.deploy(certificate_pem, private_key_pem)

    assert provider.updated == []
    assert provider.uploads == 2


@pytest.mark.asyncio
async def test_certsan_deploy(certificate_pem, private_key_pem):
    """Test certsan mode deploys to the names the certificate covers."""
    provider = InMemoryDeployer(
        [],
        {"www.example.com": "", "example.org": "", "a.b.example.com": ""},
        pattern="certsan",
    )

    await provider.deploy(certificate_pem, private_key_pem)

    assert provider.updated == ["www.example.com"]


@pytest.mark.asyncio
async def test_bulk_strategy_single_call(certificate_pem, private_key_pem):
    """Test the bulk strategy binds the whole batch at once."""
    provider = BulkInMemoryDeployer(
        ["a.example.com", "b.example.com"],
        {"a.example.com": "cert-old", "b.example.com": "cert-new"},
    )

    await provider.deploy(certificate_pem, private_key_pem)

    assert provider.bulk_calls == [["a.example.com"]]


# ===========================
# Failure Tests
# ===========================


@pytest.mark.asyncio
async def test_invalid_pattern_is_configuration_error(certificate_pem, private_key_pem):
    """Test an unknown match pattern fails before upload."""
    provider = InMemoryDeployer(["a.example.com"], {}, pattern="regex")

    with pytest.raises(ConfigurationError) as exc_info:
        await provider.deploy(certificate_pem, private_key_pem)

    assert exc_info.value.fields == ["matchPattern"]
    assert provider.uploads == 0


@pytest.mark.asyncio
async def test_exact_wildcard_is_configuration_error(certificate_pem, private_key_pem):
    """Test `*.` names in exact mode fail before upload."""
    provider = InMemoryDeployer(["*.example.com"], {})

    with pytest.raises(ConfigurationError):
        await provider.deploy(certificate_pem, private_key_pem)

    assert provider.uploads == 0


@pytest.mark.asyncio
async def test_wildcard_needs_inventory_support(certificate_pem, private_key_pem):
    """Test wildcard mode is rejected for vendors without inventory."""
    provider = NoInventoryDeployer(["*.example.com"], {}, pattern="wildcard")

    with pytest.raises(ConfigurationError):
        await provider.deploy(certificate_pem, private_key_pem)

    assert provider.uploads == 0


@pytest.mark.asyncio
async def test_upload_failure_is_upload_error(certificate_pem, private_key_pem):
    """Test an upload failure aborts before any domain is touched."""
    provider = InMemoryDeployer(["a.example.com"], {"a.example.com": ""})

    async def failing_upload(certificate_pem, private_key_pem):
        raise RuntimeError("store unavailable")

    provider.upload_certificate = failing_upload

    with pytest.raises(UploadError) as exc_info:
        await provider.deploy(certificate_pem, private_key_pem)

    assert "failed to upload certificate file" in str(exc_info.value)
    assert provider.updated == []
    assert provider.page_requests == []


@pytest.mark.asyncio
async def test_zero_wildcard_matches_is_resolution_error(
    certificate_pem, private_key_pem
):
    """Test a wildcard matching nothing fails the deployment."""
    provider = InMemoryDeployer(
        ["*.example.com"], {"a.example.org": ""}, pattern="wildcard"
    )

    with pytest.raises(ResolutionError):
        await provider.deploy(certificate_pem, private_key_pem)

    assert provider.updated == []


@pytest.mark.asyncio
async def test_per_domain_partial_failure(certificate_pem, private_key_pem):
    """Test per-domain failures are aggregated after every domain ran."""
    provider = InMemoryDeployer(
        ["a.example.com", "b.example.com", "c.example.com"],
        {"a.example.com": "", "b.example.com": "", "c.example.com": ""},
        failing={"b.example.com"},
    )

    with pytest.raises(AggregatedError) as exc_info:
        await provider.deploy(certificate_pem, private_key_pem)

    assert exc_info.value.failed_domains == ["b.example.com"]
    assert provider.updated == ["a.example.com", "c.example.com"]


@pytest.mark.asyncio
async def test_bulk_failure(certificate_pem, private_key_pem):
    """Test a failed bulk call fails the whole batch."""
    provider = BulkInMemoryDeployer(
        ["a.example.com", "b.example.com"],
        {"a.example.com": "", "b.example.com": ""},
        failing={"a.example.com"},
    )

    with pytest.raises(BulkUpdateError) as exc_info:
        await provider.deploy(certificate_pem, private_key_pem)

    assert exc_info.value.domains == ["a.example.com", "b.example.com"]


@pytest.mark.asyncio
async def test_cancelled_before_upload(certificate_pem, private_key_pem):
    """Test a cancelled token stops the deployment before upload."""
    token = CancellationToken()
    token.cancel()
    provider = InMemoryDeployer(["a.example.com"], {"a.example.com": ""})

    with pytest.raises(CancellationError):
        await provider.deploy(certificate_pem, private_key_pem, cancel_token=token)

    assert provider.uploads == 0


# ===========================
# Logger Tests
# ===========================


@pytest.mark.asyncio
async def test_set_logger_none_silences(certificate_pem, private_key_pem):
    """Test set_logger(None) installs a silent sink and deploy still works."""
    provider = InMemoryDeployer(["a.example.com"], {"a.example.com": ""})

    provider.set_logger(None)
    await provider.deploy(certificate_pem, private_key_pem)

    assert isinstance(provider.logger, NullLogger)
    assert provider.updated == ["a.example.com"]
