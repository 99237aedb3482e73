"""
Domain deployment pipeline.

Shared state machine for deployers that bind an uploaded certificate to a set
of remote domains:

    ValidatingConfig -> UploadingCertificate -> ResolvingDomains
        -> FilteringAlreadyBound -> UpdatingDomains -> Done | Failed

Every stage except per-domain updating is all-or-nothing: its first error ends
the deployment. Vendor variants only supply the vendor calls.
"""

from abc import abstractmethod
from typing import ClassVar

from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.deployment.executor import update_bulk, update_per_domain
from certdeploy.deployment.idempotency import filter_already_bound
from certdeploy.deployment.resolver import (
    InventorySnapshot,
    resolve_domains,
    validate_domain_spec,
)
from certdeploy.domain.providers.deployer_base import DeployerProvider
from certdeploy.models.deployment import (
    DeploymentBatch,
    DeploymentStage,
    DeployResult,
    DomainMatchPattern,
    InventoryPage,
    UpdateStrategy,
    UploadResult,
)
from certdeploy.models.errors import (
    CancellationError,
    ConfigurationError,
    DeploymentError,
    UploadError,
)


class DomainCertificateDeployer(DeployerProvider):
    """
    Base class for deployers targeting a set of vendor domains.

    Class attributes declare the vendor capabilities:
        update_strategy: PER_DOMAIN (``update_domain``) or BULK (``update_domains``)
        inventory_page_size: Fixed page size for ``list_inventory_page``
        supports_inventory: Whether ``list_inventory_page`` is implemented
        inventory_reports_bindings: Whether inventory entries carry the bound
            certificate id (enables the idempotency filter)
        supports_binding_description: Whether ``describe_domain_binding`` is
            implemented (idempotency without inventory)
    """

    update_strategy: ClassVar[UpdateStrategy] = UpdateStrategy.PER_DOMAIN
    inventory_page_size: ClassVar[int] = 100
    supports_inventory: ClassVar[bool] = False
    inventory_reports_bindings: ClassVar[bool] = False
    supports_binding_description: ClassVar[bool] = False

    @property
    @abstractmethod
    def match_pattern(self) -> DomainMatchPattern:
        """Configured domain match pattern."""
        pass

    @property
    @abstractmethod
    def domains(self) -> list[str]:
        """Configured domain names."""
        pass

    def validate_config(self) -> None:
        """Vendor-specific config checks; raise ConfigurationError on failure."""
        return None

    @abstractmethod
    async def upload_certificate(
        self, certificate_pem: str, private_key_pem: str
    ) -> UploadResult:
        """Upload the certificate to the vendor certificate store."""
        pass

    async def list_inventory_page(self, offset: int, limit: int) -> InventoryPage:
        """List one page of the vendor domain inventory."""
        raise NotImplementedError(f"{type(self).__name__} cannot list its inventory")

    async def describe_domain_binding(self, domain: str) -> str | None:
        """Certificate id currently bound to a domain, None when unknown."""
        raise NotImplementedError(
            f"{type(self).__name__} cannot describe domain bindings"
        )

    async def update_domain(self, domain: str, certificate_id: str) -> None:
        """Bind the certificate to one domain (PER_DOMAIN strategy)."""
        raise NotImplementedError(f"{type(self).__name__} has no per-domain update")

    async def update_domains(self, domains: list[str], certificate_id: str) -> None:
        """Bind the certificate to every domain at once (BULK strategy)."""
        raise NotImplementedError(f"{type(self).__name__} has no bulk update")

    def _configured_match_pattern(self) -> DomainMatchPattern:
        try:
            return self.match_pattern
        except ValueError as e:
            raise ConfigurationError(
                f"unsupported domain match pattern: {e}", fields=["matchPattern"]
            ) from e

    def _enter(self, stage: DeploymentStage) -> DeploymentStage:
        self.logger.debug(f"Deployment stage: {stage.value}")
        return stage

    async def deploy(
        self,
        certificate_pem: str,
        private_key_pem: str,
        cancel_token: CancellationToken | None = None,
    ) -> DeployResult:
        stage = self._enter(DeploymentStage.VALIDATING_CONFIG)
        try:
            pattern = self._configured_match_pattern()
            validate_domain_spec(
                pattern,
                self.domains,
                inventory_supported=self.supports_inventory,
            )
            self.validate_config()

            stage = self._enter(DeploymentStage.UPLOADING_CERTIFICATE)
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(stage)
            upload = await self._upload(certificate_pem, private_key_pem)
            self.logger.info(f"ssl certificate uploaded: {upload}")

            stage = self._enter(DeploymentStage.RESOLVING_DOMAINS)
            inventory = None
            if self.supports_inventory:
                inventory = InventorySnapshot(
                    self.list_inventory_page,
                    self.inventory_page_size,
                    cancel_token=cancel_token,
                    log=self.logger,
                )
            candidates = await resolve_domains(
                pattern,
                self.domains,
                certificate_pem=certificate_pem,
                inventory=inventory,
                log=self.logger,
            )

            stage = self._enter(DeploymentStage.FILTERING_ALREADY_BOUND)
            batch = DeploymentBatch(
                certificate_id=upload.certificate_id,
                domains=await filter_already_bound(
                    candidates,
                    upload.certificate_id,
                    inventory=inventory if self.inventory_reports_bindings else None,
                    describe_binding=(
                        self.describe_domain_binding
                        if self.supports_binding_description
                        else None
                    ),
                    log=self.logger,
                ),
            )
            if not batch:
                self.logger.info("no domains to deploy, all already up to date")
                self._enter(DeploymentStage.DONE)
                return DeployResult()

            stage = self._enter(DeploymentStage.UPDATING_DOMAINS)
            self.logger.info(f"found domains to deploy: {batch.domains}")
            if self.update_strategy == UpdateStrategy.BULK:
                await update_bulk(
                    batch.domains,
                    batch.certificate_id,
                    self.update_domains,
                    cancel_token=cancel_token,
                    log=self.logger,
                )
            else:
                await update_per_domain(
                    batch.domains,
                    batch.certificate_id,
                    self.update_domain,
                    cancel_token=cancel_token,
                    log=self.logger,
                )

        except DeploymentError as e:
            self._enter(DeploymentStage.FAILED)
            self.logger.error(f"Deployment failed while {stage.value}: {e}")
            raise

        self._enter(DeploymentStage.DONE)
        return DeployResult()

    async def _upload(self, certificate_pem: str, private_key_pem: str) -> UploadResult:
        try:
            return await self.upload_certificate(certificate_pem, private_key_pem)
        except (CancellationError, UploadError):
            raise
        except Exception as e:
            raise UploadError(f"failed to upload certificate file: {e}") from e
