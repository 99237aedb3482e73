"""Deployment error taxonomy.

Every error raised out of ``deploy`` derives from DeploymentError and records
the stage it belongs to. Vendor exceptions are never raised bare: adapters
wrap them in SDKRequestError naming the failing operation.
"""

from collections.abc import Iterable

from certdeploy.models.deployment import DeploymentStage


class DeploymentError(Exception):
    """Base class for certificate deployment failures.

    Attributes:
        stage: Deployment stage the failure belongs to.
    """

    stage: DeploymentStage = DeploymentStage.FAILED

    def __init__(self, message: str, *, stage: DeploymentStage | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ConfigurationError(DeploymentError):
    """A required field is missing or invalid; raised before any network call."""

    stage = DeploymentStage.VALIDATING_CONFIG

    def __init__(self, message: str, *, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields = list(fields)


class UploadError(DeploymentError):
    """The certificate could not be uploaded; no domain was touched."""

    stage = DeploymentStage.UPLOADING_CERTIFICATE


class ResolutionError(DeploymentError):
    """The inventory could not be listed or the pattern matched no domain."""

    stage = DeploymentStage.RESOLVING_DOMAINS


class CancellationError(DeploymentError):
    """The caller cancelled the deployment; completed updates are kept."""


class SDKRequestError(DeploymentError):
    """A vendor API call failed.

    Attributes:
        operation: Vendor operation name, e.g. ``teo.ModifyHostsCertificate``.
    """

    def __init__(
        self,
        operation: str,
        cause: BaseException | str,
        *,
        stage: DeploymentStage | None = None,
    ):
        super().__init__(
            f"failed to execute sdk request '{operation}': {cause}", stage=stage
        )
        self.operation = operation


class DomainUpdateError(DeploymentError):
    """Base class for failures while binding the certificate to domains."""

    stage = DeploymentStage.UPDATING_DOMAINS


class PerDomainUpdateError(DomainUpdateError):
    """Binding the certificate to one domain failed."""

    def __init__(self, domain: str, cause: BaseException):
        super().__init__(f"failed to update domain '{domain}': {cause}")
        self.domain = domain
        self.cause = cause


class BulkUpdateError(DomainUpdateError):
    """The single bulk bind call failed for the whole batch."""

    def __init__(self, domains: Iterable[str], cause: BaseException):
        self.domains = list(domains)
        self.cause = cause
        super().__init__(
            f"failed to update {len(self.domains)} domain(s) "
            f"[{', '.join(self.domains)}]: {cause}"
        )


class AggregatedError(DomainUpdateError):
    """Independent per-domain failures collected across one batch.

    Attributes:
        errors: Failures in the order the domains were attempted.
    """

    def __init__(self, errors: Iterable[PerDomainUpdateError]):
        self.errors = list(errors)
        super().__init__("\n".join(str(error) for error in self.errors))

    @property
    def failed_domains(self) -> list[str]:
        """Names of the domains that failed, in attempt order."""
        return [error.domain for error in self.errors]


class RegistryError(Exception):
    """Base class for provider registry faults."""


class DuplicateProviderTypeError(RegistryError, ValueError):
    """A provider type was registered twice."""

    def __init__(self, provider_type: str):
        super().__init__(f"deployer provider '{provider_type}' is already registered")
        self.provider_type = provider_type


class RegistryStartupError(RegistryError):
    """Startup-time registry fault; the process must not start serving.

    Attributes:
        failures: Every registration failure found by the validation pass.
    """

    def __init__(self, failures: Iterable[Exception] | str):
        if isinstance(failures, str):
            self.failures: list[Exception] = []
            message = failures
        else:
            self.failures = list(failures)
            message = "deployer registry startup failed: " + "; ".join(
                str(failure) for failure in self.failures
            )
        super().__init__(message)
