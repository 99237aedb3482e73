"""
Models package.

Contains the deployment data model and the error taxonomy shared by the
deployment pipeline and every vendor adapter.
"""

from certdeploy.models.deployment import (
    DeploymentBatch,
    DeploymentProviderType,
    DeploymentStage,
    DeployResult,
    DomainMatchPattern,
    InventoryEntry,
    InventoryPage,
    ProviderFactoryOptions,
    UpdateStrategy,
    UploadResult,
)
from certdeploy.models.errors import (
    AggregatedError,
    BulkUpdateError,
    CancellationError,
    ConfigurationError,
    DeploymentError,
    DuplicateProviderTypeError,
    PerDomainUpdateError,
    RegistryStartupError,
    ResolutionError,
    SDKRequestError,
    UploadError,
)

__all__ = [
    # Data model
    "DeploymentBatch",
    "DeploymentProviderType",
    "DeploymentStage",
    "DeployResult",
    "DomainMatchPattern",
    "InventoryEntry",
    "InventoryPage",
    "ProviderFactoryOptions",
    "UpdateStrategy",
    "UploadResult",
    # Errors
    "AggregatedError",
    "BulkUpdateError",
    "CancellationError",
    "ConfigurationError",
    "DeploymentError",
    "DuplicateProviderTypeError",
    "PerDomainUpdateError",
    "RegistryStartupError",
    "ResolutionError",
    "SDKRequestError",
    "UploadError",
]
