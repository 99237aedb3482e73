"""
Update executor.

Pushes the certificate to the final domain batch using one of two strategies:

- per-domain: one vendor call per domain, sequential; failures are collected
  and raised together as an AggregatedError once every domain was attempted
- bulk: one vendor call for the whole batch; failure fails the batch

The executor keeps no state between calls and never retries.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.models.deployment import DeploymentStage
from certdeploy.models.errors import (
    AggregatedError,
    BulkUpdateError,
    CancellationError,
    PerDomainUpdateError,
)

DomainUpdater = Callable[[str, str], Awaitable[None]]
BulkDomainUpdater = Callable[[list[str], str], Awaitable[None]]


async def update_per_domain(
    domains: list[str],
    certificate_id: str,
    update_domain: DomainUpdater,
    *,
    cancel_token: CancellationToken | None = None,
    log: Any = logger,
) -> None:
    """
    Bind the certificate to each domain in turn.

    Cancellation is checked before every domain. Domains updated before a
    cancellation keep the new certificate.

    Args:
        domains: Final domain batch
        certificate_id: Uploaded certificate identifier
        update_domain: Coroutine function ``(domain, certificate_id)``
        cancel_token: Cooperative cancellation signal
        log: Diagnostic sink

    Raises:
        AggregatedError: Naming every domain that failed
        CancellationError: If cancellation is requested mid-batch
    """
    errors: list[PerDomainUpdateError] = []

    for domain in domains:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(DeploymentStage.UPDATING_DOMAINS)

        try:
            await update_domain(domain, certificate_id)
        except CancellationError:
            raise
        except Exception as e:
            log.warning(f"Failed to update domain '{domain}': {e}")
            errors.append(PerDomainUpdateError(domain, e))
            continue

        log.info(f"Domain '{domain}' updated")

    if errors:
        raise AggregatedError(errors)


async def update_bulk(
    domains: list[str],
    certificate_id: str,
    update_domains: BulkDomainUpdater,
    *,
    cancel_token: CancellationToken | None = None,
    log: Any = logger,
) -> None:
    """
    Bind the certificate to the whole batch with one vendor call.

    Args:
        domains: Final domain batch
        certificate_id: Uploaded certificate identifier
        update_domains: Coroutine function ``(domains, certificate_id)``
        cancel_token: Checked once before the call
        log: Diagnostic sink

    Raises:
        BulkUpdateError: If the vendor call fails
        CancellationError: If cancellation was requested before the call
    """
    if cancel_token is not None:
        cancel_token.raise_if_cancelled(DeploymentStage.UPDATING_DOMAINS)

    try:
        await update_domains(list(domains), certificate_id)
    except CancellationError:
        raise
    except Exception as e:
        raise BulkUpdateError(domains, e) from e

    log.info(f"Domains {domains} updated")
