"""
Idempotency filter.

Drops candidate domains the vendor already reports as bound to the
certificate about to be deployed. It only ever removes domains, and only those
it can positively confirm: a domain missing from the inventory, or whose
binding is unknown, stays in the batch.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from certdeploy.deployment.resolver import InventorySnapshot
from certdeploy.models.deployment import DeploymentStage
from certdeploy.models.errors import CancellationError, DeploymentError

BindingDescriber = Callable[[str], Awaitable[str | None]]


async def filter_already_bound(
    candidates: list[str],
    certificate_id: str,
    *,
    inventory: InventorySnapshot | None = None,
    describe_binding: BindingDescriber | None = None,
    log: Any = logger,
) -> list[str]:
    """
    Remove candidates already serving ``certificate_id``.

    An inventory is only consulted once the resolver has listed it; the filter
    never lists one itself. Otherwise ``describe_binding`` is asked per domain.
    With neither, every candidate is kept.

    Args:
        candidates: Resolved candidate domains
        certificate_id: Identifier of the freshly uploaded certificate
        inventory: Inventory snapshot for vendors with inventory introspection;
            ignored unless already fetched
        describe_binding: Coroutine function returning a domain's bound
            certificate id (or None when unknown)
        log: Diagnostic sink

    Returns:
        Remaining candidates, in their original order

    Raises:
        DeploymentError: If the binding state cannot be read
    """
    if not certificate_id:
        return list(candidates)

    if inventory is not None and inventory.fetched:
        bindings = await inventory.bindings()
        remaining: list[str] = []
        for domain in candidates:
            entry = bindings.get(domain.lower())
            if entry is not None and entry.is_bound(certificate_id):
                log.info(f"Domain '{domain}' already uses the certificate, skipping")
                continue
            remaining.append(domain)
        return remaining

    if describe_binding is not None:
        remaining = []
        for domain in candidates:
            try:
                bound_id = await describe_binding(domain)
            except CancellationError:
                raise
            except Exception as e:
                raise DeploymentError(
                    f"failed to describe certificate binding of domain '{domain}': {e}",
                    stage=DeploymentStage.FILTERING_ALREADY_BOUND,
                ) from e

            if bound_id and bound_id == certificate_id:
                log.info(f"Domain '{domain}' already uses the certificate, skipping")
                continue
            remaining.append(domain)
        return remaining

    return list(candidates)
