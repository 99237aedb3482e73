"""
Domain resolver.

Turns a match pattern plus the configured domain list into the concrete
remote domain names to update:

- exact: the configured names, untouched, no vendor call
- wildcard: plain names as-is; each ``*.suffix`` expands to the inventory
  entries exactly one label below ``suffix``
- certsan: every inventory entry the deployed certificate validates for

The inventory is held by an InventorySnapshot created per deploy call. It is
fetched at most once and handed on to the idempotency filter.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from certdeploy.deployment.cancellation import CancellationToken
from certdeploy.models.deployment import (
    DeploymentStage,
    DomainMatchPattern,
    InventoryEntry,
    InventoryPage,
)
from certdeploy.models.errors import (
    CancellationError,
    ConfigurationError,
    ResolutionError,
)
from certdeploy.utils.certs import parse_leaf_certificate, verify_hostname

InventoryPageLoader = Callable[[int, int], Awaitable[InventoryPage]]

WILDCARD_PREFIX = "*."


async def fetch_inventory(
    load_page: InventoryPageLoader,
    page_size: int,
    cancel_token: CancellationToken | None = None,
    log: Any = logger,
) -> list[InventoryEntry]:
    """
    Fetch the full vendor inventory with offset pagination.

    Pages are requested from offset 0 in steps of ``page_size``; listing stops
    at the first page holding fewer than ``page_size`` entries, whatever the
    vendor says about remaining entries.

    Args:
        load_page: Coroutine function ``(offset, limit) -> InventoryPage``
        page_size: Fixed page size
        cancel_token: Checked before every page request
        log: Diagnostic sink

    Returns:
        All entries, in listing order

    Raises:
        ResolutionError: If a page request fails
        CancellationError: If cancellation is requested between pages
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    entries: list[InventoryEntry] = []
    offset = 0
    while True:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(DeploymentStage.RESOLVING_DOMAINS)

        try:
            page = await load_page(offset, page_size)
        except CancellationError:
            raise
        except Exception as e:
            raise ResolutionError(f"failed to list domain inventory: {e}") from e

        entries.extend(page.entries)
        log.debug(
            f"Fetched inventory page offset={offset} size={len(page.entries)} "
            f"has_more={page.has_more}"
        )

        if len(page.entries) < page_size:
            break
        offset += page_size

    return entries


class InventorySnapshot:
    """
    Lazily fetched vendor inventory for one deploy call.

    The first ``entries()`` call lists the inventory; later calls return the
    same list.
    """

    def __init__(
        self,
        load_page: InventoryPageLoader,
        page_size: int,
        cancel_token: CancellationToken | None = None,
        log: Any = logger,
    ):
        self._load_page = load_page
        self._page_size = page_size
        self._cancel_token = cancel_token
        self._log = log
        self._entries: list[InventoryEntry] | None = None

    @property
    def fetched(self) -> bool:
        """Whether the inventory has been listed already."""
        return self._entries is not None

    async def entries(self) -> list[InventoryEntry]:
        """Inventory entries, listing them on first use."""
        if self._entries is None:
            self._entries = await fetch_inventory(
                self._load_page,
                self._page_size,
                cancel_token=self._cancel_token,
                log=self._log,
            )
            self._log.info(f"Found {len(self._entries)} domains in remote inventory")
        return self._entries

    async def bindings(self) -> dict[str, InventoryEntry]:
        """Inventory entries keyed by lower-cased domain name."""
        return {entry.name.lower(): entry for entry in await self.entries()}


def is_wildcard(domain: str) -> bool:
    return domain.startswith(WILDCARD_PREFIX)


def match_wildcard(wildcard: str, domain: str) -> bool:
    """
    Match a domain against a ``*.suffix`` pattern, one label deep.

    ``*.example.com`` matches ``a.example.com`` only: neither ``example.com``
    nor ``sub.b.example.com``.
    """
    if not is_wildcard(wildcard):
        return False

    suffix = wildcard[1:].lower()
    name = domain.lower()
    if not name.endswith(suffix):
        return False

    prefix = name[: -len(suffix)]
    return bool(prefix) and "." not in prefix


def validate_domain_spec(
    pattern: DomainMatchPattern,
    domains: list[str],
    *,
    inventory_supported: bool = True,
) -> None:
    """
    Validate the configured domains for a match pattern, before any network call.

    Args:
        pattern: Configured match pattern
        domains: Configured domain names
        inventory_supported: Whether the provider can list its inventory

    Raises:
        ConfigurationError: If the configured domains are unusable for the pattern
    """
    if pattern in (DomainMatchPattern.WILDCARD, DomainMatchPattern.CERTIFICATE_SAN):
        if not inventory_supported:
            raise ConfigurationError(
                f"domain match pattern '{pattern.value}' is not supported by this provider",
                fields=["matchPattern"],
            )

    if pattern == DomainMatchPattern.CERTIFICATE_SAN:
        return

    if not domains:
        raise ConfigurationError("config `domains` is required", fields=["domains"])

    if pattern == DomainMatchPattern.EXACT:
        wildcards = [domain for domain in domains if is_wildcard(domain)]
        if wildcards:
            raise ConfigurationError(
                f"wildcard domains {wildcards} require the 'wildcard' or "
                f"'certsan' match pattern",
                fields=["domains"],
            )


def _append_unique(domains: list[str], seen: set[str], domain: str) -> None:
    key = domain.lower()
    if key not in seen:
        seen.add(key)
        domains.append(domain)


async def resolve_domains(
    pattern: DomainMatchPattern,
    configured_domains: list[str],
    *,
    certificate_pem: str = "",
    inventory: InventorySnapshot | None = None,
    log: Any = logger,
) -> list[str]:
    """
    Resolve the candidate domains for one deployment.

    Args:
        pattern: Domain match pattern
        configured_domains: Configured domain names (may hold ``*.`` entries
            in wildcard mode; ignored in certsan mode)
        certificate_pem: Certificate being deployed (required in certsan mode)
        inventory: Remote inventory (required in wildcard/certsan modes)
        log: Diagnostic sink

    Returns:
        Candidate domain names; exact mode returns the configured list as
        given, the other modes an ordered, de-duplicated list

    Raises:
        ConfigurationError: If the pattern cannot be served
        ResolutionError: If the inventory cannot be listed or nothing matches
    """
    resolved: list[str] = []
    seen: set[str] = set()

    if pattern == DomainMatchPattern.EXACT:
        resolved.extend(configured_domains)
        return resolved

    if inventory is None:
        raise ConfigurationError(
            f"domain match pattern '{pattern.value}' is not supported by this provider",
            fields=["matchPattern"],
        )

    if pattern == DomainMatchPattern.WILDCARD:
        for configured in configured_domains:
            if not is_wildcard(configured):
                _append_unique(resolved, seen, configured)
                continue

            matched = [
                entry.name
                for entry in await inventory.entries()
                if match_wildcard(configured, entry.name)
            ]
            if not matched:
                raise ResolutionError(
                    f"could not find any domains matched by wildcard '{configured}'"
                )

            log.debug(f"Wildcard '{configured}' matched {matched}")
            for domain in matched:
                _append_unique(resolved, seen, domain)
        return resolved

    if pattern == DomainMatchPattern.CERTIFICATE_SAN:
        try:
            certificate = parse_leaf_certificate(certificate_pem)
        except ValueError as e:
            raise ResolutionError(f"failed to parse certificate: {e}") from e

        for entry in await inventory.entries():
            if verify_hostname(certificate, entry.name):
                _append_unique(resolved, seen, entry.name)

        if not resolved:
            raise ResolutionError("could not find any domains matched by certificate")
        return resolved

    raise ConfigurationError(
        f"unsupported domain match pattern: '{pattern}'", fields=["matchPattern"]
    )
