"""Tenant registry: one signed client and one scheduler per helpdesk.

Built once at startup from the tenant configuration and never mutated
afterwards, so lookups need no synchronization.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import httpx
import structlog

from helpdesk_ext.config import Settings, TenantConfig, load_tenants
from helpdesk_ext.errors import UnknownTenantError
from helpdesk_ext.pagination import PagingClient
from helpdesk_ext.restful import Revision
from helpdesk_ext.scheduler import TenantScheduler
from helpdesk_ext.signing import Credentials, HelpdeskAuth

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class TenantContext:
    """Everything needed to serve one tenant.

    ``client`` must only be driven through ``scheduler``.
    """

    name: str
    revision: Revision
    client: PagingClient
    scheduler: TenantScheduler


def create_tenant_context(
    name: str,
    config: TenantConfig,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    backoff: float = 0.25,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TenantContext:
    """Build the bound HTTP client and a fresh scheduler for a tenant.

    Args:
        name: Tenant name.
        config: Tenant base URL, revision, and key pair.
        timeout: Per-request timeout in seconds.
        backoff: Pause between page requests in seconds.
        transport: Optional httpx transport (tests use MockTransport).
    """
    credentials = Credentials(
        public_key=config.public_key.get_secret_value(),
        private_key=config.private_key.get_secret_value(),
    )
    http = httpx.AsyncClient(
        base_url=f"{config.base_url.rstrip('/')}{config.revision.prefix}",
        auth=HelpdeskAuth(credentials),
        timeout=httpx.Timeout(timeout),
        headers={"Accept": "application/json"},
        transport=transport,
    )
    return TenantContext(
        name=name,
        revision=config.revision,
        client=PagingClient(http, backoff=backoff, tenant=name),
        scheduler=TenantScheduler(name),
    )


class TenantRegistry:
    """Read-only mapping of tenant name to :class:`TenantContext`.

    Also exposes the operational controls used by the worker process:
    pause/resume every scheduler and drain them on shutdown.
    """

    def __init__(self, contexts: Mapping[str, TenantContext]) -> None:
        self._contexts: Mapping[str, TenantContext] = MappingProxyType(dict(contexts))

    @classmethod
    def from_config(
        cls,
        tenants: Mapping[str, TenantConfig],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        backoff: float = 0.25,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TenantRegistry:
        """Build a registry from validated tenant configuration."""
        contexts = {
            name: create_tenant_context(
                name, config, timeout=timeout, backoff=backoff, transport=transport
            )
            for name, config in tenants.items()
        }
        logger.info(
            "tenant_registry_created",
            tenants=sorted(contexts),
            revisions={name: str(c.revision) for name, c in contexts.items()},
        )
        return cls(contexts)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TenantRegistry:
        """Load the tenant file named by settings and build a registry."""
        return cls.from_config(
            load_tenants(settings.helpdesk_config_path),
            timeout=settings.request_timeout,
            backoff=settings.pagination_backoff,
            transport=transport,
        )

    def get(self, name: str) -> TenantContext:
        """Look up a tenant by exact name.

        Raises:
            UnknownTenantError: if no tenant is configured under ``name``.
        """
        try:
            return self._contexts[name]
        except KeyError:
            raise UnknownTenantError(name) from None

    @property
    def names(self) -> list[str]:
        return list(self._contexts)

    def __contains__(self, name: object) -> bool:
        return name in self._contexts

    def __iter__(self) -> Iterator[TenantContext]:
        return iter(self._contexts.values())

    def __len__(self) -> int:
        return len(self._contexts)

    # -- lifecycle ------------------------------------------------------

    def pause_all(self) -> None:
        for context in self:
            context.scheduler.pause()

    def resume_all(self) -> None:
        for context in self:
            context.scheduler.resume()

    async def drain_all(self) -> None:
        """Pause every scheduler, then wait for all accepted work."""
        self.pause_all()
        await asyncio.gather(*(context.scheduler.drain() for context in self))
        logger.info("tenant_registry_drained", tenants=len(self))

    async def aclose(self) -> None:
        """Drain all tenants, then release schedulers and HTTP clients."""
        await self.drain_all()
        for context in self:
            await context.scheduler.aclose()
            await context.client.http.aclose()
        logger.info("tenant_registry_closed")
