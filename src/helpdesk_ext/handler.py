"""Request handling: validate, resolve tenant, schedule the fetch.

Independent of any RPC framework; the worker host (``worker.py``) or
any other transport composes a :class:`RequestHandler` and awaits it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from helpdesk_ext.errors import (
    HelpdeskError,
    ParamsValidationError,
    UnknownActionError,
    UnknownTenantError,
)
from helpdesk_ext.registry import TenantRegistry
from helpdesk_ext.restful import Endpoint
from helpdesk_ext.validation import SCHEMAS, validate_params

logger = structlog.get_logger()

SERVICE_PREFIX = "rest:ext:helpdesk:"

ACTIONS: Mapping[str, Endpoint] = {
    "getDepartments": Endpoint.DEPARTMENTS,
    "getTopics": Endpoint.TOPICS,
    "getTags": Endpoint.TAGS,
    "getAgents": Endpoint.AGENTS,
    "getTeams": Endpoint.TEAMS,
}


def tenant_from_service(service: str) -> str:
    """Extract the tenant name from ``rest:ext:helpdesk:<tenant>``.

    Raises:
        UnknownTenantError: if ``service`` does not name a tenant.
    """
    if not service.startswith(SERVICE_PREFIX) or service == SERVICE_PREFIX:
        raise UnknownTenantError(service)
    return service[len(SERVICE_PREFIX) :]


class RequestHandler:
    """Serves list actions for every tenant in the registry.

    Each call gets exactly one outcome: the full item list, or one
    :class:`~helpdesk_ext.errors.HelpdeskError`.
    """

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> TenantRegistry:
        return self._registry

    async def handle(
        self,
        tenant: str,
        action: str,
        params: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Run a list action for a tenant.

        Args:
            tenant: Tenant name.
            action: One of :data:`ACTIONS`, e.g. ``getTeams``.
            params: Raw list params; None means no params.

        Raises:
            UnknownActionError: if ``action`` is not served.
            ParamsValidationError: if params fail the action's schema.
            UnknownTenantError: if ``tenant`` is not configured.
            WorkerUnavailableError: if the tenant scheduler is paused.
            ListFetchError: if any page request fails.
        """
        log = logger.bind(tenant=tenant, action=action)

        endpoint = ACTIONS.get(action)
        if endpoint is None:
            log.warning("helpdesk_action_unknown")
            raise UnknownActionError(action)

        try:
            query = validate_params(SCHEMAS[endpoint], {} if params is None else params)
        except HelpdeskError as exc:
            log.info("helpdesk_params_rejected", error=str(exc))
            raise

        return await self.fetch_all(tenant, endpoint, query)

    async def fetch_all(
        self,
        tenant: str,
        endpoint: Endpoint | str,
        params: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Fetch every item of ``endpoint`` for ``tenant``, serialized per tenant.

        Params are sent as given, without schema validation.
        """
        log = logger.bind(tenant=tenant, endpoint=str(endpoint))
        context = self._registry.get(tenant)

        try:
            endpoint = Endpoint(endpoint)
        except ValueError:
            raise UnknownActionError(str(endpoint)) from None

        query = dict(params or {})
        log.debug("helpdesk_request_scheduled", pending=context.scheduler.pending)

        try:
            return await context.scheduler.submit(
                lambda: context.client.fetch_all(endpoint, query)
            )
        except HelpdeskError as exc:
            log.warning("helpdesk_request_failed", error=str(exc))
            raise

    async def dispatch(self, service: str, payload: Mapping[str, Any]) -> list[Any]:
        """RPC-shaped entry point.

        Args:
            service: ``rest:ext:helpdesk:<tenant>``.
            payload: ``{"action": ..., "args": [params]}``; ``args`` is
                optional.

        Raises:
            ParamsValidationError: if ``args`` is present but not an array.
        """
        tenant = tenant_from_service(service)
        args = payload.get("args")
        if args is None:
            args = []
        elif not isinstance(args, list | tuple):
            exc = ParamsValidationError([{"message": "The 'args' must be an Array."}])
            logger.info("helpdesk_params_rejected", tenant=tenant, error=str(exc))
            raise exc
        params = args[0] if args else None
        return await self.handle(tenant, str(payload.get("action", "")), params)
