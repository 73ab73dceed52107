"""Multi-tenant client for the helpdesk RESTful API.

Quick start::

    from helpdesk_ext.config import get_settings
    from helpdesk_ext.registry import TenantRegistry
    from helpdesk_ext.handler import RequestHandler

    registry = TenantRegistry.from_settings(get_settings())
    handler = RequestHandler(registry)
    teams = await handler.handle("acme", "getTeams", {"sort": "desc"})
"""

from helpdesk_ext.handler import RequestHandler
from helpdesk_ext.registry import TenantContext, TenantRegistry
from helpdesk_ext.scheduler import TenantScheduler

__all__ = [
    "RequestHandler",
    "TenantContext",
    "TenantRegistry",
    "TenantScheduler",
]
