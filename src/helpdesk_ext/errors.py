"""Domain-specific exceptions for helpdesk-ext.

Every error delivered to a caller derives from :class:`HelpdeskError`,
so the RPC boundary can translate them into a single error string.
Errors carrying constructor arguments define ``__reduce__`` so they
survive pickling into arq job results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from helpdesk_ext.restful import Endpoint


class HelpdeskError(Exception):
    """Base class for all errors surfaced to callers."""


class ConfigurationError(HelpdeskError):
    """Tenant configuration file is malformed or incomplete."""


class ParamsValidationError(HelpdeskError):
    """Caller input failed schema checks.

    Attributes:
        errors: List of ``{"message": ...}`` dicts, first failure only.
    """

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        details = "; ".join(e["message"] for e in errors)
        super().__init__(f"ERR_API_VALIDATION: {details}")

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.errors,))


class WorkerUnavailableError(HelpdeskError):
    """Tenant scheduler is paused; the action was not accepted."""

    def __init__(self) -> None:
        super().__init__("ERR_API_ACTION: Worker unavailable")

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), ())


class UnknownTenantError(HelpdeskError, KeyError):
    """No registry entry for the requested tenant name."""

    def __init__(self, tenant: str) -> None:
        self.tenant = tenant
        super().__init__(f"ERR_API_TENANT: Unknown helpdesk '{tenant}'")

    def __str__(self) -> str:
        return str(self.args[0])

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.tenant,))


class UnknownActionError(HelpdeskError):
    """Requested action is not served by this worker."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"ERR_API_ACTION: Unknown action '{action}'")

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.action,))


class ListFetchError(HelpdeskError):
    """A page fetch failed; the whole fetch-all is abandoned."""

    def __init__(self, endpoint: Endpoint, detail: str) -> None:
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(f"{endpoint.error_code}: {detail}")

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.endpoint, self.detail))
