"""Fixture helpdesk server and tenant config factories for tests."""

from __future__ import annotations

import json
from typing import Any

import httpx

from helpdesk_ext.config import TenantConfig


def make_tenant_config(
    revision: str = "v2",
    base_url: str = "https://acme.helpdesk.test",
    public_key: str = "pub-acme",
    private_key: str = "sec-acme",
) -> TenantConfig:
    return TenantConfig.model_validate(
        {
            "baseUrl": base_url,
            "revision": revision,
            "publicKey": public_key,
            "privateKey": private_key,
        }
    )


class PagedServer:
    """Fixture helpdesk serving ``items`` in pages of ``page_size``.

    Honors ``offset`` and ``limit`` query params, reports the
    ``pagination-*`` headers, and records every request received.
    ``fail_at`` makes the n-th request (1-based) answer HTTP 500.
    """

    def __init__(
        self,
        items: list[Any],
        page_size: int = 2,
        *,
        fail_at: int | None = None,
    ) -> None:
        self.items = items
        self.page_size = page_size
        self.fail_at = fail_at
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_at is not None and len(self.requests) == self.fail_at:
            return httpx.Response(500, json={"error": "boom"})

        offset = int(request.url.params.get("offset", 0))
        size = self.page_size
        if "limit" in request.url.params:
            size = min(size, int(request.url.params["limit"]))

        page = self.items[offset : offset + size]
        return httpx.Response(
            200,
            headers={
                "pagination-limit": str(size),
                "pagination-count": str(len(self.items)),
            },
            content=json.dumps(page).encode(),
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def offsets(self) -> list[str | None]:
        return [r.url.params.get("offset") for r in self.requests]
