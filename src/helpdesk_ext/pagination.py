"""Paginated list fetching over a tenant's signed HTTP client.

The server reports its page size and the collection size in the
``pagination-limit`` and ``pagination-count`` response headers. The next
page is requested with ``offset`` advanced by the page size; a caller
supplied ``limit`` is consumed page by page and caps the total.

A fetch-all is all or nothing: the first failing page aborts it.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from helpdesk_ext.errors import ListFetchError
from helpdesk_ext.restful import Endpoint

logger = structlog.get_logger()

PAGE_SIZE_HEADER = "pagination-limit"
TOTAL_COUNT_HEADER = "pagination-count"

# Resource links embedded by the upstream API are never passed on
LINK_KEYS: frozenset[str] = frozenset({"href"})


def _without_links(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    return {key: value for key, value in pairs if key not in LINK_KEYS}


def parse_json(text: str) -> Any:
    """Decode JSON, dropping link keys at every nesting level.

    Raises:
        ValueError: if ``text`` is not valid JSON.
    """
    return json.loads(text, object_pairs_hook=_without_links)


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def next_page(
    params: Mapping[str, Any],
    headers: Mapping[str, str],
) -> dict[str, int] | None:
    """Compute the cursor of the page after the one just fetched.

    Args:
        params: Query parameters of the request that was just sent.
        headers: Headers of its response.

    Returns:
        ``{"offset": ..., "limit": ...}`` overrides for the next request
        (``limit`` only when the caller set one), or None when the
        current page is the last one.
    """
    page_size = _to_int(headers.get(PAGE_SIZE_HEADER))
    total = _to_int(headers.get(TOTAL_COUNT_HEADER))
    if page_size is None or page_size <= 0 or total is None:
        return None

    offset = (_to_int(params.get("offset")) or 0) + page_size
    if offset >= total:
        return None

    cursor = {"offset": offset}
    if params.get("limit") is not None:
        remaining = (_to_int(params["limit"]) or 0) - page_size
        if remaining < 1:
            return None
        cursor["limit"] = remaining
    return cursor


class PagingClient:
    """Walks a paginated collection to completion.

    Wraps the tenant's bound ``httpx.AsyncClient``; signing happens in
    the client's auth hook on every page request. No internal locking:
    callers must go through the tenant scheduler.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        backoff: float = 0.25,
        tenant: str = "",
    ) -> None:
        self._http = http
        self._backoff = backoff
        self._tenant = tenant

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def fetch_all(
        self,
        endpoint: Endpoint | str,
        params: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Fetch every page of ``endpoint`` and return the items in order.

        Args:
            endpoint: Collection endpoint, relative to the revision root.
            params: Query parameters of the first page request.

        Raises:
            ListFetchError: on transport failure, non-2xx status, or an
                undecodable body. No partial result is returned.
        """
        endpoint = Endpoint(endpoint)
        log = logger.bind(tenant=self._tenant, endpoint=endpoint.value)

        request_params: dict[str, Any] = dict(params or {})
        items: list[Any] = []
        pages = 0

        while True:
            response = await self._get_page(endpoint, request_params)
            page = self._decode(endpoint, response)
            pages += 1

            if isinstance(page, list):
                items.extend(page)
            else:
                items.append(page)

            log.debug(
                "helpdesk_page_fetched",
                page=pages,
                offset=request_params.get("offset", 0),
                page_size=response.headers.get(PAGE_SIZE_HEADER),
                total=response.headers.get(TOTAL_COUNT_HEADER),
            )

            cursor = next_page(request_params, response.headers)
            if cursor is None:
                break

            request_params = {**request_params, **cursor}
            await asyncio.sleep(self._backoff)

        log.info("helpdesk_list_fetched", pages=pages, items=len(items))
        return items

    async def _get_page(
        self,
        endpoint: Endpoint,
        params: dict[str, Any],
    ) -> httpx.Response:
        try:
            response = await self._http.get(endpoint.value, params=params)
        except httpx.HTTPError as exc:
            detail = str(exc) or type(exc).__name__
            logger.warning(
                "helpdesk_page_failed",
                tenant=self._tenant,
                endpoint=endpoint.value,
                error=detail,
            )
            raise ListFetchError(endpoint, detail) from exc

        if not response.is_success:
            detail = f"HTTP {response.status_code} {response.reason_phrase}".strip()
            logger.warning(
                "helpdesk_page_failed",
                tenant=self._tenant,
                endpoint=endpoint.value,
                status_code=response.status_code,
            )
            raise ListFetchError(endpoint, detail)
        return response

    @staticmethod
    def _decode(endpoint: Endpoint, response: httpx.Response) -> Any:
        try:
            return parse_json(response.text)
        except ValueError as exc:
            raise ListFetchError(endpoint, f"Invalid JSON response: {exc}") from exc
