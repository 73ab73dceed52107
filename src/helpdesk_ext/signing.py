"""Request signing for both helpdesk API revisions.

Revision 2 signs ``path + nonce + body`` and sends three ``bfx-*``
headers next to the untouched body. Revision 1 moves every parameter
into a base64 JSON payload header, signs that payload, and sends an
empty body.

Nonces must be strictly increasing per API key. The signer itself is
pure; ordering is the job of the tenant scheduler, which guarantees that
a tenant never has two requests in flight. :class:`NonceSource` only
keeps two back-to-back requests inside the same millisecond apart.
"""

from __future__ import annotations

import base64
import hmac
import json
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from helpdesk_ext.restful import Revision

logger = structlog.get_logger()


@dataclass(frozen=True)
class Credentials:
    """Key pair of one helpdesk account."""

    public_key: str
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class SignedPayload:
    """Headers to add and the body to send for one signed request."""

    headers: dict[str, str]
    body: bytes


def sign(message: str | bytes, private_key: str, algorithm: str = "sha384") -> str:
    """HMAC ``message`` with ``private_key``, hex-encoded."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(private_key.encode("utf-8"), message, algorithm).hexdigest()


def _parse_object(body: bytes) -> dict[str, Any]:
    """Decode a request body as a JSON object, ``{}`` when it is not one."""
    if not body:
        return {}
    try:
        parsed = json.loads(body)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def sign_payload(
    revision: Revision,
    path: str,
    body: bytes,
    nonce: str,
    credentials: Credentials,
) -> SignedPayload:
    """Compute auth headers and outgoing body for a request.

    Args:
        revision: API revision the request path belongs to.
        path: URL path, without query string.
        body: Logical request body (may be empty).
        nonce: Strictly increasing nonce, as a decimal string.
        credentials: Tenant key pair.

    Returns:
        SignedPayload; identical inputs always yield identical output.
    """
    if revision is Revision.V2:
        message = path.encode("utf-8") + nonce.encode("utf-8") + body
        return SignedPayload(
            headers={
                "bfx-nonce": nonce,
                "bfx-apikey": credentials.public_key,
                "bfx-signature": sign(message, credentials.private_key),
            },
            body=body,
        )

    fields = _parse_object(body)
    fields["nonce"] = nonce
    fields["request"] = path
    encoded = json.dumps(fields, separators=(",", ":"), ensure_ascii=False)
    payload = base64.b64encode(encoded.encode("utf-8")).decode("ascii")

    return SignedPayload(
        headers={
            "x-bfx-payload": payload,
            "x-bfx-apikey": credentials.public_key,
            "x-bfx-signature": sign(payload, credentials.private_key),
            "content-length": "0",
        },
        body=b"",
    )


class NonceSource:
    """Millisecond wall-clock nonces that never repeat or go backwards."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        now = int(self._clock() * 1000)
        self._last = max(now, self._last + 1)
        return str(self._last)


class HelpdeskAuth(httpx.Auth):
    """httpx auth hook that signs every outgoing request.

    The revision is picked from the URL path. Paths under neither API
    root are sent unsigned.

    Not safe for concurrent use: one instance belongs to one tenant
    client, which only its scheduler may drive.
    """

    requires_request_body = True

    def __init__(
        self,
        credentials: Credentials,
        nonce_source: Callable[[], str] | None = None,
    ) -> None:
        self._credentials = credentials
        self._nonce = nonce_source or NonceSource()

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        yield self.sign_request(request)

    def sign_request(self, request: httpx.Request) -> httpx.Request:
        """Return the signed version of ``request``."""
        path = request.url.path
        revision = Revision.for_path(path)
        if revision is None:
            logger.warning("request_unsigned", path=path)
            return request

        signed = sign_payload(
            revision, path, request.content, self._nonce(), self._credentials
        )

        if revision is Revision.V2:
            request.headers.update(signed.headers)
            return request

        # Revision 1 replaces the body, so the request is rebuilt
        headers = request.headers.copy()
        headers.update(signed.headers)
        return httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=signed.body,
            extensions=request.extensions,
        )
