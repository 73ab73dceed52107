"""Integration tests: helpdesk_request jobs through a real arq worker.

The helpdesk itself is a MockTransport fixture server; only Redis is
real.

Requires ``docker compose up -d redis``.
Run with: ``uv run pytest tests/integration --run-redis -v``
"""

from __future__ import annotations

from typing import Any

import pytest
from arq.connections import ArqRedis, RedisSettings
from arq.worker import Worker

from helpdesk_ext.config import get_settings
from helpdesk_ext.errors import UnknownTenantError, WorkerUnavailableError
from helpdesk_ext.handler import RequestHandler
from helpdesk_ext.registry import TenantRegistry
from helpdesk_ext.worker import helpdesk_request
from tests.fixtures import PagedServer, make_tenant_config

pytestmark = pytest.mark.requires_redis


def _worker(arq_redis: ArqRedis, registry: TenantRegistry) -> Worker:
    """Burst worker on its own connection; close() closes its pool."""

    async def on_startup(ctx: dict[str, Any]) -> None:
        ctx["registry"] = registry
        ctx["handler"] = RequestHandler(registry)

    return Worker(
        functions=[helpdesk_request],
        redis_settings=RedisSettings.from_dsn(get_settings().redis_url),
        queue_name=arq_redis.default_queue_name,
        on_startup=on_startup,
        burst=True,
        handle_signals=False,
        max_tries=1,
        poll_delay=0.1,
    )


class TestHelpdeskRequestJob:
    async def test_result_returned_to_caller(self, arq_redis: ArqRedis) -> None:
        server = PagedServer([{"id": 1}, {"id": 2}, {"id": 3}], page_size=2)
        registry = TenantRegistry.from_config(
            {"acme": make_tenant_config()}, transport=server.transport, backoff=0
        )

        job = await arq_redis.enqueue_job(
            "helpdesk_request",
            "rest:ext:helpdesk:acme",
            {"action": "getTags", "args": [{"sort": "desc"}]},
        )
        assert job is not None

        worker = _worker(arq_redis, registry)
        try:
            await worker.main()
        finally:
            await worker.close()
            await registry.aclose()

        assert await job.result(timeout=5) == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert len(server.requests) == 2

    async def test_error_delivered_with_message(self, arq_redis: ArqRedis) -> None:
        registry = TenantRegistry.from_config({"acme": make_tenant_config()})

        job = await arq_redis.enqueue_job(
            "helpdesk_request", "rest:ext:helpdesk:nope", {"action": "getTags"}
        )
        assert job is not None

        worker = _worker(arq_redis, registry)
        try:
            await worker.main()
        finally:
            await worker.close()
            await registry.aclose()

        with pytest.raises(UnknownTenantError, match="Unknown helpdesk 'nope'"):
            await job.result(timeout=5)

    async def test_paused_worker_rejects(self, arq_redis: ArqRedis) -> None:
        server = PagedServer([{"id": 1}])
        registry = TenantRegistry.from_config(
            {"acme": make_tenant_config()}, transport=server.transport, backoff=0
        )
        registry.pause_all()

        job = await arq_redis.enqueue_job(
            "helpdesk_request", "rest:ext:helpdesk:acme", {"action": "getTeams"}
        )
        assert job is not None

        worker = _worker(arq_redis, registry)
        try:
            await worker.main()
        finally:
            await worker.close()
            await registry.aclose()

        with pytest.raises(WorkerUnavailableError):
            await job.result(timeout=5)
        assert server.requests == []
