"""Shared fixtures for integration tests requiring live infrastructure."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

import pytest
from arq.connections import ArqRedis, RedisSettings, create_pool

from helpdesk_ext.config import get_settings


@pytest.fixture()
async def arq_redis() -> AsyncGenerator[ArqRedis]:
    """Create and close a real ArqRedis connection pool.

    Each test gets its own queue name so leftover jobs never leak between
    runs.
    """
    pool = await create_pool(
        RedisSettings.from_dsn(get_settings().redis_url),
        default_queue_name=f"helpdesk-test:{uuid.uuid4().hex}",
    )
    yield pool
    await pool.aclose()
