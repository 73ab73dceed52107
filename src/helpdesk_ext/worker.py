"""ARQ worker configuration and lifecycle hooks.

Run with::

    arq helpdesk_ext.worker.WorkerSettings

Or in Docker::

    python -m arq helpdesk_ext.worker.WorkerSettings

Operators can suspend service without stopping the process: SIGTSTP
pauses every tenant scheduler (new requests fail fast with "Worker
unavailable"), SIGCONT resumes them.
"""

import asyncio
import signal
from collections.abc import Mapping
from typing import Any, ClassVar

import structlog
from arq.connections import RedisSettings

from helpdesk_ext.config import get_settings
from helpdesk_ext.handler import RequestHandler
from helpdesk_ext.logging_config import configure_logging
from helpdesk_ext.registry import TenantRegistry

WorkerCtx = dict[str, Any]

PAUSE_SIGNAL = signal.SIGTSTP
RESUME_SIGNAL = signal.SIGCONT


async def helpdesk_request(
    ctx: WorkerCtx,
    service: str,
    payload: Mapping[str, Any],
) -> list[Any]:
    """Serve one RPC request: ``payload = {"action": ..., "args": [...]}``."""
    handler: RequestHandler = ctx["handler"]
    return await handler.dispatch(service, payload)


def on_scheduler_signal(registry: TenantRegistry, signum: int) -> None:
    """Pause or resume every tenant scheduler."""
    if signum == PAUSE_SIGNAL:
        registry.pause_all()
    elif signum == RESUME_SIGNAL:
        registry.resume_all()

    log = structlog.get_logger()
    for context in registry:
        log.warning(
            "scheduler_state_changed",
            tenant=context.name,
            state="paused" if context.scheduler.is_paused else "resumed",
            signal=signal.Signals(signum).name,
        )


def install_signal_handlers(registry: TenantRegistry) -> None:
    loop = asyncio.get_running_loop()
    for signum in (PAUSE_SIGNAL, RESUME_SIGNAL):
        loop.add_signal_handler(signum, on_scheduler_signal, registry, signum)


def remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for signum in (PAUSE_SIGNAL, RESUME_SIGNAL):
        loop.remove_signal_handler(signum)


async def startup(ctx: WorkerCtx) -> None:
    """Initialize worker resources on startup.

    Loads the tenant file, builds the registry and request handler,
    and stores them in the worker context for use by task functions.
    """
    s = get_settings()
    configure_logging(
        environment=str(s.environment),
        log_level=s.log_level,
    )

    registry = TenantRegistry.from_settings(s)
    ctx["registry"] = registry
    ctx["handler"] = RequestHandler(registry)
    install_signal_handlers(registry)

    log = structlog.get_logger()
    log.info(
        "worker_started",
        redis_url=s.redis_url,
        max_jobs=s.worker_max_jobs,
        tenants=registry.names,
    )


async def shutdown(ctx: WorkerCtx) -> None:
    """Stop accepting work, wait for in-flight tenant requests, release clients."""
    log = structlog.get_logger()

    registry: TenantRegistry | None = ctx.get("registry")
    if registry is not None:
        remove_signal_handlers()
        await registry.aclose()

    log.info("worker_stopped")


class WorkerSettings:
    """ARQ worker settings, consumed by the ``arq`` CLI."""

    _settings = get_settings()

    redis_settings: RedisSettings = RedisSettings.from_dsn(
        _settings.redis_url,
    )
    functions: ClassVar[list[Any]] = [helpdesk_request]
    on_startup = startup
    on_shutdown = shutdown

    max_jobs: int = _settings.worker_max_jobs
    job_timeout: int = _settings.worker_job_timeout
    # Failed actions are never retried
    max_tries: int = 1

    keep_result: int = 3600
    poll_delay: float = 0.5
