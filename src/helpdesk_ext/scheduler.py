"""Per-tenant FIFO scheduler.

Because of the strictly increasing nonce, requests to one helpdesk
cannot run concurrently. Each tenant gets a scheduler: accepted actions
go into a queue drained by a single background task, so they run one
at a time in submission order, while the worker stays free to serve
other tenants.

The scheduler can be paused (new submissions are rejected, accepted
work still runs) and drained (wait for everything accepted so far),
which is how the worker shuts down without dropping in-flight requests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from helpdesk_ext.errors import WorkerUnavailableError

logger = structlog.get_logger()

Action = Callable[[], Awaitable[Any]]


@dataclass
class _PendingAction:
    action: Action
    future: asyncio.Future[Any]
    # Set by the worker once the action is out of the queue, even when
    # the caller cancelled ``future``.
    settled: asyncio.Event


class TenantScheduler:
    """FIFO execution queue bound to one tenant.

    Usage::

        scheduler = TenantScheduler("acme")
        items = await scheduler.submit(lambda: client.fetch_all("tags"))

    A failing action only fails its own future; the queue moves on.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._paused = False
        self._queue: asyncio.Queue[_PendingAction] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._last: asyncio.Event | None = None
        self._pending = 0

    @property
    def is_paused(self) -> bool:
        """Whether new submissions are currently rejected."""
        return self._paused

    @property
    def pending(self) -> int:
        """Accepted actions that have not settled yet."""
        return self._pending

    def pause(self) -> TenantScheduler:
        """Stop accepting new actions. Idempotent."""
        if not self._paused:
            self._paused = True
            logger.info("scheduler_paused", tenant=self.name, pending=self._pending)
        return self

    def resume(self) -> TenantScheduler:
        """Accept new actions again. Idempotent."""
        if self._paused:
            self._paused = False
            logger.info("scheduler_resumed", tenant=self.name)
        return self

    def submit(self, action: Action) -> asyncio.Future[Any]:
        """Queue ``action`` behind every action accepted before it.

        Must be called from within a running event loop.

        Returns:
            Future resolved with the action's result or exception. While
            paused, the future is already failed with
            WorkerUnavailableError and the action is never queued.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        if self._paused:
            logger.warning("scheduler_rejected", tenant=self.name)
            future.set_exception(WorkerUnavailableError())
            return future

        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(
                self._run(self._queue), name=f"scheduler:{self.name}"
            )

        settled = asyncio.Event()
        self._queue.put_nowait(_PendingAction(action, future, settled))
        self._last = settled
        self._pending += 1
        return future

    async def drain(self) -> None:
        """Wait until every action accepted so far has settled.

        Outcomes are not inspected; failed actions count as settled.
        """
        last = self._last
        if last is not None:
            await last.wait()

    async def aclose(self) -> None:
        """Drain, then stop the background task."""
        await self.drain()
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

    async def _run(self, queue: asyncio.Queue[_PendingAction]) -> None:
        try:
            while True:
                pending = await queue.get()
                try:
                    await self._execute(pending)
                finally:
                    self._settle(pending)
                    queue.task_done()
        finally:
            # Nothing will run what is still queued once this task stops.
            while not queue.empty():
                pending = queue.get_nowait()
                pending.future.cancel()
                self._settle(pending)
                queue.task_done()

    def _settle(self, pending: _PendingAction) -> None:
        self._pending -= 1
        pending.settled.set()

    async def _execute(self, pending: _PendingAction) -> None:
        future = pending.future
        if future.cancelled():
            logger.debug("scheduler_action_skipped", tenant=self.name)
            return

        try:
            result = await pending.action()
        except asyncio.CancelledError:
            future.cancel()
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning("scheduler_action_cancelled", tenant=self.name)
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        except BaseException:
            future.cancel()
            raise
        else:
            if not future.done():
                future.set_result(result)
