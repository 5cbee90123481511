from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..domain.ports.notifications import NotificationError, NotificationSink

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    VERIFICATION = "verification"
    WELCOME = "welcome"
    RESET_LINK = "reset_link"
    RESET_SUCCESS = "reset_success"


@dataclass(slots=True, frozen=True)
class NotificationJob:
    kind: NotificationKind
    email: str
    name: Optional[str] = None
    code: Optional[str] = None
    url: Optional[str] = None


_QueueItem = Optional[Tuple[NotificationJob, Optional[asyncio.Future]]]


class NotificationDispatcher:
    """Bounded background queue that hands notification jobs to a sink.

    ``enqueue`` is fire-and-forget: delivery failures are logged by the worker.
    ``submit`` returns a future that resolves once the job was delivered, or
    carries the delivery error.
    """

    def __init__(self, sink: NotificationSink, *, queue_size: int = 100, max_workers: int = 2) -> None:
        self._sink = sink
        self._max_workers = max_workers
        self._queue: asyncio.Queue[_QueueItem] = asyncio.Queue(maxsize=queue_size)
        self._workers: List[asyncio.Task[None]] = []
        self._shutdown = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._shutdown.is_set()

    async def start(self) -> None:
        if self._workers:
            return
        logger.info("Starting notification dispatcher with %s workers.", self._max_workers)
        self._shutdown.clear()
        loop = asyncio.get_running_loop()
        for _ in range(self._max_workers):
            task = loop.create_task(self._worker(), name="notification-dispatcher")
            self._workers.append(task)

    async def stop(self) -> None:
        if not self._workers:
            return
        logger.info("Stopping notification dispatcher.")
        self._shutdown.set()
        for _ in self._workers:
            await self._queue.put(None)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def drain(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def enqueue(self, job: NotificationJob) -> None:
        if not self.is_running:
            logger.warning("Notification dispatcher is not running; dropping %s email for %s.", job.kind.value, job.email)
            return
        await self._queue.put((job, None))

    async def submit(self, job: NotificationJob) -> "asyncio.Future[None]":
        if not self.is_running:
            raise NotificationError("Notification dispatcher is not running.")
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._queue.put((job, future))
        return future

    async def _worker(self) -> None:
        while True:
            item = await self._queue.get()
            if item is None:
                self._queue.task_done()
                break
            job, future = item
            try:
                await self._deliver(job)
            except Exception as exc:
                if future is None:
                    logger.exception("Failed to deliver %s email to %s.", job.kind.value, job.email)
                elif not future.done():
                    future.set_exception(_as_notification_error(job, exc))
            else:
                if future is not None and not future.done():
                    future.set_result(None)
            finally:
                self._queue.task_done()

    async def _deliver(self, job: NotificationJob) -> None:
        logger.debug("Delivering %s email to %s", job.kind.value, job.email)
        if job.kind is NotificationKind.VERIFICATION:
            await self._sink.send_verification(job.email, job.code or "")
        elif job.kind is NotificationKind.WELCOME:
            await self._sink.send_welcome(job.email, job.name or "")
        elif job.kind is NotificationKind.RESET_LINK:
            await self._sink.send_reset_link(job.email, job.url or "")
        elif job.kind is NotificationKind.RESET_SUCCESS:
            await self._sink.send_reset_success(job.email)
        else:  # pragma: no cover - exhaustive enum
            raise NotificationError(f"Unknown notification kind: {job.kind}")


def _as_notification_error(job: NotificationJob, exc: Exception) -> NotificationError:
    if isinstance(exc, NotificationError):
        return exc
    error = NotificationError(f"Failed to deliver {job.kind.value} email to {job.email}: {exc}")
    error.__cause__ = exc
    return error
