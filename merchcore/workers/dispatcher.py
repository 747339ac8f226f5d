# merchcore/workers/dispatcher.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import logging
import time

logger = logging.getLogger(__name__)

TaskFn = Callable[..., Awaitable[Any]]


@dataclass
class _Task:
    name: str
    fn: TaskFn
    args: tuple
    kwargs: Dict[str, Any]
    enqueued_at: float = field(default_factory=time.perf_counter)


class TaskDispatcher:
    """
    Bounded in-process queue for fire-and-forget side effects
    (popularity recompute, profile update).

    - submit() never blocks and never raises: a full queue drops the task (logged).
    - Each task runs at most once; failures are logged and discarded, never retried.
    - stop() drains whatever is queued before cancelling the workers.
    """

    def __init__(self, maxsize: int = 10_000, workers: int = 4):
        self.maxsize = maxsize
        self.n_workers = workers
        self._queue: Optional[asyncio.Queue[_Task]] = None
        self._workers: List[asyncio.Task] = []
        self.submitted = 0
        self.completed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"dispatcher-worker-{i}")
            for i in range(self.n_workers)
        ]
        logger.info("dispatcher started workers=%s maxsize=%s", self.n_workers, self.maxsize)

    async def stop(self) -> None:
        if not self.running:
            return
        await self._queue.join()
        for w in self._workers:
            w.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(
            "dispatcher stopped completed=%s failed=%s dropped=%s",
            self.completed, self.failed, self.dropped,
        )

    async def drain(self) -> None:
        """Wait until every queued task has finished (used by tests and shutdown)."""
        if self._queue is not None:
            await self._queue.join()

    def submit(self, name: str, fn: TaskFn, *args: Any, **kwargs: Any) -> bool:
        """Queue `fn(*args, **kwargs)`; returns False when the task was dropped."""
        if not self.running:
            self.dropped += 1
            logger.warning("dispatcher not running, dropped task=%s", name)
            return False
        try:
            self._queue.put_nowait(_Task(name, fn, args, kwargs))
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("dispatcher queue full (%s), dropped task=%s", self.maxsize, name)
            return False
        self.submitted += 1
        return True

    async def _worker(self, idx: int) -> None:
        while True:
            task = await self._queue.get()
            t0 = time.perf_counter()
            try:
                await task.fn(*task.args, **task.kwargs)
                self.completed += 1
                logger.debug(
                    "task done name=%s worker=%s wait=%.3fs run=%.3fs",
                    task.name, idx, t0 - task.enqueued_at, time.perf_counter() - t0,
                )
            except Exception:
                # Boundary of the fire-and-forget path: log, count, move on
                self.failed += 1
                logger.exception("task failed name=%s worker=%s", task.name, idx)
            finally:
                self._queue.task_done()

    def stats(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "queued": self._queue.qsize() if self._queue is not None else 0,
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "dropped": self.dropped,
        }
