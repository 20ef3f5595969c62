"""Bounded in-process worker pool for detached processing runs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingJob:
  """A request to run the pipeline for one document."""

  item_id: str
  force: bool = False
  question_count: int | None = None


JobHandler = Callable[[ProcessingJob], Awaitable[object]]
FailureHandler = Callable[[ProcessingJob, Exception], Awaitable[None]]


class ProcessingWorkerPool:
  """Consume queued jobs with a fixed number of asyncio workers.

  The queue is bounded: `submit` waits when it is full instead of spawning more
  pipelines. An id that is already queued or running is not queued twice.
  """

  def __init__(self, *, handler: JobHandler, on_failure: FailureHandler, concurrency: int = 2, queue_size: int = 100) -> None:
    if concurrency < 1:
      raise ValueError("Worker concurrency must be at least 1.")
    self._handler = handler
    self._on_failure = on_failure
    self._concurrency = concurrency
    self._queue: asyncio.Queue[ProcessingJob] = asyncio.Queue(maxsize=queue_size)
    self._pending: set[str] = set()
    self._workers: list[asyncio.Task[None]] = []

  @property
  def running(self) -> bool:
    return bool(self._workers)

  def is_pending(self, item_id: str) -> bool:
    """Return True while the id is queued or being processed."""
    return item_id in self._pending

  def start(self) -> None:
    """Spawn the worker tasks on the running event loop."""
    if self._workers:
      return
    self._workers = [asyncio.create_task(self._worker_loop(index), name=f"quiz-worker-{index}") for index in range(self._concurrency)]
    logger.info("Started %d processing workers (queue size %d)", self._concurrency, self._queue.maxsize)

  async def submit(self, job: ProcessingJob) -> bool:
    """Queue a job; return False when the same id is already pending."""
    if not self._workers:
      self.start()

    if job.item_id in self._pending:
      logger.info("Skipping duplicate submission for %s; a run is already pending", job.item_id)
      return False

    self._pending.add(job.item_id)
    try:
      await self._queue.put(job)
    except asyncio.CancelledError:
      self._pending.discard(job.item_id)
      raise
    return True

  async def join(self) -> None:
    """Wait until every queued job has finished."""
    await self._queue.join()

  async def stop(self) -> None:
    """Cancel the workers; queued jobs that never started are dropped."""
    workers, self._workers = self._workers, []
    for task in workers:
      task.cancel()
    await asyncio.gather(*workers, return_exceptions=True)

  async def _worker_loop(self, index: int) -> None:
    while True:
      job = await self._queue.get()
      try:
        await self._run(job)
      finally:
        self._pending.discard(job.item_id)
        self._queue.task_done()

  async def _run(self, job: ProcessingJob) -> None:
    try:
      await self._handler(job)
    except Exception as exc:  # noqa: BLE001
      logger.error("Detached processing failed for %s", job.item_id, exc_info=True)
      try:
        await self._on_failure(job, exc)
      except Exception:  # noqa: BLE001
        # Nothing left to persist to; keep the worker alive for the next job.
        logger.exception("Could not record failure for %s", job.item_id)
