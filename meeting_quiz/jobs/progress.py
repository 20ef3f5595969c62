"""Checkpoint tracking for a single processing attempt."""

from __future__ import annotations

import logging

from meeting_quiz.jobs.models import ProcessingProgress, ProgressStep, WorkItemStatus, WorkItemUpdate
from meeting_quiz.storage.work_items_repo import WorkItemsRepository

logger = logging.getLogger(__name__)


class ProgressTracker:
  """Persist lifecycle checkpoints for one work item.

  Every checkpoint is flushed to the store before the pipeline moves on, so a
  poller always sees the latest completed step.
  """

  def __init__(self, *, item_id: str, repo: WorkItemsRepository) -> None:
    self._item_id = item_id
    self._repo = repo
    self._last: ProcessingProgress | None = None

  @property
  def last(self) -> ProcessingProgress | None:
    """Return the most recently written checkpoint."""
    return self._last

  async def _write(self, status: WorkItemStatus, update: WorkItemUpdate, progress: ProcessingProgress) -> None:
    await self._repo.merge_set(self._item_id, status, update)
    self._last = progress
    logger.info("Work item %s -> %s step=%s percent=%s message=%s", self._item_id, status, progress.step, progress.percent, progress.message)

  async def start(self, *, step: ProgressStep, message: str, percent: float, question_count: int) -> None:
    """Open a new attempt, wiping the results of any earlier one."""
    progress = ProcessingProgress(step=step, message=message, percent=percent)
    await self._write("processing", WorkItemUpdate.start_attempt(progress=progress, question_count=question_count), progress)

  async def checkpoint(self, *, step: ProgressStep, message: str, percent: float, update: WorkItemUpdate | None = None) -> None:
    """Record an intermediate step, optionally merging extra fields."""
    progress = ProcessingProgress(step=step, message=message, percent=percent)
    fields = (update or WorkItemUpdate()).changes()
    fields["progress"] = progress
    await self._write("processing", WorkItemUpdate(**fields), progress)

  async def succeed(self, *, update: WorkItemUpdate) -> None:
    """Record the terminal success checkpoint together with the results."""
    progress = ProcessingProgress(step="done", message="Completed", percent=100)
    fields = update.changes()
    fields["progress"] = progress
    await self._write("succeeded", WorkItemUpdate(**fields), progress)

  async def fail(self, *, message: str) -> None:
    """Record the terminal failure checkpoint."""
    progress = ProcessingProgress(step="error", message=message, percent=100)
    await self._write("failed", WorkItemUpdate(error=message, progress=progress), progress)
