"""Storage interface for document work items."""

from __future__ import annotations

from typing import Protocol

from meeting_quiz.jobs.models import WorkItem, WorkItemStatus, WorkItemUpdate


class WorkItemsRepository(Protocol):
  """Repository contract for work item persistence.

  Implementations populate `createdAt` on the first write for an id and refresh
  `updatedAt` on every write. Backend failures surface as `StoreUnavailableError`.
  """

  async def get(self, item_id: str) -> WorkItem | None:
    """Fetch a work item by document id."""

  async def merge_set(self, item_id: str, status: WorkItemStatus, update: WorkItemUpdate) -> None:
    """Set the status and merge the partial update onto the stored item."""

  async def list_recent(self, limit: int = 20) -> list[WorkItem]:
    """Return the most recently updated items, newest first."""
