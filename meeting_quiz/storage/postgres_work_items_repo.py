"""Postgres-backed repository for work items using SQLAlchemy."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meeting_quiz.core.database import get_session_factory
from meeting_quiz.core.exceptions import StoreUnavailableError
from meeting_quiz.jobs.models import ProcessingProgress, WorkItem, WorkItemStatus, WorkItemUpdate, apply_update
from meeting_quiz.schema.sql import WorkItemRow
from meeting_quiz.storage.work_items_repo import WorkItemsRepository


class PostgresWorkItemsRepository(WorkItemsRepository):
  """Persist work items to the `work_items` table."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get(self, item_id: str) -> WorkItem | None:
    try:
      async with self._session_factory() as session:
        row = await session.get(WorkItemRow, item_id)
        if row is None:
          return None
        return _row_to_item(row)
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Failed to read work item {item_id}: {exc}", item_id=item_id) from exc

  async def merge_set(self, item_id: str, status: WorkItemStatus, update: WorkItemUpdate) -> None:
    try:
      async with self._session_factory() as session:
        # Lock the row so concurrent merges for one id apply one after the other.
        stmt = select(WorkItemRow).where(WorkItemRow.id == item_id).with_for_update()
        row = (await session.execute(stmt)).scalar_one_or_none()
        existing = _row_to_item(row) if row is not None else None
        merged = apply_update(existing, item_id, status, update)
        if row is None:
          row = WorkItemRow(id=item_id)
          session.add(row)
        _copy_item_to_row(merged, row)
        await session.commit()
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Failed to write work item {item_id}: {exc}", item_id=item_id) from exc

  async def list_recent(self, limit: int = 20) -> list[WorkItem]:
    try:
      async with self._session_factory() as session:
        stmt = select(WorkItemRow).order_by(WorkItemRow.updated_at.desc()).limit(limit)
        rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_item(row) for row in rows]
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Failed to list work items: {exc}") from exc


def _row_to_item(row: WorkItemRow) -> WorkItem:
  return WorkItem(
    id=row.id,
    status=row.status,  # type: ignore[arg-type]
    created_at=row.created_at,
    updated_at=row.updated_at,
    title=row.title,
    source_version_marker=row.source_version_marker,
    question_count=row.question_count,
    form_id=row.form_id,
    form_url=row.form_url,
    summary=row.summary,
    error=row.error,
    progress=ProcessingProgress.from_dict(row.progress),
  )


def _copy_item_to_row(item: WorkItem, row: WorkItemRow) -> None:
  row.status = item.status
  row.title = item.title
  row.source_version_marker = item.source_version_marker
  row.question_count = item.question_count
  row.form_id = item.form_id
  row.form_url = item.form_url
  row.summary = item.summary
  row.error = item.error
  row.progress = item.progress.to_dict() if item.progress else None
  row.created_at = item.created_at
  row.updated_at = item.updated_at
