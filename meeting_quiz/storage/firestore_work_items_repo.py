"""Firestore-backed repository for work items."""

from __future__ import annotations

import logging
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from meeting_quiz.core.exceptions import StoreUnavailableError
from meeting_quiz.jobs.models import CLEAR, ProcessingProgress, WorkItem, WorkItemStatus, WorkItemUpdate, document_key, legacy_document_key, now_iso
from meeting_quiz.storage.work_items_repo import WorkItemsRepository

logger = logging.getLogger(__name__)


class FirestoreWorkItemsRepository(WorkItemsRepository):
  """Persist one Firestore document per source document id, using native field merges."""

  def __init__(self, *, collection_name: str, client: firestore.AsyncClient | None = None, project: str | None = None) -> None:
    self._client = client or firestore.AsyncClient(project=project)
    self._collection_name = collection_name

  def _collection(self) -> Any:
    return self._client.collection(self._collection_name)

  async def get(self, item_id: str) -> WorkItem | None:
    try:
      snapshot = await self._collection().document(item_id).get()
    except google_exceptions.GoogleAPICallError as exc:
      raise StoreUnavailableError(f"Failed to read work item {item_id}: {exc}", item_id=item_id) from exc
    if not snapshot.exists:
      return None
    return _to_item(snapshot.to_dict(), item_id)

  async def merge_set(self, item_id: str, status: WorkItemStatus, update: WorkItemUpdate) -> None:
    timestamp = now_iso()
    payload = _update_payload(item_id, status, update, timestamp)
    doc_ref = self._collection().document(item_id)

    try:
      try:
        # update() fails on missing documents, which is how the first write is detected.
        await doc_ref.update(payload)
      except google_exceptions.NotFound:
        created = {key: value for key, value in payload.items() if value is not firestore.DELETE_FIELD}
        created["createdAt"] = timestamp
        try:
          await doc_ref.create(created)
        except google_exceptions.AlreadyExists:
          # Another writer created it in between; fall back to a plain merge.
          await doc_ref.update(payload)
    except google_exceptions.GoogleAPICallError as exc:
      raise StoreUnavailableError(f"Failed to write work item {item_id}: {exc}", item_id=item_id) from exc

    logger.debug("Work item %s written with status=%s fields=%s", item_id, status, sorted(payload))

  async def list_recent(self, limit: int = 20) -> list[WorkItem]:
    query = self._collection().order_by("updatedAt", direction=firestore.Query.DESCENDING).limit(limit)
    items: list[WorkItem] = []
    try:
      async for snapshot in query.stream():
        items.append(_to_item(snapshot.to_dict(), snapshot.id))
    except google_exceptions.GoogleAPICallError as exc:
      raise StoreUnavailableError(f"Failed to list work items: {exc}") from exc
    return items


def _update_payload(item_id: str, status: WorkItemStatus, update: WorkItemUpdate, timestamp: str) -> dict[str, Any]:
  """Translate a merge update into a Firestore field map."""
  payload: dict[str, Any] = {"id": item_id, "status": status, "updatedAt": timestamp}
  for attr, value in update.changes().items():
    key = document_key(attr)
    legacy_key = legacy_document_key(attr)
    if legacy_key is not None:
      # A cleared field must not reappear through the older key.
      payload[legacy_key] = firestore.DELETE_FIELD
    if value is CLEAR:
      payload[key] = firestore.DELETE_FIELD
    elif isinstance(value, ProcessingProgress):
      # The checkpoint map is replaced whole so stale message/percent never linger.
      payload[key] = value.to_dict()
    else:
      payload[key] = value
  return payload


def _to_item(document: dict[str, Any] | None, item_id: str) -> WorkItem:
  try:
    return WorkItem.from_document(document or {}, item_id=item_id)
  except (KeyError, TypeError, ValueError) as exc:
    raise StoreUnavailableError(f"Malformed work item document {item_id}: {exc}", item_id=item_id) from exc
