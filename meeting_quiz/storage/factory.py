from __future__ import annotations

from meeting_quiz.config import Settings
from meeting_quiz.storage.work_items_repo import WorkItemsRepository


def get_work_items_repo(settings: Settings) -> WorkItemsRepository:
  """Factory to get the configured record store."""
  # Import lazily so a Firestore deployment never needs a database driver, and vice versa.
  if settings.record_store == "postgres":
    from meeting_quiz.storage.postgres_work_items_repo import PostgresWorkItemsRepository

    return PostgresWorkItemsRepository()

  from meeting_quiz.storage.firestore_work_items_repo import FirestoreWorkItemsRepository

  return FirestoreWorkItemsRepository(collection_name=settings.firestore_collection, project=settings.gcp_project_id)
