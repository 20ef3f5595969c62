"""Folder scan: process every document whose source changed since its last success."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from meeting_quiz.clients.base import ContentSource, DocumentMetadata
from meeting_quiz.jobs.models import WorkItem
from meeting_quiz.storage.work_items_repo import WorkItemsRepository

logger = logging.getLogger(__name__)


class DocumentProcessor(Protocol):
  async def process(self, item_id: str, *, force: bool = False, question_count: int | None = None, metadata: DocumentMetadata | None = None) -> WorkItem:
    ...


@dataclass(frozen=True)
class ScanSummary:
  processed: int = 0
  skipped: int = 0
  errors: int = 0

  def to_dict(self) -> dict[str, int]:
    return {"processed": self.processed, "skipped": self.skipped, "errors": self.errors}


def is_unchanged(record: WorkItem | None, metadata: DocumentMetadata) -> bool:
  """Return True when a stored success still matches the source version.

  A missing marker on either side counts as changed.
  """
  if record is None or record.status != "succeeded":
    return False
  if not record.source_version_marker or not metadata.version_marker:
    return False
  return record.source_version_marker == metadata.version_marker


class FolderScanner:
  """Walk the configured source folder and hand changed documents to the processor."""

  def __init__(self, *, repo: WorkItemsRepository, content_source: ContentSource, processor: DocumentProcessor, folder_id: str | None) -> None:
    self._repo = repo
    self._content_source = content_source
    self._processor = processor
    self._folder_id = folder_id

  async def scan(self) -> ScanSummary:
    if not self._folder_id:
      raise ValueError("GOOGLE_DRIVE_FOLDER_ID is required for folder scanning")

    logger.info("Scanning folder %s", self._folder_id)
    documents = await self._content_source.list_all(self._folder_id)
    logger.info("Folder %s lists %d documents", self._folder_id, len(documents))

    processed = skipped = errors = 0
    for metadata in documents:
      try:
        existing = await self._repo.get(metadata.id)
        if is_unchanged(existing, metadata):
          logger.debug("Skipping unchanged document %s", metadata.id)
          skipped += 1
          continue

        await self._processor.process(metadata.id, force=False, metadata=metadata)
        processed += 1
      except Exception:  # noqa: BLE001
        # One bad document must not stop the rest of the folder.
        logger.exception("Scan failed for document %s", metadata.id)
        errors += 1

    summary = ScanSummary(processed=processed, skipped=skipped, errors=errors)
    logger.info("Folder scan complete processed=%d skipped=%d errors=%d", summary.processed, summary.skipped, summary.errors)
    return summary
