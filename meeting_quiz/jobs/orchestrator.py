"""Processing orchestrator: drives one document through metadata, transcript, quiz and form steps."""

from __future__ import annotations

import logging
import random

from meeting_quiz.clients.base import ContentSource, DocumentMetadata, FormPublisher, QuizGenerator
from meeting_quiz.config import MAX_QUESTION_COUNT, Settings
from meeting_quiz.core.exceptions import StoreUnavailableError, error_message
from meeting_quiz.jobs.models import WorkItem, WorkItemUpdate
from meeting_quiz.jobs.progress import ProgressTracker
from meeting_quiz.jobs.randomizer import shuffle_quiz_options
from meeting_quiz.jobs.scanner import FolderScanner, ScanSummary
from meeting_quiz.jobs.worker import ProcessingJob, ProcessingWorkerPool
from meeting_quiz.storage.work_items_repo import WorkItemsRepository

logger = logging.getLogger(__name__)


def is_settled(record: WorkItem | None, *, force: bool) -> bool:
  """Return True when an existing success must be returned instead of recomputed."""
  return record is not None and record.status == "succeeded" and not force


class ProcessingOrchestrator:
  """Turn document ids into durable, idempotent quiz-generation work items.

  Successful results are never recomputed unless the caller forces it; failed
  items are retried on the next request. Collaborator errors are recorded on the
  work item exactly once and re-raised to synchronous callers.
  """

  def __init__(self, *, repo: WorkItemsRepository, content_source: ContentSource, quiz_generator: QuizGenerator, form_publisher: FormPublisher, settings: Settings, worker_pool: ProcessingWorkerPool | None = None, rng: random.Random | None = None) -> None:
    self._repo = repo
    self._content_source = content_source
    self._quiz_generator = quiz_generator
    self._form_publisher = form_publisher
    self._settings = settings
    self._rng = rng
    self._worker_pool = worker_pool or ProcessingWorkerPool(handler=self._run_job, on_failure=self._on_job_failure, concurrency=settings.worker_concurrency, queue_size=settings.worker_queue_size)
    self._scanner = FolderScanner(repo=repo, content_source=content_source, processor=self, folder_id=settings.drive_folder_id)

  @property
  def worker_pool(self) -> ProcessingWorkerPool:
    return self._worker_pool

  def _resolve_question_count(self, question_count: int | None) -> int:
    if question_count is None:
      return self._settings.default_question_count
    if isinstance(question_count, bool) or not isinstance(question_count, int):
      raise ValueError("Question count must be an integer.")
    if question_count < 1 or question_count > MAX_QUESTION_COUNT:
      raise ValueError(f"Question count must be between 1 and {MAX_QUESTION_COUNT}.")
    return question_count

  async def get_status(self, item_id: str) -> WorkItem | None:
    """Return the stored work item for polling callers."""
    return await self._repo.get(item_id)

  async def list_recent(self, limit: int = 20) -> list[WorkItem]:
    """Return the most recently updated work items."""
    return await self._repo.list_recent(limit)

  async def scan(self) -> ScanSummary:
    """Process every changed document in the configured source folder."""
    return await self._scanner.scan()

  async def process(self, item_id: str, *, force: bool = False, question_count: int | None = None, metadata: DocumentMetadata | None = None) -> WorkItem:
    """Run the full pipeline for one document and return the persisted result."""
    count = self._resolve_question_count(question_count)
    logger.info("Processing %s force=%s question_count=%s has_metadata=%s", item_id, force, count, metadata is not None)

    existing = await self._repo.get(item_id)
    if is_settled(existing, force=force):
      logger.info("Work item %s already succeeded; returning stored result", item_id)
      return existing

    tracker = ProgressTracker(item_id=item_id, repo=self._repo)
    await tracker.start(step="metadata", message="Fetching metadata", percent=5, question_count=count)

    try:
      record = await self._run_pipeline(item_id, tracker=tracker, question_count=count, metadata=metadata)
    except Exception as exc:
      message = error_message(exc)
      logger.error("Processing failed for %s at step=%s: %s", item_id, tracker.last.step if tracker.last else None, message, exc_info=True)
      await self._record_failure(item_id, message, cause=exc)
      raise

    logger.info("Processing complete for %s form_id=%s", item_id, record.form_id)
    return record

  async def _run_pipeline(self, item_id: str, *, tracker: ProgressTracker, question_count: int, metadata: DocumentMetadata | None) -> WorkItem:
    # Scans hand over the metadata they already listed; direct requests look it up.
    meta = metadata or await self._content_source.get_metadata(item_id)
    title = meta.name or f"Meeting {item_id}"
    await tracker.checkpoint(step="metadata", message="Metadata fetched", percent=10, update=WorkItemUpdate(title=title, source_version_marker=meta.version_marker, question_count=question_count))

    # An empty transcript is passed through; the generator decides whether it can work with it.
    transcript = await self._content_source.export_text(item_id)
    logger.info("Transcript fetched for %s (%d chars)", item_id, len(transcript))
    await tracker.checkpoint(step="transcript", message="Transcript fetched", percent=40)

    quiz = await self._quiz_generator.generate(title=title, text=transcript, question_count=question_count, supplemental_instructions=self._settings.quiz_additional_prompt)
    logger.info("Quiz generated for %s questions=%d has_summary=%s", item_id, len(quiz.questions), bool(quiz.summary))
    await tracker.checkpoint(step="quiz", message="Quiz generated", percent=70)

    randomized = shuffle_quiz_options(quiz, self._rng)
    form = await self._form_publisher.publish(randomized)
    logger.info("Form created for %s form_id=%s form_url=%s", item_id, form.form_id, form.form_url)
    await tracker.checkpoint(step="form", message="Form created", percent=90)

    await tracker.succeed(update=WorkItemUpdate(title=title, source_version_marker=meta.version_marker, form_id=form.form_id, form_url=form.form_url, summary=quiz.summary, question_count=len(quiz.questions)))

    # Re-read so callers see exactly what the store holds.
    record = await self._repo.get(item_id)
    if record is None:
      raise StoreUnavailableError("Failed to read record after processing", item_id=item_id)
    return record

  async def _record_failure(self, item_id: str, message: str, *, cause: BaseException) -> None:
    try:
      await ProgressTracker(item_id=item_id, repo=self._repo).fail(message=message)
    except StoreUnavailableError as store_exc:
      logger.critical("Could not record failure for %s; the work item may be stuck in processing", item_id, exc_info=True)
      raise store_exc from cause

  async def enqueue(self, item_id: str, *, force: bool = False, question_count: int | None = None) -> WorkItem:
    """Acknowledge a processing request immediately and run the pipeline in the worker pool."""
    count = self._resolve_question_count(question_count)
    existing = await self._repo.get(item_id)
    if is_settled(existing, force=force):
      logger.info("Work item %s already succeeded; not enqueuing", item_id)
      return existing

    if self._worker_pool.is_pending(item_id) and existing is not None:
      logger.info("Work item %s already queued or running; returning current state", item_id)
      return existing

    tracker = ProgressTracker(item_id=item_id, repo=self._repo)
    await tracker.start(step="queued", message="Queued for processing", percent=0, question_count=count)
    await self._worker_pool.submit(ProcessingJob(item_id=item_id, force=force, question_count=count))

    record = await self._repo.get(item_id)
    if record is None:
      raise StoreUnavailableError("Failed to enqueue processing", item_id=item_id)
    return record

  async def _run_job(self, job: ProcessingJob) -> WorkItem:
    return await self.process(job.item_id, force=job.force, question_count=job.question_count)

  async def _on_job_failure(self, job: ProcessingJob, exc: Exception) -> None:
    # process() normally records the failure itself; repeat it for errors raised before its handler ran.
    record = await self._repo.get(job.item_id)
    if record is not None and record.status == "failed":
      return
    message = error_message(exc)
    await ProgressTracker(item_id=job.item_id, repo=self._repo).fail(message=message)

  async def aclose(self) -> None:
    """Stop the worker pool."""
    await self._worker_pool.stop()
