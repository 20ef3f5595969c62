from __future__ import annotations

import pytest
from conftest import InMemoryWorkItemsRepo

from meeting_quiz.core.exceptions import StoreUnavailableError
from meeting_quiz.jobs.models import WorkItemUpdate
from meeting_quiz.jobs.progress import ProgressTracker


@pytest.mark.anyio
async def test_tracker_persists_each_checkpoint(repo: InMemoryWorkItemsRepo) -> None:
  tracker = ProgressTracker(item_id="doc-1", repo=repo)

  await tracker.start(step="metadata", message="Fetching metadata", percent=5, question_count=3)
  await tracker.checkpoint(step="metadata", message="Metadata fetched", percent=10, update=WorkItemUpdate(title="Standup"))

  record = await repo.get("doc-1")
  assert record is not None
  assert record.status == "processing"
  assert record.title == "Standup"
  assert record.question_count == 3
  assert record.progress is not None
  assert (record.progress.step, record.progress.message, record.progress.percent) == ("metadata", "Metadata fetched", 10)
  assert tracker.last == record.progress


@pytest.mark.anyio
async def test_tracker_terminal_states(repo: InMemoryWorkItemsRepo) -> None:
  tracker = ProgressTracker(item_id="doc-1", repo=repo)
  await tracker.start(step="queued", message="Queued for processing", percent=0, question_count=2)

  await tracker.succeed(update=WorkItemUpdate(form_id="form-1", form_url="https://forms.test/form-1", summary="Recap"))
  succeeded = await repo.get("doc-1")
  assert succeeded.status == "succeeded"
  assert succeeded.progress.step == "done"
  assert succeeded.progress.message == "Completed"

  await tracker.fail(message="Forms API returned 500")
  failed = await repo.get("doc-1")
  assert failed.status == "failed"
  assert failed.error == "Forms API returned 500"
  assert (failed.progress.step, failed.progress.percent) == ("error", 100)


@pytest.mark.anyio
async def test_failed_write_leaves_last_checkpoint_untouched(repo: InMemoryWorkItemsRepo) -> None:
  tracker = ProgressTracker(item_id="doc-1", repo=repo)
  await tracker.start(step="metadata", message="Fetching metadata", percent=5, question_count=1)
  repo.fail_on_status = "failed"

  with pytest.raises(StoreUnavailableError, match="store down"):
    await tracker.fail(message="boom")

  assert tracker.last is not None
  assert tracker.last.step == "metadata"
