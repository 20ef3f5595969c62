"""Shared fakes for the orchestrator and record store tests."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

import pytest

from meeting_quiz.clients.base import DocumentMetadata, PublishedForm
from meeting_quiz.config import Settings
from meeting_quiz.core.exceptions import NotFoundError, StoreUnavailableError
from meeting_quiz.jobs.models import WorkItem, WorkItemStatus, WorkItemUpdate, apply_update
from meeting_quiz.schema.quiz import QuizPayload, QuizQuestion


@pytest.fixture
def anyio_backend():
  return "asyncio"


_SETTINGS_DEFAULTS: dict[str, Any] = {
  "environment": "test",
  "debug": False,
  "log_dir": "logs",
  "log_max_bytes": 1024,
  "log_backup_count": 1,
  "drive_folder_id": "folder-1",
  "drive_output_folder_id": None,
  "gemini_api_key": "test-key",
  "gemini_api_key_secret": None,
  "gemini_model": "gemini-2.5-flash",
  "quiz_additional_prompt": None,
  "default_question_count": 10,
  "record_store": "firestore",
  "firestore_collection": "driveFiles",
  "gcp_project_id": None,
  "service_account_email": None,
  "pg_dsn": None,
  "pg_connect_timeout": 5,
  "worker_concurrency": 2,
  "worker_queue_size": 10,
  "http_timeout_seconds": 5.0,
}


def make_settings(**overrides: Any) -> Settings:
  return Settings(**{**_SETTINGS_DEFAULTS, **overrides})


@pytest.fixture
def settings() -> Settings:
  return make_settings()


def make_quiz(question_count: int = 3, *, title: str = "Quiz", summary: str = "Meeting summary") -> QuizPayload:
  questions = [
    QuizQuestion(
      question=f"Question {index + 1}?",
      options=[f"Right {index + 1}", f"Wrong A{index + 1}", f"Wrong B{index + 1}", f"Wrong C{index + 1}"],
      correct_option_index=0,
      rationale=f"Because {index + 1}.",
    )
    for index in range(question_count)
  ]
  return QuizPayload(title=title, summary=summary, questions=questions)


class InMemoryWorkItemsRepo:
  """Dict-backed record store that merges updates the way the real stores do."""

  def __init__(self) -> None:
    self.items: dict[str, WorkItem] = {}
    self.writes: list[tuple[str, WorkItemStatus, WorkItemUpdate]] = []
    self.fail_on_status: WorkItemStatus | None = None
    self.get_errors: list[Exception] = []
    self._clock = 0

  def seed(self, item: WorkItem) -> None:
    self.items[item.id] = item

  def _now(self) -> str:
    # Strictly increasing timestamps keep list_recent ordering deterministic.
    self._clock += 1
    return f"2024-01-01T00:00:{self._clock:02d}Z"

  async def get(self, item_id: str) -> WorkItem | None:
    if self.get_errors:
      raise self.get_errors.pop(0)
    return self.items.get(item_id)

  async def merge_set(self, item_id: str, status: WorkItemStatus, update: WorkItemUpdate) -> None:
    if self.fail_on_status == status:
      raise StoreUnavailableError(f"store down while writing {status}", item_id=item_id)
    self.writes.append((item_id, status, update))
    self.items[item_id] = apply_update(self.items.get(item_id), item_id, status, update, now=self._now())

  async def list_recent(self, limit: int = 20) -> list[WorkItem]:
    ordered = sorted(self.items.values(), key=lambda item: item.updated_at, reverse=True)
    return ordered[:limit]

  def statuses(self, item_id: str) -> list[WorkItemStatus]:
    return [status for written_id, status, _ in self.writes if written_id == item_id]


class FakeContentSource:
  def __init__(self, documents: dict[str, tuple[DocumentMetadata, str]] | None = None) -> None:
    self.documents = dict(documents or {})
    self.metadata_calls: list[str] = []
    self.export_calls: list[str] = []
    self.list_calls: list[str] = []
    self.export_errors: dict[str, Exception] = {}

  def add(self, item_id: str, *, name: str | None = None, version_marker: str | None = None, text: str = "transcript") -> DocumentMetadata:
    metadata = DocumentMetadata(id=item_id, name=name, version_marker=version_marker)
    self.documents[item_id] = (metadata, text)
    return metadata

  def touch(self, item_id: str, version_marker: str | None) -> None:
    metadata, text = self.documents[item_id]
    self.documents[item_id] = (replace(metadata, version_marker=version_marker), text)

  async def get_metadata(self, item_id: str) -> DocumentMetadata:
    self.metadata_calls.append(item_id)
    if item_id not in self.documents:
      raise NotFoundError(f"Drive file {item_id} not found", item_id=item_id)
    return self.documents[item_id][0]

  async def export_text(self, item_id: str) -> str:
    self.export_calls.append(item_id)
    if item_id in self.export_errors:
      raise self.export_errors[item_id]
    return self.documents[item_id][1]

  async def list_all(self, location_id: str) -> list[DocumentMetadata]:
    self.list_calls.append(location_id)
    return [metadata for metadata, _ in self.documents.values()]


class FakeQuizGenerator:
  def __init__(self) -> None:
    self.calls: list[dict[str, Any]] = []
    self.error: Exception | None = None
    self.errors_for: dict[str, Exception] = {}

  async def generate(self, *, title: str, text: str, question_count: int, supplemental_instructions: str | None = None) -> QuizPayload:
    self.calls.append({"title": title, "text": text, "question_count": question_count, "supplemental_instructions": supplemental_instructions})
    if self.error is not None:
      raise self.error
    if title in self.errors_for:
      raise self.errors_for[title]
    return make_quiz(question_count, title=f"Quiz: {title}", summary=f"Summary of {title}")


class FakeFormPublisher:
  def __init__(self) -> None:
    self.published: list[QuizPayload] = []
    self.error: Exception | None = None

  async def publish(self, quiz: QuizPayload) -> PublishedForm:
    self.published.append(quiz)
    if self.error is not None:
      raise self.error
    form_id = f"form-{len(self.published)}"
    return PublishedForm(form_id=form_id, form_url=f"https://docs.google.com/forms/d/{form_id}/viewform")


@pytest.fixture
def repo() -> InMemoryWorkItemsRepo:
  return InMemoryWorkItemsRepo()


@pytest.fixture
def content_source() -> FakeContentSource:
  return FakeContentSource()


@pytest.fixture
def quiz_generator() -> FakeQuizGenerator:
  return FakeQuizGenerator()


@pytest.fixture
def form_publisher() -> FakeFormPublisher:
  return FakeFormPublisher()
