"""Capability interfaces for the remote integrations the orchestrator drives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from meeting_quiz.schema.quiz import QuizPayload


@dataclass(frozen=True)
class DocumentMetadata:
  """Metadata describing a source document."""

  id: str
  name: str | None = None
  version_marker: str | None = None
  mime_type: str | None = None


@dataclass(frozen=True)
class PublishedForm:
  """Identifiers of a created quiz form."""

  form_id: str
  form_url: str


class ContentSource(Protocol):
  """Source of transcript documents."""

  async def get_metadata(self, item_id: str) -> DocumentMetadata:
    """Return document metadata; raise `NotFoundError` for unknown ids."""

  async def export_text(self, item_id: str) -> str:
    """Return the document as plain text, possibly empty."""

  async def list_all(self, location_id: str) -> list[DocumentMetadata]:
    """List the documents stored at a location."""


class QuizGenerator(Protocol):
  """Turns transcript text into a structured quiz."""

  async def generate(self, *, title: str, text: str, question_count: int, supplemental_instructions: str | None = None) -> QuizPayload:
    """Generate a quiz; raise `GenerationFailedError` on unusable output."""


class FormPublisher(Protocol):
  """Publishes a quiz as a graded multiple-choice form."""

  async def publish(self, quiz: QuizPayload) -> PublishedForm:
    """Create the form; raise `PublishFailedError` on failure."""
