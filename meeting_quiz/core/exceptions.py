"""Error taxonomy shared by the orchestrator, its collaborators and the record stores."""

from __future__ import annotations


class ProcessingError(Exception):
  """Base class for failures raised while converting a document into a quiz."""

  def __init__(self, message: str, *, item_id: str | None = None) -> None:
    super().__init__(message)
    self.item_id = item_id


class NotFoundError(ProcessingError):
  """The document id does not resolve at the content source."""


class SourceUnavailableError(ProcessingError):
  """Transient upstream failure while fetching metadata or content."""


class GenerationFailedError(ProcessingError):
  """Quiz generation produced malformed or unusable output."""


class PublishFailedError(ProcessingError):
  """Form creation failed."""


class StoreUnavailableError(ProcessingError):
  """The record store could not be read or written."""


def error_message(exc: BaseException, *, default: str = "Processing failed") -> str:
  """Return the message recorded on a failed work item."""
  message = str(exc).strip()
  # Exceptions raised without arguments still need a readable failure reason.
  if not message:
    return default
  return message
