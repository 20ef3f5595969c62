"""Domain models for document-to-quiz work items."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import UTC, datetime
from typing import Any, Final, Literal

WorkItemStatus = Literal["pending", "processing", "succeeded", "failed"]
ProgressStep = Literal["queued", "metadata", "transcript", "quiz", "form", "done", "error"]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class _Clear:
  """Sentinel type marking a field for deletion in a merge update."""

  _instance: _Clear | None = None

  def __new__(cls) -> _Clear:
    if cls._instance is None:
      cls._instance = super().__new__(cls)
    return cls._instance

  def __repr__(self) -> str:
    return "CLEAR"

  def __bool__(self) -> bool:
    return False


CLEAR: Final = _Clear()


def now_iso() -> str:
  return datetime.now(UTC).strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class ProcessingProgress:
  """Most recent lifecycle checkpoint of a work item."""

  step: ProgressStep
  message: str | None = None
  percent: float | None = None

  def to_dict(self) -> dict[str, Any]:
    return {"step": self.step, "message": self.message, "percent": self.percent}

  @classmethod
  def from_dict(cls, raw: dict[str, Any] | None) -> ProcessingProgress | None:
    if not raw or "step" not in raw:
      return None
    return cls(step=raw["step"], message=raw.get("message"), percent=raw.get("percent"))


@dataclass(frozen=True)
class WorkItem:
  """Persisted conversion state for one source document."""

  id: str
  status: WorkItemStatus
  created_at: str
  updated_at: str
  title: str | None = None
  source_version_marker: str | None = None
  question_count: int | None = None
  form_id: str | None = None
  form_url: str | None = None
  summary: str | None = None
  error: str | None = None
  progress: ProcessingProgress | None = None

  def to_document(self) -> dict[str, Any]:
    """Serialize to the camelCase document layout used by the record stores."""
    document: dict[str, Any] = {"id": self.id, "status": self.status, "createdAt": self.created_at, "updatedAt": self.updated_at}
    for attr, key in _DOCUMENT_KEYS.items():
      value = getattr(self, attr)
      if value is None:
        continue
      document[key] = value.to_dict() if isinstance(value, ProcessingProgress) else value
    return document

  @classmethod
  def from_document(cls, document: dict[str, Any], *, item_id: str | None = None) -> WorkItem:
    """Rebuild a work item from its stored document, ignoring unknown keys.

    Documents written by the earlier deployment keep their id in `fileId` (or only
    in the document name), the marker in `modifiedTime` and the summary in
    `geminiSummary`; those keys are read when the current ones are absent.
    """
    values: dict[str, Any] = {}
    for attr, key in _DOCUMENT_KEYS.items():
      value = document.get(key)
      legacy_key = _LEGACY_DOCUMENT_KEYS.get(attr)
      if value is None and legacy_key is not None:
        value = document.get(legacy_key)
      values[attr] = value
    values["progress"] = ProcessingProgress.from_dict(document.get("progress"))

    document_id = document.get("id") or document.get("fileId") or item_id
    if not document_id:
      raise ValueError("Work item document has no id.")
    status = document.get("status")
    if not status:
      raise ValueError(f"Work item document {document_id} has no status.")

    created_at = document.get("createdAt") or document.get("updatedAt") or ""
    updated_at = document.get("updatedAt") or created_at
    return cls(id=str(document_id), status=status, created_at=created_at, updated_at=updated_at, **values)


@dataclass(frozen=True)
class WorkItemUpdate:
  """Partial update for a work item.

  `None` leaves a field untouched and `CLEAR` deletes it, so an attempt can wipe
  the results of a previous attempt without a read-modify-write.
  """

  title: str | _Clear | None = None
  source_version_marker: str | _Clear | None = None
  question_count: int | _Clear | None = None
  form_id: str | _Clear | None = None
  form_url: str | _Clear | None = None
  summary: str | _Clear | None = None
  error: str | _Clear | None = None
  progress: ProcessingProgress | _Clear | None = None

  @classmethod
  def start_attempt(cls, *, progress: ProcessingProgress, question_count: int) -> WorkItemUpdate:
    """Clear every prior-attempt result and record the opening checkpoint."""
    return cls(title=CLEAR, source_version_marker=CLEAR, form_id=CLEAR, form_url=CLEAR, summary=CLEAR, error=CLEAR, progress=progress, question_count=question_count)

  def changes(self) -> dict[str, Any]:
    """Return the touched fields keyed by attribute name."""
    return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


_DOCUMENT_KEYS: dict[str, str] = {
  "title": "title",
  "source_version_marker": "sourceVersionMarker",
  "question_count": "questionCount",
  "form_id": "formId",
  "form_url": "formUrl",
  "summary": "summary",
  "error": "error",
  "progress": "progress",
}

# Keys used by the earlier deployment that shared the `driveFiles` collection.
_LEGACY_DOCUMENT_KEYS: dict[str, str] = {
  "source_version_marker": "modifiedTime",
  "summary": "geminiSummary",
}


def document_key(attr: str) -> str:
  """Map a work item attribute to its stored document key."""
  return _DOCUMENT_KEYS[attr]


def legacy_document_key(attr: str) -> str | None:
  """Return the older key that may still hold the attribute, if any."""
  return _LEGACY_DOCUMENT_KEYS.get(attr)


def apply_update(existing: WorkItem | None, item_id: str, status: WorkItemStatus, update: WorkItemUpdate, *, now: str | None = None) -> WorkItem:
  """Merge a partial update onto the stored record, creating it when missing."""
  timestamp = now or now_iso()
  base = existing or WorkItem(id=item_id, status=status, created_at=timestamp, updated_at=timestamp)

  # Cleared fields become None; untouched fields keep their stored value.
  patch = {name: (None if value is CLEAR else value) for name, value in update.changes().items()}
  return replace(base, status=status, updated_at=timestamp, **patch)
