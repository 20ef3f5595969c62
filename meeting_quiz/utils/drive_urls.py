"""Helpers for turning Google Drive links into file ids."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse


def extract_file_id_from_url(url: str) -> str | None:
  """Return the file id from a Drive/Docs link, or None when there is none.

  Supports `?id=<id>` links and path links such as `/file/d/<id>/view` or
  `/document/d/<id>/edit`.
  """
  try:
    parsed = urlparse(url)
  except ValueError:
    return None
  if not parsed.scheme or not parsed.netloc:
    return None

  query = parse_qs(parsed.query)
  if "id" in query:
    return query["id"][0] or None

  segments = parsed.path.split("/")
  if "d" in segments:
    index = segments.index("d")
    if len(segments) > index + 1 and segments[index + 1]:
      return segments[index + 1]
  return None


def resolve_document_id(value: str) -> str:
  """Accept either a bare file id or a Drive link."""
  value = value.strip()
  if "://" not in value:
    if not value:
      raise ValueError("Document id must not be empty.")
    return value

  file_id = extract_file_id_from_url(value)
  if not file_id:
    raise ValueError(f"Could not find a file id in {value!r}.")
  return file_id
