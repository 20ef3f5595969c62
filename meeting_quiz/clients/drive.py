"""Google Drive content source backed by the Drive v3 REST API."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from meeting_quiz.clients.base import ContentSource, DocumentMetadata
from meeting_quiz.clients.google_auth import CredentialsError
from meeting_quiz.core.exceptions import NotFoundError, SourceUnavailableError

logger = logging.getLogger(__name__)

DRIVE_API_BASE_URL = "https://www.googleapis.com/drive/v3"
_FILE_FIELDS = "id,name,mimeType,modifiedTime"
_LIST_PAGE_SIZE = 100


class AccessTokenSource(Protocol):
  async def token(self) -> str: ...


class DriveContentSource(ContentSource):
  """Reads meeting transcripts (Google Docs) and their modification markers from Drive."""

  def __init__(self, tokens: AccessTokenSource, *, timeout: float = 60.0, client: httpx.AsyncClient | None = None, base_url: str = DRIVE_API_BASE_URL) -> None:
    self._tokens = tokens
    self._client = client or httpx.AsyncClient(timeout=timeout)
    self._base_url = base_url.rstrip("/")

  async def aclose(self) -> None:
    await self._client.aclose()

  async def _get(self, path: str, *, params: dict[str, Any], item_id: str | None = None) -> httpx.Response:
    """Issue an authenticated GET and translate failures into the source error taxonomy."""
    try:
      headers = {"authorization": f"Bearer {await self._tokens.token()}"}
    except CredentialsError as exc:
      raise SourceUnavailableError(str(exc), item_id=item_id) from exc

    try:
      response = await self._client.get(f"{self._base_url}{path}", params=params, headers=headers)
    except httpx.RequestError as exc:
      logger.warning("Drive request failed path=%s error=%s", path, exc)
      raise SourceUnavailableError(f"Drive request failed: {exc}", item_id=item_id) from exc

    # Drive answers 404 both for unknown ids and for files the caller cannot see.
    if response.status_code == httpx.codes.NOT_FOUND and item_id is not None:
      raise NotFoundError(f"Drive file {item_id} not found", item_id=item_id)
    if response.is_error:
      logger.warning("Drive request returned %s path=%s body=%s", response.status_code, path, response.text[:500])
      raise SourceUnavailableError(f"Drive API returned status {response.status_code}", item_id=item_id)
    return response

  async def get_metadata(self, item_id: str) -> DocumentMetadata:
    response = await self._get(f"/files/{item_id}", params={"fields": _FILE_FIELDS, "supportsAllDrives": "true"}, item_id=item_id)
    payload = _json_body(response, item_id=item_id)
    if not payload.get("id"):
      raise NotFoundError(f"Drive file {item_id} not found", item_id=item_id)
    return _to_metadata(payload)

  async def export_text(self, item_id: str) -> str:
    response = await self._get(f"/files/{item_id}/export", params={"mimeType": "text/plain"}, item_id=item_id)
    if not response.content:
      return ""
    return response.content.decode("utf-8", errors="replace")

  async def list_all(self, location_id: str) -> list[DocumentMetadata]:
    escaped = location_id.replace("\\", "\\\\").replace("'", "\\'")
    params: dict[str, Any] = {
      "q": f"'{escaped}' in parents and trashed = false",
      "fields": f"nextPageToken,files({_FILE_FIELDS})",
      "orderBy": "modifiedTime desc",
      "pageSize": _LIST_PAGE_SIZE,
      "supportsAllDrives": "true",
      "includeItemsFromAllDrives": "true",
    }

    documents: list[DocumentMetadata] = []
    while True:
      payload = _json_body(await self._get("/files", params=params))
      documents.extend(_to_metadata(entry) for entry in payload.get("files") or [] if entry.get("id"))

      # Follow pagination until Drive stops handing out tokens.
      page_token = payload.get("nextPageToken")
      if not page_token:
        break
      params["pageToken"] = page_token

    logger.info("Listed %d Drive files in folder %s", len(documents), location_id)
    return documents


def _to_metadata(payload: dict[str, Any]) -> DocumentMetadata:
  return DocumentMetadata(id=str(payload["id"]), name=payload.get("name") or None, version_marker=payload.get("modifiedTime") or None, mime_type=payload.get("mimeType") or None)


def _json_body(response: httpx.Response, *, item_id: str | None = None) -> dict[str, Any]:
  try:
    payload = response.json()
  except ValueError as exc:
    raise SourceUnavailableError(f"Drive returned a non-JSON response: {exc}", item_id=item_id) from exc
  if not isinstance(payload, dict):
    raise SourceUnavailableError("Drive returned an unexpected response body", item_id=item_id)
  return payload
