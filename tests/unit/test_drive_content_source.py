from __future__ import annotations

import httpx
import pytest

from meeting_quiz.clients.drive import DriveContentSource
from meeting_quiz.clients.google_auth import CredentialsError
from meeting_quiz.core.exceptions import NotFoundError, SourceUnavailableError


class StaticTokens:
  def __init__(self, error: Exception | None = None) -> None:
    self.error = error

  async def token(self) -> str:
    if self.error is not None:
      raise self.error
    return "token-123"


def _source(handler, tokens: StaticTokens | None = None) -> DriveContentSource:
  client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
  return DriveContentSource(tokens or StaticTokens(), client=client, base_url="https://drive.test/drive/v3")


@pytest.mark.anyio
async def test_get_metadata_maps_modified_time_to_version_marker() -> None:
  seen: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(200, json={"id": "doc-1", "name": "Standup", "mimeType": "application/vnd.google-apps.document", "modifiedTime": "2024-05-01T10:00:00.000Z"})

  source = _source(handler)
  metadata = await source.get_metadata("doc-1")
  await source.aclose()

  assert metadata.id == "doc-1"
  assert metadata.name == "Standup"
  assert metadata.version_marker == "2024-05-01T10:00:00.000Z"
  assert seen[0].url.path == "/drive/v3/files/doc-1"
  assert seen[0].headers["authorization"] == "Bearer token-123"


@pytest.mark.anyio
async def test_get_metadata_raises_not_found_on_404() -> None:
  source = _source(lambda request: httpx.Response(404, json={"error": {"code": 404}}))

  with pytest.raises(NotFoundError) as excinfo:
    await source.get_metadata("missing")

  assert excinfo.value.item_id == "missing"


@pytest.mark.anyio
async def test_server_errors_are_source_unavailable() -> None:
  source = _source(lambda request: httpx.Response(503, text="backend error"))

  with pytest.raises(SourceUnavailableError, match="503"):
    await source.export_text("doc-1")


@pytest.mark.anyio
async def test_transport_errors_are_source_unavailable() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  with pytest.raises(SourceUnavailableError, match="connection refused"):
    await _source(handler).export_text("doc-1")


@pytest.mark.anyio
async def test_credential_errors_are_source_unavailable() -> None:
  source = _source(lambda request: httpx.Response(200), tokens=StaticTokens(CredentialsError("no default credentials")))

  with pytest.raises(SourceUnavailableError, match="no default credentials"):
    await source.get_metadata("doc-1")


@pytest.mark.anyio
async def test_export_text_requests_plain_text() -> None:
  seen: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(200, content="Alice discussed the release.".encode())

  text = await _source(handler).export_text("doc-1")

  assert text == "Alice discussed the release."
  assert seen[0].url.path == "/drive/v3/files/doc-1/export"
  assert seen[0].url.params["mimeType"] == "text/plain"


@pytest.mark.anyio
async def test_export_text_allows_empty_documents() -> None:
  assert await _source(lambda request: httpx.Response(200, content=b"")).export_text("doc-1") == ""


@pytest.mark.anyio
async def test_list_all_follows_pagination() -> None:
  pages = {
    None: {"files": [{"id": "doc-1", "name": "One", "modifiedTime": "t1"}, {"name": "no id"}], "nextPageToken": "page-2"},
    "page-2": {"files": [{"id": "doc-2", "name": "Two"}]},
  }
  queries: list[str] = []

  def handler(request: httpx.Request) -> httpx.Response:
    queries.append(request.url.params["q"])
    return httpx.Response(200, json=pages[request.url.params.get("pageToken")])

  documents = await _source(handler).list_all("folder-1")

  assert [document.id for document in documents] == ["doc-1", "doc-2"]
  assert documents[0].version_marker == "t1"
  assert documents[1].version_marker is None
  assert queries == ["'folder-1' in parents and trashed = false"] * 2


@pytest.mark.anyio
async def test_non_json_metadata_is_source_unavailable() -> None:
  source = _source(lambda request: httpx.Response(200, text="<html>proxy error</html>"))

  with pytest.raises(SourceUnavailableError, match="non-JSON"):
    await source.get_metadata("doc-1")


@pytest.mark.anyio
async def test_unexpected_listing_body_is_source_unavailable() -> None:
  source = _source(lambda request: httpx.Response(200, json=["not", "a", "page"]))

  with pytest.raises(SourceUnavailableError, match="unexpected response body"):
    await source.list_all("folder-1")
