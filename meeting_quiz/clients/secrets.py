"""Secret Manager lookups for credentials that are not passed through the environment."""

from __future__ import annotations

import logging
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.cloud import secretmanager
from starlette.concurrency import run_in_threadpool

from meeting_quiz.config import Settings

logger = logging.getLogger(__name__)


class SecretAccessError(RuntimeError):
  """A secret version could not be read or was empty."""


def build_secret_version_name(project_id: str, secret_id: str, version: str = "latest") -> str:
  return f"projects/{project_id}/secrets/{secret_id}/versions/{version}"


async def access_secret_payload(name: str, *, client: Any | None = None) -> str:
  """Return the decoded payload of a secret version resource name."""
  client = client or secretmanager.SecretManagerServiceClient()
  try:
    # The Secret Manager client is blocking; keep it off the event loop.
    response = await run_in_threadpool(client.access_secret_version, name=name)
  except google_exceptions.GoogleAPICallError as exc:
    raise SecretAccessError(f"Failed to access secret {name}: {exc}") from exc

  data = response.payload.data if response.payload else None
  payload = data.decode("utf-8").strip() if data else ""
  if not payload:
    raise SecretAccessError(f"Secret payload not found for {name}")
  return payload


async def resolve_gemini_api_key(settings: Settings, *, client: Any | None = None) -> str | None:
  """Return the Gemini API key from the environment, or from Secret Manager when configured."""
  if settings.gemini_api_key:
    return settings.gemini_api_key
  if not settings.gemini_api_key_secret:
    return None

  name = settings.gemini_api_key_secret
  if not name.startswith("projects/"):
    if not settings.gcp_project_id:
      raise SecretAccessError("GCP_PROJECT_ID is required when GEMINI_API_KEY_SECRET is a bare secret id")
    name = build_secret_version_name(settings.gcp_project_id, name)

  api_key = await access_secret_payload(name, client=client)
  logger.info("Gemini API key loaded from Secret Manager secret=%s", name)
  return api_key
