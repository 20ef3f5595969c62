"""Access tokens for the Google REST APIs, resolved from Application Default Credentials."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import google.auth
from google.auth import impersonated_credentials
from google.auth.credentials import Credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"
FORMS_BODY_SCOPE = "https://www.googleapis.com/auth/forms.body"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

IMPERSONATION_LIFETIME_SECONDS = 3600


class CredentialsError(RuntimeError):
  """Default credentials could not produce an access token."""


class GoogleAccessTokenProvider:
  """Lazily loads default credentials and refreshes them off the event loop.

  With `service_account_email` set, the default credentials only sign in to the
  IAM Credentials API and every token is minted for that service account. Forms
  created this way are owned by the service account, and Drive listings show
  what the service account can see.
  """

  def __init__(self, scopes: Sequence[str], credentials: Credentials | None = None, *, service_account_email: str | None = None) -> None:
    self._scopes = list(scopes)
    self._credentials = credentials
    self._service_account_email = service_account_email
    self._lock = asyncio.Lock()

  def _load_credentials(self) -> Credentials:
    if not self._service_account_email:
      credentials, project = google.auth.default(scopes=self._scopes)
      logger.info("Loaded Google default credentials project=%s scopes=%s", project, self._scopes)
      return credentials

    source, project = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    logger.info("Impersonating %s from default credentials project=%s scopes=%s", self._service_account_email, project, self._scopes)
    return impersonated_credentials.Credentials(
      source_credentials=source,
      target_principal=self._service_account_email,
      target_scopes=self._scopes,
      lifetime=IMPERSONATION_LIFETIME_SECONDS,
    )

  async def token(self) -> str:
    """Return a valid bearer token, refreshing it when expired."""
    async with self._lock:
      try:
        if self._credentials is None:
          # google.auth.default reads files and metadata servers, so keep it off the loop.
          self._credentials = await run_in_threadpool(self._load_credentials)

        if not self._credentials.valid:
          await run_in_threadpool(self._credentials.refresh, Request())
      except GoogleAuthError as exc:
        raise CredentialsError(f"Failed to obtain Google credentials: {exc}") from exc

      token = self._credentials.token
      if not token:
        raise CredentialsError("Google credentials returned an empty access token.")
      return token
