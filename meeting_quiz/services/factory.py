"""Wire the orchestrator to its concrete Google integrations and record store."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from meeting_quiz.ai.gemini import GeminiQuizGenerator
from meeting_quiz.clients.drive import DriveContentSource
from meeting_quiz.clients.forms import GoogleFormsPublisher
from meeting_quiz.clients.google_auth import DRIVE_FILE_SCOPE, DRIVE_READONLY_SCOPE, FORMS_BODY_SCOPE, GoogleAccessTokenProvider
from meeting_quiz.clients.secrets import resolve_gemini_api_key
from meeting_quiz.config import Settings
from meeting_quiz.jobs.orchestrator import ProcessingOrchestrator
from meeting_quiz.storage.factory import get_work_items_repo

logger = logging.getLogger(__name__)


@dataclass
class QuizServices:
  """The orchestrator plus the HTTP clients it owns."""

  orchestrator: ProcessingOrchestrator
  content_source: DriveContentSource
  form_publisher: GoogleFormsPublisher

  async def aclose(self) -> None:
    await self.orchestrator.aclose()
    await self.content_source.aclose()
    await self.form_publisher.aclose()


async def build_services(settings: Settings) -> QuizServices:
  """Factory to build the configured processing stack."""
  api_key = await resolve_gemini_api_key(settings)
  drive_tokens = GoogleAccessTokenProvider([DRIVE_READONLY_SCOPE], service_account_email=settings.service_account_email)
  forms_tokens = GoogleAccessTokenProvider([FORMS_BODY_SCOPE, DRIVE_FILE_SCOPE], service_account_email=settings.service_account_email)

  content_source = DriveContentSource(drive_tokens, timeout=settings.http_timeout_seconds)
  form_publisher = GoogleFormsPublisher(forms_tokens, output_folder_id=settings.drive_output_folder_id, timeout=settings.http_timeout_seconds)
  quiz_generator = GeminiQuizGenerator(model=settings.gemini_model, api_key=api_key)

  orchestrator = ProcessingOrchestrator(
    repo=get_work_items_repo(settings),
    content_source=content_source,
    quiz_generator=quiz_generator,
    form_publisher=form_publisher,
    settings=settings,
  )
  logger.info("Built processing services store=%s model=%s impersonating=%s", settings.record_store, settings.gemini_model, settings.service_account_email)
  return QuizServices(orchestrator=orchestrator, content_source=content_source, form_publisher=form_publisher)
