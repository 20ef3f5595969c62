"""Google Forms publisher that turns a quiz payload into a graded quiz form."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from meeting_quiz.clients.base import FormPublisher, PublishedForm
from meeting_quiz.clients.drive import DRIVE_API_BASE_URL, AccessTokenSource
from meeting_quiz.clients.google_auth import CredentialsError
from meeting_quiz.core.exceptions import PublishFailedError
from meeting_quiz.schema.quiz import QuizPayload, QuizQuestion

logger = logging.getLogger(__name__)

FORMS_API_BASE_URL = "https://forms.googleapis.com/v1"


def build_question_item(question: QuizQuestion, index: int) -> dict[str, Any]:
  """Build the createItem request for one graded RADIO question."""
  grading: dict[str, Any] = {"pointValue": 1, "correctAnswers": {"answers": [{"value": question.correct_option}]}}
  if question.rationale:
    grading["whenRight"] = {"text": question.rationale}
    grading["whenWrong"] = {"text": question.rationale}

  choice_question = {"type": "RADIO", "options": [{"value": option} for option in question.options], "shuffle": False}
  return {"createItem": {"item": {"title": question.question, "questionItem": {"question": {"required": True, "choiceQuestion": choice_question, "grading": grading}}}, "location": {"index": index}}}


def build_batch_requests(quiz: QuizPayload) -> list[dict[str, Any]]:
  """Build the batchUpdate requests that turn a blank form into the quiz."""
  requests: list[dict[str, Any]] = []
  if quiz.summary:
    requests.append({"updateFormInfo": {"info": {"description": quiz.summary}, "updateMask": "description"}})
  # Quiz mode must be on before graded items can be created.
  requests.append({"updateSettings": {"settings": {"quizSettings": {"isQuiz": True}}, "updateMask": "quizSettings.isQuiz"}})
  requests.extend(build_question_item(question, index) for index, question in enumerate(quiz.questions))
  return requests


class GoogleFormsPublisher(FormPublisher):
  """Creates quiz forms via the Forms v1 REST API and files them into an output folder."""

  def __init__(self, tokens: AccessTokenSource, *, output_folder_id: str | None = None, timeout: float = 60.0, client: httpx.AsyncClient | None = None, forms_base_url: str = FORMS_API_BASE_URL, drive_base_url: str = DRIVE_API_BASE_URL) -> None:
    self._tokens = tokens
    self._output_folder_id = output_folder_id
    self._client = client or httpx.AsyncClient(timeout=timeout)
    self._forms_base_url = forms_base_url.rstrip("/")
    self._drive_base_url = drive_base_url.rstrip("/")

  async def aclose(self) -> None:
    await self._client.aclose()

  async def _send(self, method: str, url: str, *, json: dict[str, Any] | None = None, params: dict[str, Any] | None = None) -> dict[str, Any]:
    headers = {"authorization": f"Bearer {await self._tokens.token()}"}
    response = await self._client.request(method, url, json=json, params=params, headers=headers)
    if response.is_error:
      logger.error("Google API call failed method=%s url=%s status=%s body=%s", method, url, response.status_code, response.text[:500])
      response.raise_for_status()
    return response.json() if response.content else {}

  async def publish(self, quiz: QuizPayload) -> PublishedForm:
    try:
      created = await self._send("POST", f"{self._forms_base_url}/forms", json={"info": {"title": quiz.title, "documentTitle": quiz.title}})
      form_id = created.get("formId")
      if not form_id:
        raise PublishFailedError("Forms create response missing formId")

      await self._send("POST", f"{self._forms_base_url}/forms/{form_id}:batchUpdate", json={"requests": build_batch_requests(quiz)})
    except (httpx.HTTPError, CredentialsError, ValueError) as exc:
      # ValueError covers 2xx bodies that are not JSON.
      raise PublishFailedError(f"Failed to create Google Form: {exc}") from exc

    form_url = created.get("responderUri") or f"https://docs.google.com/forms/d/{form_id}/viewform"
    logger.info("Created quiz form %s with %d questions", form_id, len(quiz.questions))

    if self._output_folder_id:
      await self._move_to_output_folder(form_id)

    return PublishedForm(form_id=form_id, form_url=form_url)

  async def _move_to_output_folder(self, form_id: str) -> None:
    """File the form into the output folder; a failed move leaves a usable form behind."""
    try:
      file_info = await self._send("GET", f"{self._drive_base_url}/files/{form_id}", params={"fields": "parents", "supportsAllDrives": "true"})
      previous_parents = ",".join(file_info.get("parents") or [])
      await self._send("PATCH", f"{self._drive_base_url}/files/{form_id}", params={"addParents": self._output_folder_id, "removeParents": previous_parents, "supportsAllDrives": "true"})
      logger.info("Moved form %s to output folder %s", form_id, self._output_folder_id)
    except (httpx.HTTPError, CredentialsError, ValueError):
      logger.warning("Failed to move form %s to output folder %s", form_id, self._output_folder_id, exc_info=True)
