from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from meeting_quiz.ai import gemini
from meeting_quiz.ai.gemini import GeminiQuizGenerator, parse_quiz_response, strip_json_fences
from meeting_quiz.core.exceptions import GenerationFailedError
from meeting_quiz.schema.quiz import QUIZ_RESPONSE_SCHEMA

_VALID_QUIZ = {
  "title": "Standup quiz",
  "summary": "Alice discussed the release.",
  "questions": [
    {"question": "Who discussed the release?", "options": ["Alice", "Bob", "Carol", "Dan"], "correctOptionIndex": 0, "rationale": "Alice led it."},
    {"question": "What was discussed?", "options": ["Hiring", "The release"], "correctOptionIndex": 1, "rationale": None},
  ],
}


def _client(*responses: object) -> MagicMock:
  client = MagicMock()
  client.aio.models.generate_content = AsyncMock(side_effect=list(responses))
  return client


def _response(text: str | None) -> SimpleNamespace:
  return SimpleNamespace(text=text, usage_metadata=SimpleNamespace(prompt_token_count=120, candidates_token_count=80))


def test_parse_accepts_camel_case_payload() -> None:
  quiz = parse_quiz_response(json.dumps(_VALID_QUIZ), source_title="Standup")

  assert quiz.title == "Standup quiz"
  assert quiz.questions[1].correct_option == "The release"
  assert quiz.questions[1].rationale == ""


def test_parse_strips_markdown_fences() -> None:
  fenced = "```json\n" + json.dumps(_VALID_QUIZ) + "\n```"

  assert strip_json_fences(fenced) == json.dumps(_VALID_QUIZ)
  assert parse_quiz_response(fenced, source_title="Standup").summary == "Alice discussed the release."


def test_parse_fills_missing_title() -> None:
  payload = {**_VALID_QUIZ, "title": ""}

  assert parse_quiz_response(json.dumps(payload), source_title="Standup").title == "Quiz for Standup"


@pytest.mark.parametrize(
  "raw",
  [
    None,
    "   ",
    "not json",
    "[1, 2]",
    json.dumps({**_VALID_QUIZ, "questions": []}),
    json.dumps({**_VALID_QUIZ, "questions": [{"question": "Only one option?", "options": ["A"], "correctOptionIndex": 0}]}),
    json.dumps({**_VALID_QUIZ, "questions": [{"question": "Missing index?", "options": ["A", "B"]}]}),
  ],
)
def test_parse_rejects_unusable_output(raw: str | None) -> None:
  with pytest.raises(GenerationFailedError):
    parse_quiz_response(raw, source_title="Standup")


@pytest.mark.anyio
async def test_generate_sends_prompt_in_json_mode() -> None:
  client = _client(_response(json.dumps(_VALID_QUIZ)))
  generator = GeminiQuizGenerator(model="gemini-2.5-flash", client=client)

  quiz = await generator.generate(title="Standup", text="Alice discussed the release.", question_count=2, supplemental_instructions="Keep it short.")

  assert len(quiz.questions) == 2
  kwargs = client.aio.models.generate_content.await_args.kwargs
  assert kwargs["model"] == "gemini-2.5-flash"
  assert kwargs["config"] == {"response_mime_type": "application/json", "response_schema": QUIZ_RESPONSE_SCHEMA}
  assert "Alice discussed the release." in kwargs["contents"]
  assert "Keep it short." in kwargs["contents"]
  assert "Generate 2 multiple-choice questions" in kwargs["contents"]


@pytest.mark.anyio
async def test_generate_wraps_transport_errors() -> None:
  generator = GeminiQuizGenerator(model="gemini-2.5-flash", client=_client(RuntimeError("connection reset")))

  with pytest.raises(GenerationFailedError, match="connection reset"):
    await generator.generate(title="Standup", text="text", question_count=2)


@pytest.mark.anyio
async def test_generate_retries_rate_limits(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setattr(gemini, "_RETRY_BASE_DELAY_SECONDS", 0.0)
  client = _client(RuntimeError("429 RESOURCE_EXHAUSTED"), _response(json.dumps(_VALID_QUIZ)))
  generator = GeminiQuizGenerator(model="gemini-2.5-flash", client=client)

  quiz = await generator.generate(title="Standup", text="text", question_count=2)

  assert quiz.title == "Standup quiz"
  assert client.aio.models.generate_content.await_count == 2


@pytest.mark.anyio
async def test_generate_rejects_empty_response() -> None:
  generator = GeminiQuizGenerator(model="gemini-2.5-flash", client=_client(_response("")))

  with pytest.raises(GenerationFailedError, match="empty response"):
    await generator.generate(title="Standup", text="text", question_count=2)


def test_api_key_is_required_without_client() -> None:
  with pytest.raises(ValueError, match="GEMINI_API_KEY"):
    GeminiQuizGenerator(model="gemini-2.5-flash")
