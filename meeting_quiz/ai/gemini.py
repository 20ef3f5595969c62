"""Gemini quiz generator using the google-genai SDK."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any

from google import genai
from pydantic import ValidationError

from meeting_quiz.ai.prompts import build_quiz_prompt
from meeting_quiz.clients.base import QuizGenerator
from meeting_quiz.core.exceptions import GenerationFailedError
from meeting_quiz.schema.quiz import QUIZ_RESPONSE_SCHEMA, QuizPayload

logger = logging.getLogger(__name__)

_RATE_LIMIT_RETRIES = 3
_RETRY_BASE_DELAY_SECONDS = 1.0


def strip_json_fences(text: str) -> str:
  """Remove Markdown code fences some models wrap around JSON output."""
  cleaned = text.strip()
  if cleaned.startswith("```"):
    cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
    if cleaned.rstrip().endswith("```"):
      cleaned = cleaned.rstrip()[:-3]
  return cleaned.strip()


def parse_quiz_response(raw_text: str | None, *, source_title: str) -> QuizPayload:
  """Validate the model's JSON text into a quiz payload."""
  if not raw_text or not raw_text.strip():
    raise GenerationFailedError("Gemini returned an empty response")

  try:
    data = json.loads(strip_json_fences(raw_text))
  except json.JSONDecodeError as exc:
    raise GenerationFailedError(f"Gemini returned invalid JSON: {exc}") from exc

  if not isinstance(data, dict):
    raise GenerationFailedError("Gemini returned JSON that is not an object")

  # An empty title is recoverable; everything else must match the schema.
  if not data.get("title"):
    data["title"] = f"Quiz for {source_title}"

  try:
    quiz = QuizPayload.model_validate(data)
  except ValidationError as exc:
    raise GenerationFailedError(f"Gemini returned a malformed quiz: {exc.error_count()} validation errors ({exc.errors()[0]['msg']})") from exc

  if not quiz.questions:
    raise GenerationFailedError("Gemini returned a quiz without questions")
  return quiz


class GeminiQuizGenerator(QuizGenerator):
  """Generates quizzes with Gemini JSON mode and validates them at the boundary."""

  def __init__(self, *, model: str, api_key: str | None = None, client: Any | None = None) -> None:
    if client is None:
      if not api_key:
        raise ValueError("GEMINI_API_KEY is required for Gemini access")
      client = genai.Client(api_key=api_key)
    self._client = client
    self._model = model

  async def generate(self, *, title: str, text: str, question_count: int, supplemental_instructions: str | None = None) -> QuizPayload:
    prompt = build_quiz_prompt(title=title, transcript=text, question_count=question_count, supplemental_instructions=supplemental_instructions)
    config = {"response_mime_type": "application/json", "response_schema": QUIZ_RESPONSE_SCHEMA}

    try:
      # Use the async client to avoid blocking the asyncio event loop.
      response = await _with_backoff(self._client.aio.models.generate_content, model=self._model, contents=prompt, config=config)
    except Exception as exc:
      raise GenerationFailedError(f"Gemini request failed: {exc}") from exc

    if response.usage_metadata:
      logger.info("Gemini usage model=%s prompt_tokens=%s completion_tokens=%s", self._model, response.usage_metadata.prompt_token_count, response.usage_metadata.candidates_token_count)

    quiz = parse_quiz_response(response.text, source_title=title)
    if len(quiz.questions) != question_count:
      logger.warning("Gemini returned %d questions, %d requested", len(quiz.questions), question_count)
    return quiz


async def _with_backoff(func, *args, **kwargs):
  retries = _RATE_LIMIT_RETRIES
  base_delay = _RETRY_BASE_DELAY_SECONDS
  for i in range(retries):
    try:
      return await func(*args, **kwargs)
    except Exception as e:
      # Only rate limiting is worth waiting out; everything else fails the attempt.
      if "429" in str(e) or "RESOURCE_EXHAUSTED" in str(e):
        if i == retries - 1:
          raise
        delay = base_delay * (2**i) + random.uniform(0, base_delay)
        logger.warning("Gemini rate limited, retrying in %.1fs (attempt %d/%d)", delay, i + 1, retries)
        await asyncio.sleep(delay)
      else:
        raise
  return await func(*args, **kwargs)
