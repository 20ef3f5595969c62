"""Prompt templates for quiz generation."""

from __future__ import annotations

QUIZ_PROMPT_TEMPLATE = """You are creating a quiz based on a meeting transcript titled "{title}".
Generate {question_count} multiple-choice questions that test understanding of the meeting.
Return JSON that matches the provided schema. Use exactly {question_count} questions and at least 4 plausible options per question. The correctOptionIndex must be 0-based.
Write a short summary of the meeting in the summary field and explain each answer in the rationale field.
{supplemental}
Transcript:
{transcript}"""


def build_quiz_prompt(*, title: str, transcript: str, question_count: int, supplemental_instructions: str | None = None) -> str:
  """Render the quiz generation prompt."""
  supplemental = ""
  # Operator-configured guidance goes before the transcript so it is not mistaken for meeting content.
  if supplemental_instructions and supplemental_instructions.strip():
    supplemental = f"\nAdditional instructions:\n{supplemental_instructions.strip()}\n"
  return QUIZ_PROMPT_TEMPLATE.format(title=title, question_count=question_count, supplemental=supplemental, transcript=transcript).strip()
