"""Quiz payload contracts shared by the generator, the randomizer and the form publisher."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel


class QuizQuestion(BaseModel):
  """One multiple-choice question with a zero-based correct option index."""

  question: StrictStr = Field(min_length=1)
  options: list[StrictStr] = Field(min_length=2)
  correct_option_index: StrictInt
  rationale: StrictStr = ""
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

  @field_validator("question")
  @classmethod
  def strip_question(cls, value: str) -> str:
    stripped = value.strip()
    if not stripped:
      raise ValueError("Question text must not be blank.")
    return stripped

  @field_validator("rationale", mode="before")
  @classmethod
  def default_rationale(cls, value: object) -> object:
    # Models frequently send null for optional rationale text.
    if value is None:
      return ""
    return value

  @property
  def correct_option(self) -> str:
    return self.options[self.correct_option_index]


class QuizPayload(BaseModel):
  """Structured quiz produced by the generator, prior to publishing."""

  title: StrictStr
  summary: StrictStr = ""
  questions: list[QuizQuestion]
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

  @field_validator("summary", mode="before")
  @classmethod
  def default_summary(cls, value: object) -> object:
    if value is None:
      return ""
    return value


# JSON schema handed to the model in JSON mode. Kept hand-written because the
# Gemini response_schema dialect rejects the $defs that pydantic emits.
QUIZ_RESPONSE_SCHEMA: dict = {
  "type": "object",
  "properties": {
    "title": {"type": "string"},
    "summary": {"type": "string"},
    "questions": {
      "type": "array",
      "items": {
        "type": "object",
        "properties": {
          "question": {"type": "string"},
          "options": {"type": "array", "items": {"type": "string"}, "minItems": 2},
          "correctOptionIndex": {"type": "integer"},
          "rationale": {"type": "string"},
        },
        "required": ["question", "options", "correctOptionIndex"],
      },
    },
  },
  "required": ["title", "summary", "questions"],
}
