"""Answer position randomization for generated quizzes."""

from __future__ import annotations

import random

from meeting_quiz.schema.quiz import QuizPayload, QuizQuestion


def clamp_correct_index(question: QuizQuestion) -> int:
  """Force the correct option index into the valid option range."""
  return max(0, min(len(question.options) - 1, question.correct_option_index))


def shuffle_question(question: QuizQuestion, rng: random.Random) -> QuizQuestion:
  """Return a copy of `question` with its options uniformly permuted."""
  correct_index = clamp_correct_index(question)

  # Carry each option's original position through the shuffle so the answer can be found again.
  indexed = list(enumerate(question.options))
  rng.shuffle(indexed)

  new_correct_index = next(position for position, (original, _) in enumerate(indexed) if original == correct_index)
  return question.model_copy(update={"options": [option for _, option in indexed], "correct_option_index": new_correct_index})


def shuffle_quiz_options(quiz: QuizPayload, rng: random.Random | None = None) -> QuizPayload:
  """Randomize option order for every question while preserving the correct answer text.

  Generators tend to put the right answer in the same slot; Google Forms keeps the
  order we send, so the shuffle happens here rather than in the form settings.
  """
  rng = rng or random.SystemRandom()
  questions = [shuffle_question(question, rng) for question in quiz.questions]
  return quiz.model_copy(update={"questions": questions})
