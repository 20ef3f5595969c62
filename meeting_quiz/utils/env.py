"""Minimal .env support so local runs can pick up Google and Gemini credentials."""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = ('"', "'")


def default_env_path() -> Path:
  """Return the .env path next to the project root."""

  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
  """Parse one KEY=VALUE line, returning None for comments and malformed lines."""

  line = raw_line.strip()
  # Skip blank lines and comments.
  if not line or line.startswith("#"):
    return None

  # Accept shell-style `export KEY=VALUE` lines.
  line = line.removeprefix("export ").lstrip()
  key, sep, value = line.partition("=")
  key = key.strip()
  if not sep or not key:
    return None

  value = value.strip()
  if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
    value = value[1:-1]

  return key, value


def load_env_file(path: Path, *, override: bool = False) -> int:
  """Export the pairs found in `path` and return how many were applied."""

  if not path.is_file():
    return 0

  applied = 0
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    parsed = parse_env_line(raw_line)
    if parsed is None:
      continue

    key, value = parsed
    # Real environment variables win unless the caller asks otherwise.
    if not override and key in os.environ:
      continue

    os.environ[key] = value
    applied += 1

  return applied
