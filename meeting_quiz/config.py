"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from meeting_quiz.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

MAX_QUESTION_COUNT = 50
_RECORD_STORES = {"firestore", "postgres"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the meeting quiz service."""

  environment: str
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  drive_folder_id: str | None
  drive_output_folder_id: str | None
  gemini_api_key: str | None
  gemini_api_key_secret: str | None
  gemini_model: str
  quiz_additional_prompt: str | None
  default_question_count: int
  record_store: str
  firestore_collection: str
  gcp_project_id: str | None
  service_account_email: str | None
  pg_dsn: str | None
  pg_connect_timeout: int
  worker_concurrency: int
  worker_queue_size: int
  http_timeout_seconds: float


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("MEETING_QUIZ_ENV", "development").lower()
  debug = _parse_bool(os.getenv("MEETING_QUIZ_DEBUG"))

  log_max_bytes = _positive_int("MEETING_QUIZ_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("MEETING_QUIZ_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("MEETING_QUIZ_LOG_BACKUP_COUNT must be zero or a positive integer.")

  default_question_count = _positive_int("MEETING_QUIZ_DEFAULT_QUESTION_COUNT", "10")
  if default_question_count > MAX_QUESTION_COUNT:
    raise ValueError(f"MEETING_QUIZ_DEFAULT_QUESTION_COUNT must not exceed {MAX_QUESTION_COUNT}.")

  record_store = (os.getenv("MEETING_QUIZ_RECORD_STORE") or "firestore").strip().lower()
  if record_store not in _RECORD_STORES:
    raise ValueError("MEETING_QUIZ_RECORD_STORE must be 'firestore' or 'postgres'.")

  # Postgres is only required when it backs the record store.
  pg_dsn = _optional_str(os.getenv("MEETING_QUIZ_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  if record_store == "postgres" and not pg_dsn:
    raise ValueError("MEETING_QUIZ_PG_DSN must be set when MEETING_QUIZ_RECORD_STORE is 'postgres'.")

  http_timeout_seconds = float(os.getenv("MEETING_QUIZ_HTTP_TIMEOUT_SECONDS", "60"))
  if http_timeout_seconds <= 0:
    raise ValueError("MEETING_QUIZ_HTTP_TIMEOUT_SECONDS must be positive.")

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=(os.getenv("MEETING_QUIZ_LOG_DIR") or "logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    drive_folder_id=_optional_str(os.getenv("GOOGLE_DRIVE_FOLDER_ID")),
    drive_output_folder_id=_optional_str(os.getenv("GOOGLE_DRIVE_OUTPUT_FOLDER_ID")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")) or _optional_str(os.getenv("GOOGLE_GENERATIVE_AI_API_KEY")),
    gemini_api_key_secret=_optional_str(os.getenv("GEMINI_API_KEY_SECRET")) or _optional_str(os.getenv("GOOGLE_GENERATIVE_AI_API_KEY_SECRET")),
    gemini_model=(os.getenv("GEMINI_MODEL") or "gemini-2.5-flash").strip(),
    quiz_additional_prompt=_optional_str(os.getenv("QUIZ_ADDITIONAL_PROMPT")),
    default_question_count=default_question_count,
    record_store=record_store,
    firestore_collection=(os.getenv("MEETING_QUIZ_FIRESTORE_COLLECTION") or "driveFiles").strip(),
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    service_account_email=_optional_str(os.getenv("SERVICE_ACCOUNT_EMAIL")),
    pg_dsn=pg_dsn,
    pg_connect_timeout=_positive_int("MEETING_QUIZ_PG_CONNECT_TIMEOUT", "5"),
    worker_concurrency=_positive_int("MEETING_QUIZ_WORKER_CONCURRENCY", "2"),
    worker_queue_size=_positive_int("MEETING_QUIZ_WORKER_QUEUE_SIZE", "100"),
    http_timeout_seconds=http_timeout_seconds,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the Google integration variables."""
  debug = _parse_bool(os.getenv("MEETING_QUIZ_DEBUG"))
  pg_connect_timeout = _positive_int("MEETING_QUIZ_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("MEETING_QUIZ_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
