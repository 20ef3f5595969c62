"""Command line entry point: `meeting-quiz <command>`."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from meeting_quiz.clients.secrets import SecretAccessError
from meeting_quiz.config import MAX_QUESTION_COUNT, get_settings
from meeting_quiz.core.exceptions import ProcessingError
from meeting_quiz.core.logging import initialize_logging
from meeting_quiz.jobs.models import WorkItem
from meeting_quiz.utils.drive_urls import resolve_document_id

logger = logging.getLogger("meeting_quiz.cli")


def _question_count(raw: str) -> int:
  try:
    value = int(raw)
  except ValueError as exc:
    raise argparse.ArgumentTypeError(f"{raw!r} is not an integer") from exc
  if value < 1 or value > MAX_QUESTION_COUNT:
    raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_QUESTION_COUNT}")
  return value


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(prog="meeting-quiz", description="Turn meeting transcripts into graded quiz forms.")
  commands = parser.add_subparsers(dest="command", required=True)

  commands.add_parser("scan", help="Process every changed transcript in the configured Drive folder.")

  process = commands.add_parser("process", help="Process one transcript and wait for the result.")
  process.add_argument("document", help="Drive file id or link")
  process.add_argument("--force", action="store_true", help="Regenerate even if a quiz already exists.")
  process.add_argument("--questions", type=_question_count, default=None, help="Number of questions to generate.")

  enqueue = commands.add_parser("enqueue", help="Queue one transcript and wait for the worker pool to drain.")
  enqueue.add_argument("document", help="Drive file id or link")
  enqueue.add_argument("--force", action="store_true")
  enqueue.add_argument("--questions", type=_question_count, default=None)

  status = commands.add_parser("status", help="Show the stored work item for a document.")
  status.add_argument("document", help="Drive file id or link")

  recent = commands.add_parser("recent", help="List the most recently updated work items.")
  recent.add_argument("--limit", type=int, default=20)

  commands.add_parser("init-db", help="Create the Postgres work item table.")
  return parser


def _emit(payload: Any) -> None:
  print(json.dumps(payload, indent=2, sort_keys=True))


def _item_payload(item: WorkItem | None) -> dict[str, Any] | None:
  return item.to_document() if item is not None else None


async def _run(args: argparse.Namespace) -> int:
  if args.command == "init-db":
    from meeting_quiz.core.database import create_schema

    await create_schema()
    logger.info("Work item schema is ready.")
    return 0

  from meeting_quiz.services.factory import build_services

  services = await build_services(get_settings())
  orchestrator = services.orchestrator
  try:
    if args.command == "scan":
      summary = await orchestrator.scan()
      _emit(summary.to_dict())
      return 1 if summary.errors else 0

    if args.command == "process":
      item = await orchestrator.process(resolve_document_id(args.document), force=args.force, question_count=args.questions)
      _emit(_item_payload(item))
      return 0

    if args.command == "enqueue":
      item_id = resolve_document_id(args.document)
      queued = await orchestrator.enqueue(item_id, force=args.force, question_count=args.questions)
      logger.info("Queued %s status=%s", item_id, queued.status)
      await orchestrator.worker_pool.join()
      final = await orchestrator.get_status(item_id)
      _emit(_item_payload(final))
      return 0 if final is not None and final.status == "succeeded" else 1

    if args.command == "status":
      item = await orchestrator.get_status(resolve_document_id(args.document))
      _emit(_item_payload(item))
      return 0 if item is not None else 1

    if args.command == "recent":
      items = await orchestrator.list_recent(args.limit)
      _emit([item.to_document() for item in items])
      return 0

    raise ValueError(f"Unknown command {args.command!r}")
  finally:
    await services.aclose()


def main(argv: Sequence[str] | None = None) -> int:
  args = build_parser().parse_args(argv)
  settings = get_settings()
  initialize_logging(settings)
  try:
    return asyncio.run(_run(args))
  except ProcessingError as exc:
    logger.error("%s failed: %s", args.command, exc)
    return 1
  except (ValueError, SecretAccessError) as exc:
    logger.error("%s", exc)
    return 2


if __name__ == "__main__":
  sys.exit(main())
