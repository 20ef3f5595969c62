from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from meeting_quiz.core.database import Base


class WorkItemRow(Base):
  __tablename__ = "work_items"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  title: Mapped[str | None] = mapped_column(Text, nullable=True)
  source_version_marker: Mapped[str | None] = mapped_column(String, nullable=True)
  question_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
  form_id: Mapped[str | None] = mapped_column(String, nullable=True)
  form_url: Mapped[str | None] = mapped_column(Text, nullable=True)
  summary: Mapped[str | None] = mapped_column(Text, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  progress: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, index=True)
