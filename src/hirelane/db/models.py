from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hirelane.db.base import Base, TimestampMixin, utcnow
from hirelane.types import CANDIDATE_STAGES, JOB_STATUSES, JOB_TYPES, TIMELINE_EVENT_TYPES

# Ids must keep growing even if a row ever goes away, so every keyed table
# asks SQLite for AUTOINCREMENT instead of rowid reuse.
_AUTOINCREMENT = {"sqlite_autoincrement": True}


class StoreMeta(Base):
    __tablename__ = "store_meta"

    key: Mapped[str] = mapped_column(String(80), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), default="", nullable=False)


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"
    __table_args__ = _AUTOINCREMENT

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), index=True, default="active", nullable=False)
    type: Mapped[str] = mapped_column(String(40), default="Full-time", nullable=False)
    location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    requirements: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    skills: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    order: Mapped[int] = mapped_column("order", Integer, index=True, nullable=False)


class Candidate(TimestampMixin, Base):
    __tablename__ = "candidates"
    __table_args__ = _AUTOINCREMENT

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id"), index=True)
    job_title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    applied_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, default=utcnow, nullable=False
    )
    stage: Mapped[str] = mapped_column(String(20), index=True, default="applied", nullable=False)


class Assessment(TimestampMixin, Base):
    __tablename__ = "assessments"

    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id"), primary_key=True, autoincrement=False)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    responses: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = _AUTOINCREMENT

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey("candidates.id"), index=True)
    author: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, default=utcnow, nullable=False
    )


class TimelineEvent(Base):
    __tablename__ = "timeline"
    __table_args__ = _AUTOINCREMENT

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey("candidates.id"), index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, default=utcnow, nullable=False
    )
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    from_stage: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_stage: Mapped[str | None] = mapped_column(String(20), nullable=True)


TABLES: dict[str, type[Base]] = {
    "jobs": Job,
    "candidates": Candidate,
    "assessments": Assessment,
    "notes": Note,
    "timeline": TimelineEvent,
}

ENUMERATED_FIELDS: dict[str, dict[str, tuple[str, ...]]] = {
    "jobs": {"status": JOB_STATUSES, "type": JOB_TYPES},
    "candidates": {"stage": CANDIDATE_STAGES},
    "timeline": {
        "type": TIMELINE_EVENT_TYPES,
        "from_stage": CANDIDATE_STAGES,
        "to_stage": CANDIDATE_STAGES,
    },
}
IMMUTABLE_FIELDS: dict[str, frozenset[str]] = {
    "jobs": frozenset({"id", "created_at"}),
    "candidates": frozenset({"id", "applied_date", "created_at"}),
    "assessments": frozenset({"job_id", "created_at"}),
}
APPEND_ONLY_TABLES = frozenset({"notes", "timeline"})
