from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, Field

JobStatus = Literal["active", "archived"]
JobType = Literal["Full-time", "Part-time", "Contract", "Internship"]
CandidateStage = Literal["applied", "screen", "tech", "offer", "hired", "rejected"]
TimelineEventType = Literal["system", "note", "stage-change"]
NotificationKind = Literal["success", "failure"]

JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
JOB_TYPES: tuple[str, ...] = get_args(JobType)
CANDIDATE_STAGES: tuple[str, ...] = get_args(CandidateStage)
TIMELINE_EVENT_TYPES: tuple[str, ...] = get_args(TimelineEventType)


class Notification(BaseModel):
    kind: NotificationKind
    message: str


class Page(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0


class StageChange(BaseModel):
    candidate_id: int
    from_stage: CandidateStage
    to_stage: CandidateStage


class SeedResult(BaseModel):
    seeded: bool
    jobs: int = 0
    candidates: int = 0
    notes: int = 0
    timeline: int = 0
    assessments: int = 0
