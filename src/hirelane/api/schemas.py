from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from hirelane.db.base import isoformat
from hirelane.types import CandidateStage, JobStatus, JobType, TimelineEventType

IsoDatetime = Annotated[datetime, PlainSerializer(isoformat, return_type=str)]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class JobResponse(WireModel):
    id: int
    title: str
    slug: str
    status: JobStatus
    type: JobType
    location: str
    description: str
    requirements: list[str]
    skills: list[str]
    tags: list[str]
    order: int
    created_at: IsoDatetime


class JobPage(WireModel):
    data: list[JobResponse]
    total: int


class JobList(WireModel):
    data: list[JobResponse]


class JobCreateRequest(WireModel):
    title: str = Field(min_length=1)
    status: JobStatus = "active"
    type: JobType = "Full-time"
    location: str = ""
    description: str = ""
    requirements: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class JobUpdateRequest(WireModel):
    title: str | None = Field(default=None, min_length=1)
    status: JobStatus | None = None
    type: JobType | None = None
    location: str | None = None
    description: str | None = None
    requirements: list[str] | None = None
    skills: list[str] | None = None
    tags: list[str] | None = None


class JobReorderRequest(WireModel):
    ids: list[int] = Field(min_length=1)

    @field_validator("ids")
    @classmethod
    def validate_unique(cls, value: list[int]) -> list[int]:
        if len(set(value)) != len(value):
            raise ValueError("ids must not repeat")
        return value


class CandidateResponse(WireModel):
    id: int
    job_id: int
    job_title: str
    name: str
    email: str
    phone: str
    applied_date: IsoDatetime
    stage: CandidateStage


class CandidatePage(WireModel):
    data: list[CandidateResponse]
    total: int


class StageUpdateRequest(WireModel):
    stage: CandidateStage


class StageUpdateResponse(WireModel):
    data: CandidateResponse
    previous_stage: CandidateStage


class NoteCreateRequest(WireModel):
    author: str = Field(min_length=1)
    content: str = Field(min_length=1)


class NoteResponse(WireModel):
    id: int
    candidate_id: int
    author: str
    content: str
    created_at: IsoDatetime


class NoteList(WireModel):
    data: list[NoteResponse]


class TimelineEventResponse(WireModel):
    id: int
    candidate_id: int
    type: TimelineEventType
    description: str
    created_at: IsoDatetime
    author: str | None = None
    from_stage: CandidateStage | None = None
    to_stage: CandidateStage | None = None


class TimelineList(WireModel):
    data: list[TimelineEventResponse]


class AssessmentQuestion(WireModel):
    id: str = Field(min_length=1)
    text: str
    options: list[str] = Field(default_factory=list)


class AssessmentResponse(WireModel):
    job_id: int
    questions: list[AssessmentQuestion]
    responses: dict[str, str] | None = None


class AssessmentList(WireModel):
    data: list[AssessmentResponse]


class AssessmentUpsertRequest(WireModel):
    questions: list[AssessmentQuestion]

    @field_validator("questions")
    @classmethod
    def validate_unique_ids(cls, value: list[AssessmentQuestion]) -> list[AssessmentQuestion]:
        ids = [question.id for question in value]
        if len(set(ids)) != len(ids):
            raise ValueError("question ids must not repeat")
        return value


class AssessmentSubmitRequest(WireModel):
    responses: dict[str, str]
