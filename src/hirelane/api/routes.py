from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_

from hirelane.api.deps import get_faults, get_store
from hirelane.api.faults import FaultInjector
from hirelane.api.schemas import (
    AssessmentList,
    AssessmentResponse,
    AssessmentSubmitRequest,
    AssessmentUpsertRequest,
    CandidatePage,
    CandidateResponse,
    JobCreateRequest,
    JobList,
    JobPage,
    JobReorderRequest,
    JobResponse,
    JobUpdateRequest,
    NoteCreateRequest,
    NoteList,
    NoteResponse,
    StageUpdateRequest,
    StageUpdateResponse,
    TimelineList,
    TimelineEventResponse,
)
from hirelane.core.timeline import append_timeline_event
from hirelane.db.base import utcnow
from hirelane.db.models import Assessment, Candidate, Job, Note, TimelineEvent
from hirelane.db.seed import slugify
from hirelane.db.store import PersistentStore
from hirelane.errors import NotFound, ValidationError
from hirelane.types import CandidateStage, JobStatus, JobType

# Declared route table answered in-process by the intercepting transport.
router = APIRouter(tags=["mock"])


def _search(term: str, *columns: Any) -> Any | None:
    term = term.strip().lower()
    if not term:
        return None
    return or_(*(func.lower(column).contains(term, autoescape=True) for column in columns))


def _criteria(*clauses: Any) -> list[Any]:
    return [clause for clause in clauses if clause is not None]


@router.get("/jobs", response_model=JobPage)
async def list_jobs(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, alias="pageSize"),
    search: str = "",
    status: JobStatus | None = None,
    job_type: JobType | None = Query(None, alias="type"),
    store: PersistentStore = Depends(get_store),
) -> JobPage:
    criteria = _criteria(
        _search(search, Job.title, Job.description),
        Job.status == status if status else None,
        Job.type == job_type if job_type else None,
    )
    with store.transaction() as tx:
        total = tx.count("jobs", *criteria)
        rows = tx.query(
            "jobs",
            *criteria,
            order_by=[Job.order, Job.id],
            offset=(page - 1) * page_size,
            limit=page_size,
        )
    return JobPage(data=[JobResponse.model_validate(row) for row in rows], total=total)


@router.put("/jobs/reorder", response_model=JobList)
async def reorder_jobs(
    payload: JobReorderRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> JobList:
    await faults.inject("reorder_jobs")
    with store.transaction() as tx:
        rows = tx.query("jobs", Job.id.in_(payload.ids))
        found = {row.id for row in rows}
        missing = [job_id for job_id in payload.ids if job_id not in found]
        if missing:
            raise NotFound("jobs", missing[0])

        # The listed jobs trade their existing order slots, so the global
        # ordering stays a strict total order.
        slots = sorted(row.order for row in rows)
        reordered = [tx.update("jobs", job_id, {"order": slot}) for job_id, slot in zip(payload.ids, slots)]
    return JobList(data=[JobResponse.model_validate(row) for row in reordered])


@router.post("/jobs", response_model=JobResponse, status_code=201)
async def create_job(
    payload: JobCreateRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> JobResponse:
    await faults.inject("create_job")
    with store.transaction() as tx:
        last = tx.query("jobs", order_by=Job.order.desc(), limit=1)
        values = payload.model_dump()
        values["slug"] = slugify(payload.title)
        values["order"] = (last[0].order if last else 0) + 1
        job_id = tx.insert("jobs", values)
        job = tx.require("jobs", job_id)
    return JobResponse.model_validate(job)


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: int, store: PersistentStore = Depends(get_store)) -> JobResponse:
    job = store.get("jobs", job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.model_validate(job)


@router.patch("/jobs/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    payload: JobUpdateRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> JobResponse:
    patch = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not patch:
        raise ValidationError("job update must change at least one field")
    if "title" in patch:
        patch["slug"] = slugify(patch["title"])

    await faults.inject("update_job")
    job = store.update("jobs", job_id, patch)
    return JobResponse.model_validate(job)


@router.get("/candidates", response_model=CandidatePage)
async def list_candidates(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, alias="pageSize"),
    search: str = "",
    stage: CandidateStage | None = None,
    job_id: int | None = Query(None, alias="jobId"),
    store: PersistentStore = Depends(get_store),
) -> CandidatePage:
    criteria = _criteria(
        _search(search, Candidate.name, Candidate.email),
        Candidate.stage == stage if stage else None,
        Candidate.job_id == job_id if job_id is not None else None,
    )
    with store.transaction() as tx:
        total = tx.count("candidates", *criteria)
        rows = tx.query(
            "candidates",
            *criteria,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
    return CandidatePage(data=[CandidateResponse.model_validate(row) for row in rows], total=total)


@router.get("/candidates/{candidate_id}", response_model=CandidateResponse)
async def get_candidate(candidate_id: int, store: PersistentStore = Depends(get_store)) -> CandidateResponse:
    candidate = store.get("candidates", candidate_id)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return CandidateResponse.model_validate(candidate)


@router.patch("/candidates/{candidate_id}", response_model=StageUpdateResponse)
async def update_candidate_stage(
    candidate_id: int,
    payload: StageUpdateRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> StageUpdateResponse:
    await faults.inject("update_candidate_stage")
    with store.transaction() as tx:
        candidate = tx.require("candidates", candidate_id)
        previous = candidate.stage
        candidate = tx.update("candidates", candidate_id, {"stage": payload.stage})
    return StageUpdateResponse(data=CandidateResponse.model_validate(candidate), previous_stage=previous)


@router.get("/candidates/{candidate_id}/timeline", response_model=TimelineList)
async def get_candidate_timeline(candidate_id: int, store: PersistentStore = Depends(get_store)) -> TimelineList:
    with store.transaction() as tx:
        if not tx.get("candidates", candidate_id):
            raise HTTPException(status_code=404, detail="Candidate not found")
        rows = tx.query(
            "timeline",
            TimelineEvent.candidate_id == candidate_id,
            order_by=[TimelineEvent.created_at, TimelineEvent.id],
        )
    return TimelineList(data=[TimelineEventResponse.model_validate(row) for row in rows])


@router.get("/candidates/{candidate_id}/notes", response_model=NoteList)
async def get_candidate_notes(candidate_id: int, store: PersistentStore = Depends(get_store)) -> NoteList:
    with store.transaction() as tx:
        if not tx.get("candidates", candidate_id):
            raise HTTPException(status_code=404, detail="Candidate not found")
        rows = tx.query("notes", Note.candidate_id == candidate_id, order_by=[Note.created_at, Note.id])
    return NoteList(data=[NoteResponse.model_validate(row) for row in rows])


@router.post("/candidates/{candidate_id}/notes", response_model=NoteResponse, status_code=201)
async def create_candidate_note(
    candidate_id: int,
    payload: NoteCreateRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> NoteResponse:
    await faults.inject("create_note")
    now = utcnow()
    with store.transaction() as tx:
        tx.require("candidates", candidate_id)
        note_id = tx.insert(
            "notes",
            {
                "candidate_id": candidate_id,
                "author": payload.author,
                "content": payload.content,
                "created_at": now,
            },
        )
        note = tx.require("notes", note_id)
        append_timeline_event(
            tx,
            candidate_id,
            type="note",
            description="Added a note",
            author=payload.author,
            now=now,
        )
    return NoteResponse.model_validate(note)


@router.get("/assessments", response_model=AssessmentList)
async def list_assessments(store: PersistentStore = Depends(get_store)) -> AssessmentList:
    rows = store.query("assessments", order_by=Assessment.job_id)
    return AssessmentList(data=[AssessmentResponse.model_validate(row) for row in rows])


@router.get("/assessments/{job_id}", response_model=AssessmentResponse)
async def get_assessment(job_id: int, store: PersistentStore = Depends(get_store)) -> AssessmentResponse:
    assessment = store.get("assessments", job_id)
    if not assessment:
        raise HTTPException(status_code=404, detail="Assessment not found")
    return AssessmentResponse.model_validate(assessment)


@router.put("/assessments/{job_id}", response_model=AssessmentResponse)
async def upsert_assessment(
    job_id: int,
    payload: AssessmentUpsertRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> AssessmentResponse:
    await faults.inject("upsert_assessment")
    questions = [question.model_dump() for question in payload.questions]
    with store.transaction() as tx:
        tx.require("jobs", job_id)
        if tx.get("assessments", job_id):
            assessment = tx.update("assessments", job_id, {"questions": questions})
        else:
            tx.insert("assessments", {"job_id": job_id, "questions": questions})
            assessment = tx.require("assessments", job_id)
    return AssessmentResponse.model_validate(assessment)


@router.post("/assessments/{job_id}/responses", response_model=AssessmentResponse)
async def submit_assessment(
    job_id: int,
    payload: AssessmentSubmitRequest,
    store: PersistentStore = Depends(get_store),
    faults: FaultInjector = Depends(get_faults),
) -> AssessmentResponse:
    await faults.inject("submit_assessment")
    with store.transaction() as tx:
        assessment = tx.require("assessments", job_id)
        options = {question["id"]: question.get("options", []) for question in assessment.questions}
        for question_id, answer in payload.responses.items():
            if question_id not in options:
                raise ValidationError(f"unknown question '{question_id}'")
            if options[question_id] and answer not in options[question_id]:
                raise ValidationError(f"answer for '{question_id}' must be one of {options[question_id]}")
        assessment = tx.update("assessments", job_id, {"responses": dict(payload.responses)})
    return AssessmentResponse.model_validate(assessment)
