"""
Content curation and progress dashboard (uploader role: admin or manager).

Behavior summary:
    - Terms: single create validates fully (400); bulk is best-effort.
    - Interview: single create never dedupes; bulk is all-or-nothing on
      duplicates (409 with the offending questions).
    - Deletes are hard deletes (404 when the row does not exist).
"""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from curriculum.services.interview import InterviewService
from curriculum.services.terms import TermsService
from identity_access.domain import Identity
from learner_progress.tracker import ProgressTracker
from web.deps import interview_service, progress_tracker, terms_service, uploader_required

curation_router = APIRouter(prefix="/api/admin", tags=["Curation"])

_NO_STORE = {"Cache-Control": "private, no-store"}


def _private(body: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=_NO_STORE)


class TermPayload(BaseModel):
    t: Optional[str] = None
    d: Optional[str] = None
    l: Any = None
    c: Optional[str] = None


class TermsBulkPayload(BaseModel):
    entries: Optional[List[Any]] = None


class InterviewPayload(BaseModel):
    question: Optional[str] = None
    ideal_answer: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None


class InterviewBulkPayload(BaseModel):
    entries: Optional[List[Any]] = None
    role: Optional[str] = None
    company: Optional[str] = None


@curation_router.get("/progress")
async def progress_dashboard(
    _uploader: Identity = Depends(uploader_required),
    tracker: ProgressTracker = Depends(progress_tracker),
):
    return _private(tracker.dashboard())


# --- terms ---------------------------------------------------------------

@curation_router.get("/terms")
async def list_terms(
    _uploader: Identity = Depends(uploader_required),
    terms: TermsService = Depends(terms_service),
):
    return _private(terms.list_all())


@curation_router.post("/terms")
async def create_term(
    payload: TermPayload,
    uploader: Identity = Depends(uploader_required),
    terms: TermsService = Depends(terms_service),
):
    term_id = terms.create(uploader, payload.model_dump())
    return _private({"ok": True, "id": term_id})


@curation_router.post("/terms/bulk")
async def create_terms_bulk(
    payload: TermsBulkPayload,
    uploader: Identity = Depends(uploader_required),
    terms: TermsService = Depends(terms_service),
):
    imported = terms.bulk_create(uploader, payload.entries)
    return _private({"ok": True, "imported": imported})


@curation_router.delete("/terms/{term_id}")
async def delete_term(
    term_id: int,
    uploader: Identity = Depends(uploader_required),
    terms: TermsService = Depends(terms_service),
):
    terms.delete(uploader, term_id)
    return _private({"ok": True})


# --- interview -----------------------------------------------------------

@curation_router.get("/interview")
async def list_interview(
    _uploader: Identity = Depends(uploader_required),
    interview: InterviewService = Depends(interview_service),
):
    return _private(interview.list_all())


@curation_router.post("/interview")
async def create_interview(
    payload: InterviewPayload,
    uploader: Identity = Depends(uploader_required),
    interview: InterviewService = Depends(interview_service),
):
    entry_id = interview.create(uploader, payload.model_dump())
    return _private({"ok": True, "id": entry_id})


@curation_router.post("/interview/bulk")
async def create_interview_bulk(
    payload: InterviewBulkPayload,
    uploader: Identity = Depends(uploader_required),
    interview: InterviewService = Depends(interview_service),
):
    imported = interview.bulk_create(uploader, payload.entries, payload.role, payload.company)
    return _private({"ok": True, "imported": imported})


@curation_router.delete("/interview/{entry_id}")
async def delete_interview(
    entry_id: int,
    uploader: Identity = Depends(uploader_required),
    interview: InterviewService = Depends(interview_service),
):
    interview.delete(uploader, entry_id)
    return _private({"ok": True})
