"""
Learner-facing JSON endpoints: content, progress, TTS cache, access requests.

Permissions:
    Every route requires an allowed session identity (`auth_required`), except
    `POST /api/access-request` and `GET /api/content/catalog`, which accept any
    signed-in identity so not-yet-allowed users can ask for access.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from curriculum.catalog import catalog_payload
from curriculum.services.interview import InterviewService
from curriculum.services.terms import TermsService
from identity_access.access_requests import AccessRequestService
from identity_access.domain import Identity
from learner_progress.tracker import ProgressTracker
from speech.cache import SpeechCache
from web.deps import (
    access_request_service,
    auth_required,
    interview_service,
    progress_tracker,
    session_required,
    speech_cache,
    terms_service,
)

study_router = APIRouter(tags=["Study"])

_NO_STORE = {"Cache-Control": "private, no-store"}


def _private(body: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=_NO_STORE)


class ProgressPayload(BaseModel):
    # Loosely typed on purpose: coercion happens in the tracker and never rejects.
    module: Any = None
    total_terms: Any = None
    completed_terms: Any = None
    quiz_correct: Any = None
    quiz_incorrect: Any = None
    interview_total: Any = None
    interview_answered: Any = None


class TtsPayload(BaseModel):
    term: Optional[str] = None
    audio: Optional[str] = None


class AccessRequestPayload(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    reason: Optional[str] = None


@study_router.post("/api/progress")
async def post_progress(
    payload: ProgressPayload,
    identity: Identity = Depends(auth_required),
    tracker: ProgressTracker = Depends(progress_tracker),
):
    tracker.record(identity.user_id, payload.model_dump())
    return _private({"ok": True})


@study_router.get("/api/content/terms")
async def content_terms(
    _identity: Identity = Depends(auth_required),
    terms: TermsService = Depends(terms_service),
):
    return _private(terms.study_content())


@study_router.get("/api/content/interview")
async def content_interview(
    _identity: Identity = Depends(auth_required),
    interview: InterviewService = Depends(interview_service),
):
    return _private(interview.study_content())


@study_router.get("/api/content/catalog")
async def content_catalog(_identity: Identity = Depends(session_required)):
    """Categories and levels shared by validation and the study UI."""
    return _private(catalog_payload())


@study_router.get("/api/tts/{term:path}")
async def get_tts(
    term: str,
    _identity: Identity = Depends(auth_required),
    cache: SpeechCache = Depends(speech_cache),
):
    return _private({"audio": cache.fetch_base64(term)})


@study_router.post("/api/tts")
async def post_tts(
    payload: TtsPayload,
    _identity: Identity = Depends(auth_required),
    cache: SpeechCache = Depends(speech_cache),
):
    cache.store_base64(payload.term, payload.audio)
    return _private({"status": "ok"})


@study_router.post("/api/access-request")
async def post_access_request(
    payload: AccessRequestPayload,
    identity: Identity = Depends(session_required),
    requests_svc: AccessRequestService = Depends(access_request_service),
):
    requests_svc.submit(identity, payload.name, payload.reason)
    return _private({"ok": True})
