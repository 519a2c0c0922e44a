"""HTTP surface for blueprint authoring, attempt delivery and batch scoring."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Body, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import __version__
from .core.scoring import ScoringEngine
from .core.engines import candidate_engine
from .errors import (
    AttemptNotFoundError,
    BlueprintNotFoundError,
    BlueprintStateError,
    BlueprintValidationError,
    InvalidFormatError,
    StaleAttemptError,
)
from .schemas import (
    Attempt,
    AttemptQuestions,
    AttemptSummary,
    Blueprint,
    CandidateRecord,
    EvaluationResult,
    IntegrityEventType,
    ScreeningRubric,
    SubmitReceipt,
)
from .store.memory import InMemoryAttemptStore

logger = structlog.get_logger(__name__)


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class StartAttemptIn(_Body):
    blueprint_id: str
    candidate_id: str


class ResponseIn(_Body):
    item_id: str
    response: Any = None
    client_seq: int = Field(ge=0)


class IntegrityEventIn(_Body):
    event_type: IntegrityEventType
    timestamp: datetime


class SubmitIn(_Body):
    time_spent_seconds: int = Field(default=0, ge=0)
    fullscreen_exits: int = Field(default=0, ge=0)
    tab_switches: int = Field(default=0, ge=0)


class EvaluateIn(_Body):
    subjects: list[CandidateRecord]
    rubric: ScreeningRubric


class EvaluateOut(_Body):
    results: list[EvaluationResult]


def _store(request: Request) -> InMemoryAttemptStore:
    return request.app.state.store


def _engine(request: Request) -> ScoringEngine:
    return request.app.state.candidate_engine


blueprints = APIRouter(prefix="/blueprints", tags=["Blueprints"])
attempts = APIRouter(prefix="/attempts", tags=["Attempts"])
scoring = APIRouter(tags=["Scoring"])


@blueprints.post("", response_model=Blueprint, status_code=status.HTTP_201_CREATED)
async def create_blueprint(request: Request, document: dict[str, Any] = Body(...)):
    return _store(request).blueprints.create(document)


@blueprints.patch("/{blueprint_id}", response_model=Blueprint)
async def patch_blueprint(blueprint_id: str, request: Request, changes: dict[str, Any] = Body(...)):
    return _store(request).blueprints.patch(blueprint_id, changes)


@blueprints.post("/{blueprint_id}/activate", response_model=Blueprint)
async def activate_blueprint(blueprint_id: str, request: Request):
    return _store(request).blueprints.activate(blueprint_id)


@blueprints.get("/{blueprint_id}", response_model=Blueprint)
async def get_blueprint(blueprint_id: str, request: Request):
    return _store(request).blueprints.get(blueprint_id)


@attempts.post("", response_model=Attempt, status_code=status.HTTP_201_CREATED)
async def start_attempt(payload: StartAttemptIn, request: Request):
    return _store(request).start_attempt(payload.blueprint_id, payload.candidate_id)


@attempts.get("/{attempt_id}", response_model=AttemptSummary)
async def get_attempt(attempt_id: str, request: Request):
    return await _store(request).get_attempt(attempt_id)


@attempts.get("/{attempt_id}/questions", response_model=AttemptQuestions)
async def get_questions(attempt_id: str, request: Request):
    return await _store(request).get_questions(attempt_id)


@attempts.post("/{attempt_id}/responses", status_code=status.HTTP_204_NO_CONTENT)
async def save_response(attempt_id: str, payload: ResponseIn, request: Request) -> None:
    try:
        await _store(request).save_response(
            attempt_id,
            payload.item_id,
            payload.response,
            client_seq=payload.client_seq,
        )
    except KeyError as exc:
        if isinstance(exc, AttemptNotFoundError):
            raise
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc.args[0])) from exc


@attempts.post("/{attempt_id}/integrity-events", status_code=status.HTTP_204_NO_CONTENT)
async def record_integrity_event(attempt_id: str, payload: IntegrityEventIn, request: Request) -> None:
    await _store(request).record_integrity_event(attempt_id, payload.event_type, payload.timestamp)


@attempts.post("/{attempt_id}/submit", response_model=SubmitReceipt)
async def submit_attempt(attempt_id: str, request: Request, payload: SubmitIn | None = None):
    payload = payload or SubmitIn()
    return await _store(request).submit(
        attempt_id,
        time_spent_seconds=payload.time_spent_seconds,
        fullscreen_exits=payload.fullscreen_exits,
        tab_switches=payload.tab_switches,
    )


@scoring.post("/evaluate", response_model=EvaluateOut)
async def evaluate(payload: EvaluateIn, request: Request):
    results = _engine(request).evaluate_batch(payload.subjects, payload.rubric)
    logger.info("api.evaluated", subjects=len(payload.subjects), rubric=payload.rubric.job_title)
    return EvaluateOut(results=results)


async def _validation_failed(request: Request, exc: BlueprintValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {
                "message": "Blueprint validation failed",
                "violations": [violation.to_dict() for violation in exc.violations],
            }
        },
    )


async def _invalid_format(request: Request, exc: InvalidFormatError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


async def _stale_attempt(request: Request, exc: StaleAttemptError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


async def _conflict(request: Request, exc: BlueprintStateError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


async def _not_found(request: Request, exc: KeyError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


def create_app(
    *,
    store: InMemoryAttemptStore | None = None,
    engine: ScoringEngine | None = None,
) -> FastAPI:
    """Build the application around an owning store and a candidate scoring engine."""
    app = FastAPI(title="assessengine", version=__version__)
    app.state.store = store or InMemoryAttemptStore()
    app.state.candidate_engine = engine or candidate_engine()

    app.add_exception_handler(BlueprintValidationError, _validation_failed)
    app.add_exception_handler(InvalidFormatError, _invalid_format)
    app.add_exception_handler(StaleAttemptError, _stale_attempt)
    app.add_exception_handler(BlueprintStateError, _conflict)
    app.add_exception_handler(AttemptNotFoundError, _not_found)
    app.add_exception_handler(BlueprintNotFoundError, _not_found)

    app.include_router(blueprints)
    app.include_router(attempts)
    app.include_router(scoring)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app


__all__ = ["create_app"]
