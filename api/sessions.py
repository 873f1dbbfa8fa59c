from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, status

from core import services
from core.models import Session
from core.schemas import QuestionsSubmit, RescheduleRequest, SessionRead, SessionStatusUpdate, TrainerAssign
from orchestrator.engine import RoundtableEngine
from orchestrator.schemas import AssignmentResult, CalendarEntry, QuestionSet

from .dependencies import get_engine

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/upcoming", response_model=list[CalendarEntry])
async def upcoming_sessions(days_ahead: int = 7, engine: RoundtableEngine = Depends(get_engine)) -> list[CalendarEntry]:
    return await engine.scheduler.get_upcoming_sessions(days_ahead)


@router.get("/calendar", response_model=dict[str, list[CalendarEntry]])
async def calendar(
    roundtable_id: str | None = None,
    month: date | None = None,
    engine: RoundtableEngine = Depends(get_engine),
) -> dict[str, list[CalendarEntry]]:
    return await engine.scheduler.get_calendar(roundtable_id, month)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session_detail(session_id: str, engine: RoundtableEngine = Depends(get_engine)) -> Session:
    return await services.get_roundtable_session(engine.scheduler.db, session_id)


@router.patch("/{session_id}/schedule", response_model=SessionRead)
async def reschedule_session(
    session_id: str, payload: RescheduleRequest, engine: RoundtableEngine = Depends(get_engine)
) -> Session:
    return await engine.scheduler.update_session_schedule(
        session_id,
        payload.scheduled_at,
        reason=payload.reason,
        skip_conflict_check=payload.skip_conflict_check,
    )


@router.patch("/{session_id}/status", response_model=SessionRead)
async def update_session_status(
    session_id: str, payload: SessionStatusUpdate, engine: RoundtableEngine = Depends(get_engine)
) -> Session:
    return await engine.lifecycle.update_session_status(session_id, payload.status)


@router.post("/{session_id}/trainer", response_model=AssignmentResult)
async def assign_trainer(
    session_id: str, payload: TrainerAssign, engine: RoundtableEngine = Depends(get_engine)
) -> AssignmentResult:
    return await engine.trainers.assign_trainer(session_id, payload.trainer_id, payload.skip_conflict_check)


@router.get("/{session_id}/questions", response_model=QuestionSet)
async def get_questions(session_id: str, engine: RoundtableEngine = Depends(get_engine)) -> QuestionSet:
    return await engine.questions.get_session_questions(session_id)


@router.post("/{session_id}/questions", response_model=QuestionSet, status_code=status.HTTP_201_CREATED)
async def submit_questions(
    session_id: str, payload: QuestionsSubmit, engine: RoundtableEngine = Depends(get_engine)
) -> QuestionSet:
    return await engine.questions.submit_questions(session_id, payload.trainer_id, payload.questions)
