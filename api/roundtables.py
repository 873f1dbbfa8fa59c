from __future__ import annotations

from fastapi import APIRouter, Body, Depends, status

from core import services
from core.models import Participant, Roundtable
from core.schemas import ParticipantCreate, ParticipantRead, RoundtableCreate, RoundtableRead, ScheduleRequest
from orchestrator.engine import RoundtableEngine
from orchestrator.schemas import AutoAssignResult, FinalizationResult, OpenVotingResult, ScheduleResult
from roundtable.models import PreferredTime, ScheduleOptions

from .dependencies import get_engine

router = APIRouter(prefix="/roundtables", tags=["roundtables"])


@router.post("", response_model=RoundtableRead, status_code=status.HTTP_201_CREATED)
async def create_roundtable(payload: RoundtableCreate, engine: RoundtableEngine = Depends(get_engine)) -> Roundtable:
    return await engine.lifecycle.create_roundtable(
        client_id=payload.client_id,
        name=payload.name,
        topics=payload.topics,
        max_participants=payload.max_participants,
        description=payload.description,
        start_date=payload.start_date,
        questions_min=payload.questions_min,
        questions_max=payload.questions_max,
    )


@router.get("", response_model=list[RoundtableRead])
async def list_roundtables(
    client_id: str | None = None, engine: RoundtableEngine = Depends(get_engine)
) -> list[Roundtable]:
    return await services.list_roundtables(engine.lifecycle.db, client_id)


@router.get("/{roundtable_id}", response_model=RoundtableRead)
async def get_roundtable(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> Roundtable:
    return await services.get_roundtable(engine.lifecycle.db, roundtable_id)


@router.get("/{roundtable_id}/progress")
async def get_progress(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> dict:
    progress = await engine.lifecycle.calculate_progress(roundtable_id)
    return {"roundtable_id": roundtable_id, "progress": progress}


@router.get("/{roundtable_id}/participants", response_model=list[ParticipantRead])
async def list_participants(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> list[Participant]:
    await services.get_roundtable(engine.lifecycle.db, roundtable_id)
    return await services.list_participants(engine.lifecycle.db, roundtable_id)


@router.post(
    "/{roundtable_id}/participants",
    response_model=ParticipantRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_participant(
    roundtable_id: str, payload: ParticipantCreate, engine: RoundtableEngine = Depends(get_engine)
) -> Participant:
    return await engine.lifecycle.add_participant(roundtable_id, payload.name, payload.email)


@router.post("/{roundtable_id}/participants/{participant_id}/drop", response_model=ParticipantRead)
async def drop_participant(
    roundtable_id: str, participant_id: str, engine: RoundtableEngine = Depends(get_engine)
) -> Participant:
    return await engine.lifecycle.drop_participant(roundtable_id, participant_id)


@router.post("/{roundtable_id}/voting/open", response_model=OpenVotingResult)
async def open_voting(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> OpenVotingResult:
    return await engine.lifecycle.open_voting(roundtable_id)


@router.post("/{roundtable_id}/voting/finalize", response_model=FinalizationResult)
async def finalize_voting(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> FinalizationResult:
    return await engine.lifecycle.finalize_voting(roundtable_id)


@router.post("/{roundtable_id}/schedule", response_model=ScheduleResult)
async def schedule_sessions(
    roundtable_id: str, payload: ScheduleRequest, engine: RoundtableEngine = Depends(get_engine)
) -> ScheduleResult:
    preferred = (
        PreferredTime(payload.preferred_time.hour, payload.preferred_time.minute)
        if payload.preferred_time
        else engine.scheduler.default_preferred_time()
    )
    options = ScheduleOptions(
        start_date=payload.start_date,
        session_duration=payload.session_duration,
        frequency=payload.frequency,
        skip_weekends=payload.skip_weekends,
        preferred_time=preferred,
    )
    return await engine.lifecycle.schedule_sessions(roundtable_id, options)


@router.post("/{roundtable_id}/start", response_model=RoundtableRead)
async def start_roundtable(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> Roundtable:
    return await engine.lifecycle.start(roundtable_id)


@router.post("/{roundtable_id}/cancel", response_model=RoundtableRead)
async def cancel_roundtable(
    roundtable_id: str,
    reason: str | None = Body(default=None, embed=True),
    engine: RoundtableEngine = Depends(get_engine),
) -> Roundtable:
    return await engine.lifecycle.cancel(roundtable_id, reason=reason)


@router.post("/{roundtable_id}/trainers/auto-assign", response_model=AutoAssignResult)
async def auto_assign_trainers(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> AutoAssignResult:
    return await engine.trainers.auto_assign_trainers(roundtable_id)
