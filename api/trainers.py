from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from core.models import Trainer
from core.schemas import ConflictCheck, TrainerCreate, TrainerRead, UTCDateTime
from orchestrator.engine import RoundtableEngine
from orchestrator.schemas import ConflictReport, Workload
from roundtable.exceptions import InvalidInputError

from .dependencies import get_engine

router = APIRouter(prefix="/trainers", tags=["trainers"])


@router.post("", response_model=TrainerRead, status_code=status.HTTP_201_CREATED)
async def create_trainer(payload: TrainerCreate, engine: RoundtableEngine = Depends(get_engine)) -> Trainer:
    db = engine.trainers.db
    email = payload.email.strip().lower()
    existing = await db.execute(select(Trainer).where(Trainer.email == email))
    if existing.scalar_one_or_none():
        raise InvalidInputError("Trainer with this email already exists", email=email)
    trainer = Trainer(name=payload.name, email=email, expertise=payload.expertise)
    db.add(trainer)
    await db.flush()
    return trainer


@router.get("", response_model=list[TrainerRead])
async def list_trainers(engine: RoundtableEngine = Depends(get_engine)) -> list[Trainer]:
    result = await engine.trainers.db.execute(select(Trainer).order_by(Trainer.name))
    return list(result.scalars())


@router.post("/conflicts", response_model=ConflictReport)
async def check_conflicts(payload: ConflictCheck, engine: RoundtableEngine = Depends(get_engine)) -> ConflictReport:
    return await engine.trainers.check(
        payload.trainer_id,
        payload.scheduled_at,
        payload.exclude_session_id,
    )


@router.get("/{trainer_id}/workload", response_model=Workload)
async def workload(
    trainer_id: str,
    start: UTCDateTime | None = None,
    end: UTCDateTime | None = None,
    engine: RoundtableEngine = Depends(get_engine),
) -> Workload:
    return await engine.trainers.get_workload(trainer_id, start, end)
