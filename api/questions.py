from __future__ import annotations

from fastapi import APIRouter, Depends

from core.schemas import ReviewBatch
from orchestrator.engine import RoundtableEngine
from orchestrator.schemas import QuestionSet

from .dependencies import get_engine

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/pending", response_model=list[QuestionSet])
async def pending_reviews(engine: RoundtableEngine = Depends(get_engine)) -> list[QuestionSet]:
    return await engine.questions.get_pending_reviews()


@router.post("/review", response_model=list[QuestionSet])
async def review_questions(payload: ReviewBatch, engine: RoundtableEngine = Depends(get_engine)) -> list[QuestionSet]:
    return await engine.questions.review_questions(payload.decisions, reviewer=payload.reviewer)
