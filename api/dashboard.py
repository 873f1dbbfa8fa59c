from __future__ import annotations

from fastapi import APIRouter, Depends

from orchestrator.engine import RoundtableEngine
from orchestrator.schemas import DashboardRead

from .dependencies import get_engine

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardRead)
async def dashboard(days_ahead: int = 7, engine: RoundtableEngine = Depends(get_engine)) -> DashboardRead:
    return await engine.dashboard.overview(days_ahead=days_ahead)
