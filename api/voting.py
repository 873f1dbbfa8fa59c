from __future__ import annotations

from fastapi import APIRouter, Depends

from core.schemas import TokenVoteSubmit, VoteSubmit
from orchestrator.engine import RoundtableEngine
from orchestrator.schemas import Ballot, VoteReceipt, VotingProgress, VotingResults

from .dependencies import get_engine

router = APIRouter(tags=["voting"])


@router.post("/roundtables/{roundtable_id}/votes", response_model=VoteReceipt)
async def submit_votes(
    roundtable_id: str, payload: VoteSubmit, engine: RoundtableEngine = Depends(get_engine)
) -> VoteReceipt:
    return await engine.voting.submit_votes(roundtable_id, payload.email, payload.topic_ids)


@router.get("/roundtables/{roundtable_id}/votes/results", response_model=VotingResults)
async def get_results(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> VotingResults:
    return await engine.voting.get_results(roundtable_id)


@router.get("/roundtables/{roundtable_id}/votes/progress", response_model=VotingProgress)
async def get_progress(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> VotingProgress:
    return await engine.voting.get_progress(roundtable_id)


@router.post("/roundtables/{roundtable_id}/votes/reminders")
async def send_reminders(roundtable_id: str, engine: RoundtableEngine = Depends(get_engine)) -> dict:
    return {"sent": await engine.voting.send_reminders(roundtable_id)}


@router.get("/roundtables/{roundtable_id}/ballot", response_model=Ballot)
async def get_ballot(roundtable_id: str, email: str, engine: RoundtableEngine = Depends(get_engine)) -> Ballot:
    return await engine.voting.get_ballot(roundtable_id, email)


@router.get("/voting/access")
async def resolve_access(token: str, engine: RoundtableEngine = Depends(get_engine)) -> dict:
    access = await engine.voting.resolve_token(token)
    return {
        "roundtable_id": access.roundtable_id,
        "email": access.email,
        "has_voted": await engine.voting.has_voted(access.roundtable_id, access.email),
    }


@router.post("/voting/submit", response_model=VoteReceipt)
async def submit_with_token(payload: TokenVoteSubmit, engine: RoundtableEngine = Depends(get_engine)) -> VoteReceipt:
    return await engine.voting.submit_votes_with_token(payload.token, payload.topic_ids)
