from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from core.models import Client
from core.schemas import ClientCreate, ClientRead
from orchestrator.engine import RoundtableEngine

from .dependencies import get_engine

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientCreate, engine: RoundtableEngine = Depends(get_engine)) -> Client:
    return await engine.lifecycle.create_client(payload.name, payload.company, payload.email)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: str, engine: RoundtableEngine = Depends(get_engine)) -> Response:
    await engine.lifecycle.delete_client(client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
