from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.db import async_engine
from core.logging import logger
from core.models import Base
from roundtable.exceptions import (
    InvalidInputError,
    NotAssignedError,
    NotFoundError,
    NotRegisteredError,
    PreconditionFailedError,
    RoundTableError,
    TrainerConflictError,
)

from . import clients, dashboard, questions, roundtables, sessions, trainers, voting

settings = get_settings()

ERROR_STATUS_CODES: tuple[tuple[type[RoundTableError], int], ...] = (
    (NotFoundError, 404),
    (TrainerConflictError, 409),
    (PreconditionFailedError, 409),
    (InvalidInputError, 422),
    (NotAssignedError, 403),
    (NotRegisteredError, 403),
)

app = FastAPI(title=settings.app_name)


def status_code_for(exc: RoundTableError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 400


@app.exception_handler(RoundTableError)
async def roundtable_error_handler(request: Request, exc: RoundTableError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.bind(event="request_rejected", code=exc.code, path=request.url.path).info(
        "{} {} rejected: {}", request.method, request.url.path, exc.message
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.as_dict()))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.bind(event="unhandled_error", path=request.url.path).exception(
        "Unhandled error on {} {}", request.method, request.url.path
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal server error", "details": {}},
    )


@app.on_event("startup")
async def startup() -> None:
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


app.include_router(clients.router, prefix="/api")
app.include_router(roundtables.router, prefix="/api")
app.include_router(voting.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")
app.include_router(trainers.router, prefix="/api")
app.include_router(questions.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment}
