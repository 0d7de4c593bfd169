from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Generator

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from decision_game.config.runtime import RuntimeSettings
from decision_game.db import DBScoreRepository, create_session
from decision_game.errors import DecisionGameError, NotFoundError, ValidationError
from decision_game.services.interfaces.score_repository import ScoreRepository
from decision_game.services.score import ScoreService

logger = logging.getLogger(__name__)

SETTINGS = RuntimeSettings.from_env()

app = FastAPI(title="Decision Game Scores API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_allowed_origins),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )


# ── Dependencies ──

def get_settings() -> RuntimeSettings:
    return SETTINGS


def get_db_session() -> Generator[Session, Any, None]:
    with create_session() as session:
        yield session


def get_score_repository(
    session_db: Annotated[Session, Depends(get_db_session)],
    settings: Annotated[RuntimeSettings, Depends(get_settings)],
) -> ScoreRepository:
    return DBScoreRepository(session_db, max_attempts=settings.upsert_max_attempts)


def get_score_service(
    score_repository: Annotated[ScoreRepository, Depends(get_score_repository)],
    settings: Annotated[RuntimeSettings, Depends(get_settings)],
) -> ScoreService:
    return ScoreService(score_repository=score_repository, settings=settings)


# ── Error envelopes ──

@app.exception_handler(DecisionGameError)
async def handle_decision_game_error(request: Request, exc: DecisionGameError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"error": "Internal error", "details": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Unknown endpoint"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s crashed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal error", "details": str(exc)})


# ── Routes ──

@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/decisionGame/saveScore")
async def save_score(
    request: Request,
    service: Annotated[ScoreService, Depends(get_score_service)],
) -> dict[str, bool]:
    # parsed by hand so text/plain bodies (no CORS preflight) are accepted too
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw.strip() else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError("Request body must be valid JSON") from exc

    await run_in_threadpool(service.submit_score, payload)
    return {"success": True}


@app.get("/decisionGame/leaderboard")
def get_leaderboard(
    service: Annotated[ScoreService, Depends(get_score_service)],
    mode: Annotated[str | None, Query()] = None,
) -> dict[str, Any]:
    return service.get_leaderboard(mode).to_public()


@app.api_route("/decisionGame/{tail:path}", methods=["GET", "POST"])
def unknown_decision_game_endpoint(tail: str) -> None:
    raise NotFoundError("Unknown endpoint")


def main() -> None:
    configure_logging()
    logger.info("decision game api bootstrap")
    uvicorn.run(app, host=SETTINGS.api_host, port=SETTINGS.api_port)


if __name__ == "__main__":
    main()
