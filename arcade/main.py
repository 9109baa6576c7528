"""Arcade Duels HTTP server"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from arcade.config import ArcadeConfig
from arcade.errors.handler import ArcadeError, ChallengeError, ErrorHandler, PreconditionFailed
from arcade.orchestrator import ArcadeOrchestrator
from arcade.types.challenge import Challenge, ChallengeOutcome, Decision, Participant
from arcade.types.game import GameKind, GameKindConfig, MoveResult, PlayerRecord, Session

logger = logging.getLogger(__name__)


class ProposeRequest(BaseModel):
    community_id: str = Field(..., min_length=1)
    proposer: Participant
    opponent: Participant
    game_kind: GameKind
    stake: int = 0
    target_score: Optional[int] = Field(None, ge=1, description="Round wins needed (chooser only)")


class RespondRequest(BaseModel):
    player_id: str
    decision: Decision


class MoveRequest(BaseModel):
    player_id: str
    move: Any = Field(..., description="Move object or bare value: [row, col], column, choice or [answer, round]")


class ToggleRequest(BaseModel):
    enabled: bool


class ChallengeView(BaseModel):
    challenge: Challenge
    outcome: Optional[ChallengeOutcome] = None


def create_app(orchestrator: Optional[ArcadeOrchestrator] = None) -> FastAPI:
    """Create the FastAPI application around an orchestrator."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.orchestrator = orchestrator or ArcadeOrchestrator(ArcadeConfig.from_env())
        logger.info("Arcade Duels ready")
        yield
        await app.state.orchestrator.close()
        logger.info("Arcade Duels stopped")

    app = FastAPI(title="Arcade Duels", lifespan=lifespan)

    def arcade(request: Request) -> ArcadeOrchestrator:
        return request.app.state.orchestrator

    @app.exception_handler(ArcadeError)
    async def handle_arcade_error(request: Request, exc: ArcadeError):
        content: Dict[str, Any] = {
            "category": ErrorHandler.classify_error(exc).value,
            "detail": str(exc),
        }
        if isinstance(exc, PreconditionFailed):
            content["rejection"] = jsonable_encoder(exc.rejection)
        elif isinstance(exc, ChallengeError):
            content["code"] = exc.code.value
        return JSONResponse(status_code=ErrorHandler.http_status(exc), content=content)

    @app.get("/")
    async def health():
        return {"status": "ok"}

    @app.post("/challenges", status_code=201, response_model=Challenge)
    async def propose(body: ProposeRequest, request: Request):
        return await arcade(request).propose_challenge(
            body.community_id,
            body.proposer,
            body.opponent,
            body.game_kind,
            stake=body.stake,
            target_score=body.target_score,
        )

    @app.get("/challenges/{challenge_id}", response_model=ChallengeView)
    async def get_challenge(challenge_id: str, request: Request):
        challenge = arcade(request).get_challenge(challenge_id)
        if challenge is None:
            raise HTTPException(status_code=404, detail=f"Unknown challenge {challenge_id}")
        return ChallengeView(
            challenge=challenge,
            outcome=arcade(request).challenges.outcome(challenge_id),
        )

    @app.post("/challenges/{challenge_id}/respond", response_model=ChallengeOutcome)
    async def respond(challenge_id: str, body: RespondRequest, request: Request):
        return arcade(request).player_responded(challenge_id, body.player_id, body.decision)

    @app.delete("/challenges/{challenge_id}", response_model=ChallengeOutcome)
    async def cancel(challenge_id: str, player_id: str, request: Request):
        return arcade(request).cancel_challenge(challenge_id, player_id)

    @app.get("/sessions/{session_id}", response_model=Session)
    async def get_session(session_id: str, request: Request):
        session = arcade(request).sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
        return session

    @app.post("/sessions/{session_id}/moves", response_model=MoveResult)
    async def submit_move(session_id: str, body: MoveRequest, request: Request):
        return await arcade(request).move_submitted(session_id, body.player_id, body.move)

    @app.get("/communities/{community_id}/games", response_model=List[GameKindConfig])
    async def list_games(community_id: str, request: Request):
        return await arcade(request).get_game_configs(community_id)

    @app.put("/communities/{community_id}/games/{game_kind}", response_model=GameKindConfig)
    async def toggle_game(community_id: str, game_kind: GameKind, body: ToggleRequest, request: Request):
        return await arcade(request).set_game_enabled(community_id, game_kind, body.enabled)

    @app.get("/communities/{community_id}/players/{user_id}/stats", response_model=List[PlayerRecord])
    async def player_stats(community_id: str, user_id: str, request: Request):
        return await arcade(request).get_player_stats(community_id, user_id)

    return app


def start_server(host: str = "0.0.0.0", port: int = 9001):
    """Start the Arcade Duels server."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info(f"Starting Arcade Duels on {host}:{port}...")
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    config = ArcadeConfig.from_env()
    start_server(host=config.host, port=config.port)
