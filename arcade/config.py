"""Runtime configuration for Arcade Duels"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from arcade.types.game import GameKind


class ArcadeConfig(BaseModel):
    """Timeouts, limits and backing services"""
    challenge_timeout: float = Field(30.0, gt=0, description="Seconds an opponent has to respond")
    chooser_round_timeout: float = Field(60.0, gt=0, description="Seconds per chooser round")
    relay_round_timeout: float = Field(30.0, gt=0, description="Seconds per relay puzzle")
    board_timeout: float = Field(300.0, gt=0, description="Inactivity limit for alignment and gravity")
    default_target_score: int = Field(3, ge=1)
    max_target_score: int = Field(10, ge=1)

    log_dir: str = Field("match_logs")
    registry_path: Optional[str] = Field(None, description="JSON registry file; in-memory when unset")
    wallet_url: Optional[str] = Field(None, description="Wallet service URL; in-memory wallet when unset")

    host: str = "0.0.0.0"
    port: int = 9001

    @classmethod
    def from_env(cls) -> "ArcadeConfig":
        """Read configuration from the environment (and a .env file, if present)."""
        load_dotenv()
        return cls(
            challenge_timeout=float(os.getenv("ARCADE_CHALLENGE_TIMEOUT_SEC", "30")),
            chooser_round_timeout=float(os.getenv("ARCADE_CHOOSER_ROUND_TIMEOUT_SEC", "60")),
            relay_round_timeout=float(os.getenv("ARCADE_RELAY_ROUND_TIMEOUT_SEC", "30")),
            board_timeout=float(os.getenv("ARCADE_BOARD_TIMEOUT_SEC", "300")),
            default_target_score=int(os.getenv("ARCADE_DEFAULT_TARGET_SCORE", "3")),
            max_target_score=int(os.getenv("ARCADE_MAX_TARGET_SCORE", "10")),
            log_dir=os.getenv("ARCADE_LOG_DIR", "match_logs"),
            registry_path=os.getenv("ARCADE_REGISTRY_PATH") or None,
            wallet_url=os.getenv("ARCADE_WALLET_URL") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "9001")),
        )

    def timeout_for(self, game_kind: GameKind) -> float:
        if game_kind == GameKind.CHOOSER:
            return self.chooser_round_timeout
        if game_kind == GameKind.RELAY:
            return self.relay_round_timeout
        return self.board_timeout
