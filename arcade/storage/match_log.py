"""Append-only JSONL log of each session, one file per session."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from arcade.types.game import MatchResult, Session

logger = logging.getLogger(__name__)


def _serialize_for_json(obj: Any) -> Any:
    """Recursively serialize objects for JSON."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {_serialize_for_json(k): _serialize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize_for_json(item) for item in obj]
    elif hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    elif hasattr(obj, "value"):  # Enum
        return obj.value
    else:
        return obj


class MatchLogger:
    """Writes session lifecycle events to ``<log_dir>/<session_id>.jsonl``."""

    def __init__(self, log_dir: str = "match_logs"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def log_session_started(self, session: Session) -> None:
        self._write_session_event(session.session_id, {
            "event": "session_started",
            "community_id": session.community_id,
            "game_kind": session.game_kind.value,
            "players": session.players,
            "stake": session.stake,
            "board": session.board,
        })

    def log_move(
        self,
        session_id: str,
        player_id: str,
        move: Any,
        outcome: str,
        reason: Optional[str] = None,
        round_number: Optional[int] = None
    ) -> None:
        self._write_session_event(session_id, {
            "event": "move",
            "player_id": player_id,
            "move": move,
            "outcome": outcome,
            "reason": reason,
            "round": round_number,
        })

    def log_session_finished(self, result: MatchResult) -> None:
        self._write_session_event(result.session_id, {
            "event": "session_finished",
            "result": result,
        })

    def log_session_cancelled(self, session_id: str, reason: str) -> None:
        self._write_session_event(session_id, {
            "event": "session_cancelled",
            "reason": reason,
        })

    def _write_session_event(self, session_id: str, event: Dict[str, Any]) -> None:
        """Write an event to the session's log file."""
        log_file = self.log_dir / f"{session_id}.jsonl"
        record = {"timestamp": datetime.now(timezone.utc).isoformat(), "session_id": session_id}
        record.update(_serialize_for_json(event))

        try:
            with open(log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write event to log file {log_file}: {e}")

    def load_session_log(self, session_id: str) -> Optional[List[Dict[str, Any]]]:
        """Load a session's events in write order, or None if it was never logged."""
        log_file = self.log_dir / f"{session_id}.jsonl"

        if not log_file.exists():
            return None

        events = []
        try:
            with open(log_file, "r", encoding="utf-8") as f:
                for line in f:
                    if line.strip():
                        events.append(json.loads(line))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read log file {log_file}: {e}")
            return None

        return events
