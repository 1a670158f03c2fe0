"""Database-backed collaborators for the session engine.

Both classes raise after rolling back on failure; the engine logs and
carries on with its in-memory state.
"""
import logging
from typing import Callable, List, Optional

from flask_login import current_user

from mathdash import db
from mathdash.models import LevelProgress, Score
from .problems import Operation

logger = logging.getLogger(__name__)


def current_user_identity() -> Optional[int]:
    try:
        if current_user and current_user.is_authenticated:
            return int(current_user.id)
    except Exception:
        logger.debug("[identity] no request context for current_user")
    return None


def owner_key_for(user_id: Optional[int], device_id: Optional[str] = None) -> Optional[str]:
    """Progress key for a player, or None for a guest with no device id."""
    if user_id is not None:
        return f"user:{user_id}"
    if device_id:
        return f"device:{str(device_id)[:48]}"
    return None


class SqlProgressStore:
    """Level rows for one owner. Without an owner nothing is loaded or saved."""

    def __init__(self, owner_key: Optional[str]) -> None:
        self.owner_key = owner_key

    def load_saved_level(self, operation: Operation) -> int:
        if self.owner_key is None:
            return 0
        row = LevelProgress.query.filter_by(owner_key=self.owner_key, operation=operation.value).first()
        return int(row.level) if row else 0

    def save_level(self, operation: Operation, level: int) -> None:
        if self.owner_key is None:
            logger.info(f"[level-skip] no owner operation={operation.value} level={level}")
            return
        try:
            row = LevelProgress.query.filter_by(owner_key=self.owner_key, operation=operation.value).first()
            if row is None:
                row = LevelProgress(owner_key=self.owner_key, operation=operation.value)
            row.level = int(level)
            db.session.add(row)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


class SqlScoreReporter:
    def __init__(self, identity: Callable[[], Optional[int]] = current_user_identity) -> None:
        self.identity = identity

    def report_final_score(self, score: int, operation: Operation) -> Optional[Score]:
        user_id = self.identity()
        if user_id is None:
            logger.info(f"[report-skip] anonymous score={score} operation={operation.value}")
            return None
        try:
            row = Score(user_id=user_id, score=int(score), operation_type=operation.value)
            db.session.add(row)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info(f"[report] user={user_id} score={score} operation={operation.value}")
        return row


def top_scores(operation, limit: int = 10) -> List[Score]:
    operation = Operation.parse(operation)
    return (
        Score.query.filter_by(operation_type=operation.value)
        .order_by(Score.score.desc(), Score.created_at.asc())
        .limit(limit)
        .all()
    )


def reset_scores(user_id: int) -> int:
    """Delete a user's own scores; returns how many rows went."""
    try:
        removed = Score.query.filter_by(user_id=user_id).delete()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return removed
