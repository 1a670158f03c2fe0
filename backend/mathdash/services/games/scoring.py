"""Scoring and level rules for a quiz session."""

START_TIME_SEC = 30
TIME_BONUS_SEC = 5
MAX_TIME_SEC = 99
WRONG_ANSWER_PENALTY = 5
MAX_LEVEL = 9
STREAK_PER_LEVEL = 5


def points_for_level(level: int) -> int:
    """Points for one correct answer: 10 at level 0, +5 per level, 60 past the cap."""
    if level <= 0:
        return 10
    if level <= MAX_LEVEL:
        return 10 + level * 5
    return 60


def level_for_streak(consecutive_correct: int) -> int:
    # Recomputed from the whole streak, not incremented per level
    return min(MAX_LEVEL, consecutive_correct // STREAK_PER_LEVEL)


def clamp_level(level) -> int:
    try:
        level = int(level)
    except (TypeError, ValueError):
        return 0
    return max(0, min(MAX_LEVEL, level))


def apply_penalty(score: int) -> int:
    return max(0, score - WRONG_ANSWER_PENALTY)


def add_time_bonus(time_left: int) -> int:
    return min(MAX_TIME_SEC, time_left + TIME_BONUS_SEC)
