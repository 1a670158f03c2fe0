import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from .problems import Operation, Problem, generate_problem
from .scoring import (
    START_TIME_SEC,
    TIME_BONUS_SEC,
    WRONG_ANSWER_PENALTY,
    add_time_bonus,
    apply_penalty,
    clamp_level,
    level_for_streak,
    points_for_level,
)

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class ProgressStore(Protocol):
    def load_saved_level(self, operation: Operation) -> int: ...

    def save_level(self, operation: Operation, level: int) -> None: ...


class ScoreReporter(Protocol):
    def report_final_score(self, score: int, operation: Operation): ...


@dataclass
class SessionState:
    operation: Operation
    current_problem: Problem
    score: int = 0
    time_remaining: int = START_TIME_SEC
    is_playing: bool = False
    is_game_over: bool = False
    difficulty_level: int = 0
    consecutive_correct: int = 0
    last_score_change: Optional[int] = None
    last_time_bonus: Optional[int] = None
    leveled_up: bool = False
    score_reported: bool = field(default=False, repr=False)

    @property
    def status(self) -> str:
        if self.is_playing:
            return 'playing'
        if self.is_game_over:
            return 'game_over'
        return 'idle'

    def to_dict(self):
        return {
            'status': self.status,
            'operation': self.operation.value,
            'score': self.score,
            'time_remaining': self.time_remaining,
            'is_playing': self.is_playing,
            'is_game_over': self.is_game_over,
            'difficulty_level': self.difficulty_level,
            'consecutive_correct': self.consecutive_correct,
            'last_score_change': self.last_score_change,
            'last_time_bonus': self.last_time_bonus,
            'leveled_up': self.leveled_up,
            'problem': self.current_problem.to_dict(),
        }


class SessionEngine:
    """Owns one quiz session: problems, score, clock and difficulty.

    All mutating calls are expected to arrive one at a time, and answers
    outside Playing are ignored without touching state. Transient
    feedback (score change, time bonus, level-up flag) is cleared through
    ``schedule(delay, fn)``; each clear is bound to the ``generation`` that
    produced it so a late clear never wipes newer feedback.
    """

    def __init__(
        self,
        progress_store: ProgressStore,
        score_reporter: ScoreReporter,
        schedule: Optional[Callable[[float, Callable[[], None]], None]] = None,
        feedback_delay: float = 1.5,
        problem_factory: Callable[..., Problem] = generate_problem,
    ) -> None:
        self.progress_store = progress_store
        self.score_reporter = score_reporter
        self.schedule = schedule
        self.feedback_delay = feedback_delay
        self.problem_factory = problem_factory
        self.generation = 0
        # Bumped once per start_game; background clocks are bound to one run
        self.run = 0
        self.state = SessionState(
            operation=Operation.ADDITION,
            current_problem=problem_factory(Operation.ADDITION, 0),
        )

    def start_game(self, operation) -> SessionState:
        operation = Operation.parse(operation)
        level = self._load_level(operation)
        self.generation += 1
        self.run += 1
        self.state = SessionState(
            operation=operation,
            current_problem=self.problem_factory(operation, level),
            is_playing=True,
            difficulty_level=level,
        )
        logger.info(f"[session-start] operation={operation.value} level={level}")
        return self.state

    def submit_answer(self, raw_answer) -> bool:
        state = self.state
        if not state.is_playing:
            logger.info(f"[answer-ignored] status={state.status}")
            return False
        text = str(raw_answer).strip()
        given = int(text) if _INTEGER_RE.fullmatch(text) else None
        is_correct = given is not None and given == state.current_problem.correct_answer

        self.generation += 1
        if is_correct:
            earned = points_for_level(state.difficulty_level)
            state.score += earned
            state.consecutive_correct += 1
            new_level = level_for_streak(state.consecutive_correct)
            state.leveled_up = False
            if new_level > state.difficulty_level:
                state.difficulty_level = new_level
                state.leveled_up = True
                self._save_level(state.operation, new_level)
                logger.info(f"[level-up] operation={state.operation.value} level={new_level}")
            state.time_remaining = add_time_bonus(state.time_remaining)
            state.last_score_change = earned
            state.last_time_bonus = TIME_BONUS_SEC
        else:
            # Wrong answers cost points and streak but never demote difficulty
            state.score = apply_penalty(state.score)
            state.consecutive_correct = 0
            state.last_score_change = -WRONG_ANSWER_PENALTY
            state.last_time_bonus = None
            state.leveled_up = False

        state.current_problem = self.problem_factory(state.operation, state.difficulty_level)
        self._schedule_feedback_clear()
        return is_correct

    def tick(self) -> SessionState:
        state = self.state
        if not state.is_playing:
            return state
        if state.time_remaining > 0:
            state.time_remaining -= 1
        if state.time_remaining == 0:
            self.end_game()
        return state

    def end_game(self) -> SessionState:
        state = self.state
        state.is_playing = False
        state.is_game_over = True
        if state.score > 0 and not state.score_reported:
            state.score_reported = True
            self._report(state.score, state.operation)
        return state

    def reset_game(self) -> SessionState:
        self.generation += 1
        self.state = SessionState(
            operation=self.state.operation,
            current_problem=self.problem_factory(self.state.operation, 0),
        )
        return self.state

    def clear_feedback(self, generation: int) -> bool:
        if generation != self.generation:
            return False
        self.state.last_score_change = None
        self.state.last_time_bonus = None
        self.state.leveled_up = False
        return True

    def _schedule_feedback_clear(self) -> None:
        if self.schedule is None:
            return
        generation = self.generation
        self.schedule(self.feedback_delay, lambda: self.clear_feedback(generation))

    def _load_level(self, operation: Operation) -> int:
        try:
            return clamp_level(self.progress_store.load_saved_level(operation))
        except Exception:
            logger.exception(f"[level-load-failed] operation={operation.value}")
            return 0

    def _save_level(self, operation: Operation, level: int) -> None:
        try:
            self.progress_store.save_level(operation, level)
        except Exception:
            logger.exception(f"[level-save-failed] operation={operation.value} level={level}")

    def _report(self, score: int, operation: Operation) -> None:
        try:
            self.score_reporter.report_final_score(score, operation)
        except Exception:
            logger.exception(f"[report-failed] operation={operation.value} score={score}")
