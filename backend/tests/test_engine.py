from mathdash.services.games.engine import SessionEngine
from mathdash.services.games.problems import Problem


def _answer_correctly(engine, times=1):
    for _ in range(times):
        assert engine.submit_answer(str(engine.state.current_problem.correct_answer)) is True


def _answer_wrong(engine):
    wrong = engine.state.current_problem.correct_answer + 1
    assert engine.submit_answer(str(wrong)) is False


def test_start_game_initial_state(engine):
    state = engine.start_game('addition')
    assert state.is_playing and not state.is_game_over
    assert state.score == 0
    assert state.time_remaining == 30
    assert state.difficulty_level == 0
    assert state.consecutive_correct == 0
    assert state.last_score_change is None
    assert state.status == 'playing'


def test_addition_scenario_levels_up_after_five(engine, progress_store):
    engine.start_game('addition')
    _answer_correctly(engine)
    s = engine.state
    assert (s.score, s.consecutive_correct, s.time_remaining, s.difficulty_level) == (10, 1, 35, 0)
    assert s.last_score_change == 10
    assert s.last_time_bonus == 5

    _answer_correctly(engine, 4)
    assert s.consecutive_correct == 5
    assert s.difficulty_level == 1
    assert s.leveled_up is True
    assert progress_store.saved == [('addition', 1)]
    assert s.score == 50

    _answer_correctly(engine)
    assert s.score == 65
    assert s.last_score_change == 15
    assert s.leveled_up is False


def test_wrong_answer_never_drops_below_zero(engine):
    engine.start_game('subtraction')
    engine.state.score = 3
    _answer_wrong(engine)
    assert engine.state.score == 0
    assert engine.state.last_score_change == -5
    assert engine.state.last_time_bonus is None
    _answer_wrong(engine)
    assert engine.state.score == 0


def test_wrong_answer_resets_streak_but_keeps_level(engine):
    engine.start_game('addition')
    _answer_correctly(engine, 7)
    assert engine.state.difficulty_level == 1
    time_before = engine.state.time_remaining
    _answer_wrong(engine)
    assert engine.state.consecutive_correct == 0
    assert engine.state.difficulty_level == 1
    assert engine.state.time_remaining == time_before


def test_streak_after_wrong_answer_climbs_back_only_to_same_level(engine, progress_store):
    engine.start_game('addition')
    _answer_correctly(engine, 5)
    _answer_wrong(engine)
    _answer_correctly(engine, 5)
    assert engine.state.consecutive_correct == 5
    assert engine.state.difficulty_level == 1
    assert progress_store.saved == [('addition', 1)]


def test_level_caps_at_nine(engine):
    engine.start_game('multiplication')
    _answer_correctly(engine, 45)
    assert engine.state.difficulty_level == 9
    _answer_correctly(engine, 15)
    assert engine.state.consecutive_correct == 60
    assert engine.state.difficulty_level == 9
    assert engine.state.time_remaining == 99


def test_each_five_correct_adds_a_level(engine):
    engine.start_game('division')
    for expected in range(1, 10):
        _answer_correctly(engine, 5)
        assert engine.state.difficulty_level == expected


def test_non_numeric_answer_is_incorrect(engine):
    engine.start_game('addition')
    engine.state.score = 20
    assert engine.submit_answer('abc') is False
    assert engine.submit_answer(None) is False
    assert engine.state.score == 10


def test_integer_parsing_is_strict(progress_store, reporter):
    engine = SessionEngine(
        progress_store,
        reporter,
        problem_factory=lambda operation, level: Problem(4, 6, 10, operation),
    )
    engine.start_game('addition')
    assert engine.submit_answer('1_0') is False
    assert engine.submit_answer('10.0') is False
    assert engine.submit_answer('١٠') is False
    assert engine.state.score == 0
    assert engine.submit_answer(' +10 ') is True
    assert engine.submit_answer(10) is True
    assert engine.state.score == 20


def test_new_problem_after_every_answer(engine):
    engine.start_game('addition')
    first = engine.state.current_problem
    _answer_wrong(engine)
    assert engine.state.current_problem is not first


def test_tick_counts_down_and_ends_game(engine):
    engine.start_game('addition')
    engine.tick()
    assert engine.state.time_remaining == 29
    engine.state.time_remaining = 1
    engine.tick()
    assert engine.state.time_remaining == 0
    assert engine.state.is_game_over
    assert not engine.state.is_playing


def test_tick_when_not_playing_is_noop(engine):
    state = engine.tick()
    assert state.time_remaining == 30
    assert not state.is_game_over
    engine.start_game('addition')
    engine.end_game()
    engine.state.time_remaining = 12
    engine.tick()
    assert engine.state.time_remaining == 12


def test_start_resumes_saved_level(engine, progress_store):
    progress_store.levels['multiplication'] = 3
    engine.start_game('multiplication')
    assert engine.state.difficulty_level == 3
    _answer_correctly(engine)
    assert engine.state.score == 25
    engine.start_game('addition')
    assert engine.state.difficulty_level == 0


def test_out_of_range_saved_level_is_clamped(engine, progress_store):
    progress_store.levels['addition'] = 15
    assert engine.start_game('addition').difficulty_level == 9


def test_end_game_reports_once(engine, reporter):
    engine.start_game('subtraction')
    _answer_correctly(engine, 2)
    engine.end_game()
    engine.end_game()
    engine.tick()
    assert reporter.reports == [(20, 'subtraction')]


def test_zero_score_is_not_reported(engine, reporter):
    engine.start_game('addition')
    engine.state.time_remaining = 1
    engine.tick()
    assert engine.state.is_game_over
    assert reporter.reports == []


def test_restart_allows_a_new_report(engine, reporter):
    engine.start_game('addition')
    _answer_correctly(engine)
    engine.end_game()
    engine.start_game('addition')
    _answer_correctly(engine)
    engine.end_game()
    assert reporter.reports == [(10, 'addition'), (10, 'addition')]


def test_answer_after_game_over_is_ignored(engine, reporter, scheduler):
    engine.start_game('addition')
    _answer_correctly(engine)
    engine.end_game()
    generation = engine.generation
    problem = engine.state.current_problem

    assert engine.submit_answer(str(problem.correct_answer)) is False
    assert engine.submit_answer('nope') is False
    assert engine.state.score == 10
    assert engine.state.current_problem is problem
    assert engine.generation == generation
    assert len(scheduler.pending) == 1
    assert reporter.reports == [(10, 'addition')]


def test_answer_before_start_is_ignored(engine):
    problem = engine.state.current_problem
    assert engine.submit_answer(str(problem.correct_answer)) is False
    assert engine.state.score == 0
    assert engine.state.status == 'idle'


def test_reset_returns_to_idle_and_keeps_saved_progress(engine, progress_store):
    engine.start_game('addition')
    _answer_correctly(engine, 6)
    engine.reset_game()
    s = engine.state
    assert s.status == 'idle'
    assert (s.score, s.time_remaining, s.consecutive_correct, s.difficulty_level) == (0, 30, 0, 0)
    assert s.last_score_change is None and s.last_time_bonus is None and s.leveled_up is False
    assert progress_store.levels == {'addition': 1}
    assert engine.start_game('addition').difficulty_level == 1


def test_stale_feedback_clear_is_ignored(engine, scheduler):
    engine.start_game('addition')
    _answer_correctly(engine)
    _answer_wrong(engine)
    assert len(scheduler.pending) == 2
    delay, first_clear = scheduler.pending[0]
    assert delay == 1.5
    assert first_clear() is False
    assert engine.state.last_score_change == -5
    _, second_clear = scheduler.pending[1]
    assert second_clear() is True
    assert engine.state.last_score_change is None
    assert engine.state.last_time_bonus is None


def test_reset_invalidates_pending_clear(engine, scheduler):
    engine.start_game('addition')
    _answer_correctly(engine)
    engine.reset_game()
    _, clear = scheduler.pending[0]
    assert clear() is False


class _BrokenStore:
    def load_saved_level(self, operation):
        raise RuntimeError('storage offline')

    def save_level(self, operation, level):
        raise RuntimeError('storage offline')


class _BrokenReporter:
    def report_final_score(self, score, operation):
        raise RuntimeError('network down')


def test_collaborator_failures_do_not_touch_state():
    engine = SessionEngine(_BrokenStore(), _BrokenReporter())
    engine.start_game('addition')
    assert engine.state.difficulty_level == 0
    _answer_correctly(engine, 5)
    assert engine.state.difficulty_level == 1
    assert engine.state.leveled_up is True
    engine.end_game()
    assert engine.state.is_game_over
    assert engine.state.score == 50
