"""
Tests for session.py - lifecycle, scheduling, clock, high score and frame publishing.

All timing runs on ManualScheduler, so "advance(100)" is exactly one simulation
tick at the starting speed.
"""

from collections import deque
import logging

import pytest

from game_logic import DOWN, LEFT, RIGHT, STILL, UP, BoardTooSmallError, Grid
from highscores import MemoryHighScoreStore
from session import CLOCK_PERIOD_MS, SessionState, SessionStateError


def place(session, segments, food):
    game = session.game
    game.snake = deque(segments)
    game.snake_set = set(segments)
    game.food = food


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def running(session):
    session.start()
    return session


class TestLifecycle:
    def test_new_session_is_idle(self, session, scheduler):
        assert session.state is SessionState.IDLE
        assert session.score == 0
        assert session.level == 1
        assert scheduler.pending == []
        frame = session.frame()
        assert frame.snake == ()
        assert frame.food is None
        assert frame.direction == STILL

    def test_start_schedules_tick_and_clock(self, running, scheduler):
        assert running.state is SessionState.RUNNING
        periods = sorted(task.period_ms for task in scheduler.pending)
        assert periods == [100, CLOCK_PERIOD_MS]
        assert list(running.game.snake) == [(5, 5)]
        assert running.game.food not in running.game.snake_set

    def test_start_while_running_rejected(self, running):
        with pytest.raises(SessionStateError):
            running.start()

    def test_start_while_paused_rejected(self, running):
        running.pause()
        with pytest.raises(SessionStateError):
            running.start()

    def test_board_too_small_rejects_start(self, make_session, scheduler):
        session = make_session(grid=Grid(tile_count=1, tile_size=20))
        with pytest.raises(BoardTooSmallError):
            session.start()
        assert session.state is SessionState.IDLE
        assert scheduler.pending == []

    def test_wall_collision_ends_session(self, running, scheduler):
        scheduler.advance(2500)
        place(running, [(0, 5)], food=(5, 5))
        running.request_direction(LEFT)
        scheduler.advance(100)

        assert running.state is SessionState.ENDED
        assert running.summary.reason == "wall"
        assert running.summary.score == 0
        assert running.summary.level == 1
        assert running.summary.elapsed_seconds == 2
        assert running.summary.elapsed_text == "00:02"
        assert scheduler.pending == []

        scheduler.advance(5000)
        assert running.elapsed_seconds == 2

    def test_self_collision_ends_session(self, running, scheduler):
        place(running, [(5, 5), (6, 5), (6, 6), (5, 6), (4, 6)], food=(0, 0))
        running.game.controller.active = LEFT
        running.request_direction(DOWN)
        scheduler.advance(100)
        assert running.state is SessionState.ENDED
        assert running.summary.reason == "self"

    def test_restart_after_end(self, running, scheduler):
        place(running, [(0, 0)], food=(5, 5))
        running.request_direction(UP)
        scheduler.advance(100)
        assert running.state is SessionState.ENDED

        running.restart()
        assert running.state is SessionState.RUNNING
        assert running.summary is None
        assert running.elapsed_seconds == 0
        assert list(running.game.snake) == [(5, 5)]
        assert len(scheduler.pending) == 2

    def test_start_from_ended(self, running, scheduler):
        place(running, [(0, 0)], food=(5, 5))
        running.request_direction(UP)
        scheduler.advance(100)
        running.start()
        assert running.state is SessionState.RUNNING

    def test_set_grid_only_between_runs(self, session):
        session.set_grid(Grid(tile_count=12, tile_size=20))
        session.start()
        assert list(session.game.snake) == [(6, 6)]
        with pytest.raises(SessionStateError):
            session.set_grid(Grid(tile_count=8, tile_size=20))


class TestMovementAndScoring:
    def test_no_movement_before_first_direction(self, running, scheduler):
        scheduler.advance(500)
        assert list(running.game.snake) == [(5, 5)]

    def test_move_one_tile_per_tick(self, running, scheduler):
        place(running, [(5, 5)], food=(0, 0))
        running.request_direction(RIGHT)
        scheduler.advance(100)
        assert list(running.game.snake) == [(6, 5)]
        scheduler.advance(200)
        assert list(running.game.snake) == [(8, 5)]

    def test_eating_scores_and_bursts(self, running, scheduler):
        place(running, [(5, 5)], food=(6, 5))
        running.request_direction(RIGHT)
        scheduler.advance(100)
        assert running.score == 10
        assert len(running.game.snake) == 2
        frame = running.frame()
        assert len(frame.particles) == 8
        assert all(p.life == 19 for p in frame.particles)

    def test_level_up_reschedules_tick(self, running, scheduler):
        place(running, [(5, 5)], food=(6, 5))
        running.game.score = 40
        running.request_direction(RIGHT)
        scheduler.advance(100)

        assert running.score == 50
        assert running.level == 2
        assert running.step_ms == 90
        periods = sorted(task.period_ms for task in scheduler.pending)
        assert periods == [90, CLOCK_PERIOD_MS]

        running.game.food = (0, 0)
        scheduler.advance(89)
        assert running.game.head == (6, 5)
        scheduler.advance(1)
        assert running.game.head == (7, 5)

    def test_level_never_drops(self, running, scheduler):
        place(running, [(2, 2)], food=(3, 2))
        running.game.score = 40
        running.request_direction(RIGHT)
        scheduler.advance(100)
        assert running.level == 2
        running.game.food = (0, 9)
        scheduler.advance(300)
        assert running.level == 2

    def test_directions_ignored_unless_running(self, session, running):
        running.pause()
        assert not running.request_direction(RIGHT)
        assert running.game.direction == STILL
        running.resume()
        assert running.request_direction(RIGHT)

    def test_directions_ignored_while_idle(self, session):
        assert not session.request_direction(UP)


class TestPauseAndClock:
    def test_clock_counts_seconds(self, running, scheduler):
        scheduler.advance(3000)
        assert running.elapsed_seconds == 3
        assert running.frame().elapsed_text == "00:03"

    def test_pause_freezes_everything(self, running, scheduler):
        scheduler.advance(1000)
        place(running, [(0, 5)], food=(0, 0))
        running.request_direction(RIGHT)
        scheduler.advance(900)
        head = running.game.head
        assert head == (9, 5)
        assert running.pause()
        assert running.state is SessionState.PAUSED
        assert scheduler.pending == []

        scheduler.advance(5000)
        assert running.game.head == head
        assert running.elapsed_seconds == 1

    def test_second_pause_is_noop(self, running, scheduler):
        assert running.pause()
        assert not running.pause()
        assert running.state is SessionState.PAUSED
        assert running.resume()
        assert len(scheduler.pending) == 2

    def test_resume_restarts_both_timers(self, make_session, scheduler):
        session = make_session(grid=Grid(tile_count=30, tile_size=20))
        session.start()
        scheduler.advance(1500)
        session.pause()
        scheduler.advance(10_000)
        assert session.resume()
        assert not session.resume()

        place(session, [(5, 5)], food=(0, 0))
        session.request_direction(RIGHT)
        scheduler.advance(1000)
        assert session.elapsed_seconds == 2
        assert session.game.head == (15, 5)

    def test_toggle_pause(self, running):
        assert running.toggle_pause()
        assert running.state is SessionState.PAUSED
        assert running.toggle_pause()
        assert running.state is SessionState.RUNNING

    def test_toggle_pause_ignored_when_idle(self, session):
        assert not session.toggle_pause()
        assert session.state is SessionState.IDLE


class TestStaleTicks:
    def test_restart_cancels_previous_run(self, running, scheduler):
        old_tasks = scheduler.pending
        running.restart()
        assert all(not task.active for task in old_tasks)
        assert len(scheduler.pending) == 2

    def test_old_handler_cannot_touch_new_run(self, running, scheduler, caplog):
        old_step = next(t for t in scheduler.pending if t.period_ms == 100).callback
        old_clock = next(t for t in scheduler.pending if t.period_ms == CLOCK_PERIOD_MS).callback
        running.restart()
        place(running, [(5, 5)], food=(0, 0))
        running.request_direction(RIGHT)

        with caplog.at_level(logging.DEBUG, logger="session"):
            old_step()
            old_clock()
        assert list(running.game.snake) == [(5, 5)]
        assert running.elapsed_seconds == 0
        assert "stale tick" in caplog.text

        scheduler.advance(100)
        assert list(running.game.snake) == [(6, 5)]

    def test_handler_after_end_is_dropped(self, running, scheduler):
        step = next(t for t in scheduler.pending if t.period_ms == 100).callback
        place(running, [(0, 0)], food=(5, 5))
        running.request_direction(UP)
        scheduler.advance(100)
        assert running.state is SessionState.ENDED
        step()
        assert running.state is SessionState.ENDED


class TestHighScore:
    def test_loaded_from_store(self, make_session):
        session = make_session(high_scores=MemoryHighScoreStore(30))
        assert session.high_score == 30
        assert session.frame().high_score == 30

    def test_updated_only_when_beaten(self, make_session, scheduler):
        store = MemoryHighScoreStore(30)
        session = make_session(high_scores=store)
        session.start()
        place(session, [(5, 5)], food=(6, 5))
        session.request_direction(RIGHT)
        scheduler.advance(100)
        assert session.score == 10
        assert store.get_high_score() == 30

        session.game.score = 30
        session.game.food = (7, 5)
        scheduler.advance(100)
        assert session.score == 40
        assert session.high_score == 40
        assert store.get_high_score() == 40


class TestFrames:
    def test_listeners_receive_frames(self, session, scheduler):
        frames = []
        session.subscribe(frames.append)
        session.start()
        assert frames[-1].state is SessionState.RUNNING
        scheduler.advance(100)
        assert len(frames) == 2
        scheduler.advance(900)
        # Nine more ticks plus one clock tick.
        assert len(frames) == 12
        assert frames[-1].elapsed_seconds == 1

        session.unsubscribe(frames.append)
        scheduler.advance(100)
        assert len(frames) == 12

    def test_end_frame_carries_summary(self, session, scheduler):
        frames = []
        session.subscribe(frames.append)
        session.start()
        place(session, [(9, 9)], food=(0, 0))
        session.request_direction(DOWN)
        scheduler.advance(100)
        last = frames[-1]
        assert last.state is SessionState.ENDED
        assert last.summary is not None
        assert last.summary.reason == "wall"
        assert last.tile_count == 10
        assert last.tile_size == 20

    def test_frames_are_snapshots(self, running, scheduler):
        place(running, [(5, 5)], food=(0, 0))
        running.request_direction(RIGHT)
        before = running.frame()
        scheduler.advance(100)
        assert before.snake == ((5, 5),)
        assert running.frame().snake == ((6, 5),)

    def test_final_board_logged_at_debug(self, session, scheduler, caplog):
        session.start()
        place(session, [(9, 9), (8, 9)], food=(0, 0))
        session.request_direction(DOWN)
        with caplog.at_level(logging.DEBUG, logger="session"):
            scheduler.advance(100)
        assert session.state is SessionState.ENDED
        assert "Final board:" in caplog.text
        board_text = caplog.text.split("Final board:", 1)[1]
        assert "H" in board_text
        assert "o" in board_text
        assert "F" in board_text

    def test_final_board_not_built_above_debug(self, session, scheduler, caplog):
        session.start()
        place(session, [(9, 9)], food=(0, 0))
        session.request_direction(DOWN)
        with caplog.at_level(logging.INFO, logger="session"):
            scheduler.advance(100)
        assert "Game over (wall)" in caplog.text
        assert "Final board" not in caplog.text
