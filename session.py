# Session lifecycle (idle/running/paused/ended), tick + clock scheduling and frame publishing.
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import partial
import logging
import random
from typing import Callable

import numpy as np

try:
    from .game_logic import STILL, Coord, Direction, Grid, SnakeConfig, SnakeGame
    from .highscores import HighScoreStore, MemoryHighScoreStore
    from .particles import ParticleSystem, ParticleView
    from .scheduler import ScheduledTask, Scheduler
    from .utils import board_to_text, encode_board_state, format_elapsed
except ImportError:
    from game_logic import STILL, Coord, Direction, Grid, SnakeConfig, SnakeGame
    from highscores import HighScoreStore, MemoryHighScoreStore
    from particles import ParticleSystem, ParticleView
    from scheduler import ScheduledTask, Scheduler
    from utils import board_to_text, encode_board_state, format_elapsed


logger = logging.getLogger(__name__)

CLOCK_PERIOD_MS = 1000


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


class SessionStateError(RuntimeError):
    """Lifecycle call that is not valid in the current session state."""


@dataclass(frozen=True)
class SessionSummary:
    """Final numbers of a finished run."""
    score: int
    level: int
    elapsed_seconds: int
    reason: str | None = None

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed_seconds)


@dataclass(frozen=True)
class Frame:
    """Immutable view of everything a renderer or display needs for one paint."""
    state: SessionState
    snake: tuple[Coord, ...]
    food: Coord | None
    direction: Direction
    particles: tuple[ParticleView, ...]
    score: int
    high_score: int
    level: int
    step_ms: int
    elapsed_seconds: int
    tile_count: int
    tile_size: int
    summary: SessionSummary | None = None

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed_seconds)


FrameListener = Callable[[Frame], None]


class GameSession:
    """Owns one playthrough at a time: the rules, the particles, both timers and the high score.

    Two periodic actions run while the session is RUNNING: the simulation tick
    (period = current step period) and the one-second clock. Every handler is
    tagged with the run it was scheduled for, so a tick left over from an
    earlier run is dropped instead of touching the new one.
    """

    def __init__(
        self,
        config: SnakeConfig,
        grid: Grid,
        scheduler: Scheduler,
        high_scores: HighScoreStore | None = None,
        rng: random.Random | None = None,
        particle_rng: np.random.Generator | None = None,
    ) -> None:
        self.config = config
        self.grid = grid
        self.scheduler = scheduler
        self.high_scores = high_scores if high_scores is not None else MemoryHighScoreStore()
        self.rng = rng or random.Random()
        self.particles = ParticleSystem(
            grid.tile_size,
            count=config.particle_count,
            life=config.particle_life,
            max_speed=config.particle_speed,
            rng=particle_rng,
        )

        self.state = SessionState.IDLE
        self.game: SnakeGame | None = None
        self.high_score = self.high_scores.get_high_score()
        self.elapsed_seconds = 0
        self.summary: SessionSummary | None = None

        self._run_id = 0
        self._step_task: ScheduledTask | None = None
        self._clock_task: ScheduledTask | None = None
        self._listeners: list[FrameListener] = []

    # --- observers -----------------------------------------------------

    def subscribe(self, listener: FrameListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: FrameListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def frame(self) -> Frame:
        game = self.game
        return Frame(
            state=self.state,
            snake=tuple(game.snake) if game else (),
            food=game.food if game else None,
            direction=game.direction if game else STILL,
            particles=self.particles.snapshot(),
            score=self.score,
            high_score=self.high_score,
            level=self.level,
            step_ms=self.step_ms,
            elapsed_seconds=self.elapsed_seconds,
            tile_count=self.grid.tile_count,
            tile_size=self.grid.tile_size,
            summary=self.summary,
        )

    def _publish(self) -> None:
        frame = self.frame()
        for listener in list(self._listeners):
            listener(frame)

    # --- read-only state -----------------------------------------------

    @property
    def score(self) -> int:
        return self.game.score if self.game else 0

    @property
    def level(self) -> int:
        return self.game.level if self.game else 1

    @property
    def step_ms(self) -> int:
        return self.game.step_ms if self.game else self.config.base_speed_ms

    # --- lifecycle -----------------------------------------------------

    def set_grid(self, grid: Grid) -> None:
        """Swap the board; only allowed between runs."""
        if self.state in (SessionState.RUNNING, SessionState.PAUSED):
            raise SessionStateError("cannot resize the board during a run")
        self.grid = grid
        self.particles.tile_size = grid.tile_size
        self._publish()

    def start(self) -> None:
        """Begin a fresh run from IDLE or ENDED."""
        if self.state in (SessionState.RUNNING, SessionState.PAUSED):
            raise SessionStateError("a run is already in progress; use restart()")

        self._cancel_timers()
        # Raises BoardTooSmallError before any state changes.
        game = SnakeGame(self.config, self.grid, self.rng)

        self._run_id += 1
        self.game = game
        self.particles.tile_size = self.grid.tile_size
        self.particles.clear()
        self.elapsed_seconds = 0
        self.summary = None
        self.state = SessionState.RUNNING
        self._schedule_timers()
        logger.info(
            "Run %d started on a %dx%d board at %d ms per tick",
            self._run_id,
            self.grid.tile_count,
            self.grid.tile_count,
            game.step_ms,
        )
        self._publish()

    def restart(self) -> None:
        """Drop whatever is in progress and start over."""
        self._cancel_timers()
        if self.state in (SessionState.RUNNING, SessionState.PAUSED):
            logger.info("Run %d abandoned at score %d", self._run_id, self.score)
            self.state = SessionState.ENDED
        self.start()

    def pause(self) -> bool:
        if self.state is not SessionState.RUNNING:
            logger.debug("pause() ignored in state %s", self.state.value)
            return False
        self._cancel_timers()
        self.state = SessionState.PAUSED
        logger.info("Run %d paused at %s", self._run_id, format_elapsed(self.elapsed_seconds))
        self._publish()
        return True

    def resume(self) -> bool:
        if self.state is not SessionState.PAUSED:
            logger.debug("resume() ignored in state %s", self.state.value)
            return False
        self.state = SessionState.RUNNING
        self._schedule_timers()
        logger.info("Run %d resumed", self._run_id)
        self._publish()
        return True

    def toggle_pause(self) -> bool:
        if self.state is SessionState.RUNNING:
            return self.pause()
        if self.state is SessionState.PAUSED:
            return self.resume()
        return False

    def request_direction(self, direction: Direction) -> bool:
        """Forward input to the direction buffer; ignored unless RUNNING."""
        if self.state is not SessionState.RUNNING or self.game is None:
            return False
        accepted = self.game.queue_direction(direction)
        if not accepted:
            logger.debug("Ignored direction %s (active %s)", direction, self.game.direction)
        return accepted

    # --- timers --------------------------------------------------------

    def _schedule_timers(self) -> None:
        self._step_task = self.scheduler.schedule(self.step_ms, partial(self._on_step, self._run_id))
        self._clock_task = self.scheduler.schedule(CLOCK_PERIOD_MS, partial(self._on_clock, self._run_id))

    def _cancel_timers(self) -> None:
        self.scheduler.cancel(self._step_task)
        self.scheduler.cancel(self._clock_task)
        self._step_task = None
        self._clock_task = None

    def _is_current(self, run_id: int) -> bool:
        if run_id != self._run_id or self.state is not SessionState.RUNNING:
            logger.debug("Dropping stale tick from run %d", run_id)
            return False
        return True

    def _on_clock(self, run_id: int) -> None:
        if not self._is_current(run_id):
            return
        self.elapsed_seconds += 1
        self._publish()

    def _on_step(self, run_id: int) -> None:
        if not self._is_current(run_id):
            return
        game = self.game
        result = game.step()

        if not result.alive:
            self._end(result.collision)
            return

        if result.ate:
            self.particles.spawn_burst(result.eaten_at)
            self._record_high_score()

        if result.level_up:
            logger.info("Level %d reached, tick period now %d ms", game.level, game.step_ms)
            self.scheduler.cancel(self._step_task)
            self._step_task = self.scheduler.schedule(game.step_ms, partial(self._on_step, self._run_id))

        self.particles.advance()
        self._publish()

    def _record_high_score(self) -> None:
        if self.score > self.high_score:
            self.high_score = self.score
            self.high_scores.set_high_score(self.high_score)

    def _end(self, reason: str | None) -> None:
        self._cancel_timers()
        self._run_id += 1
        self.state = SessionState.ENDED
        self.summary = SessionSummary(
            score=self.score,
            level=self.level,
            elapsed_seconds=self.elapsed_seconds,
            reason=reason,
        )
        logger.info(
            "Game over (%s): score=%d level=%d time=%s",
            reason,
            self.summary.score,
            self.summary.level,
            self.summary.elapsed_text,
        )
        if logger.isEnabledFor(logging.DEBUG):
            board = encode_board_state(self.game.snake, self.game.food, self.grid.tile_count)
            logger.debug("Final board:\n%s", board_to_text(board))
        self._publish()
