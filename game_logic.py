# Core Snake rules: grid sizing, food placement, direction buffering and the per-tick step.
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
import random
from typing import Collection


logger = logging.getLogger(__name__)

Coord = tuple[int, int]
Direction = tuple[int, int]

STILL: Direction = (0, 0)
UP: Direction = (0, -1)
DOWN: Direction = (0, 1)
LEFT: Direction = (-1, 0)
RIGHT: Direction = (1, 0)
DIRECTIONS = {"up": UP, "down": DOWN, "left": LEFT, "right": RIGHT}

# Defaults mirrored by SnakeConfig; bounds used when validating overrides.
DEFAULT_TILE_SIZE = 20
DEFAULT_BOARD_PIXELS = 600
BASE_SPEED_MS = 100
MIN_SPEED_MS = 50
SPEED_STEP_MS = 10
FOOD_REWARD = 10
POINTS_PER_LEVEL = 50
MIN_TILE_SIZE = 8
MAX_TILE_SIZE = 64
MIN_BOARD_PIXELS = 40
MAX_BOARD_PIXELS = 800
VIEWPORT_MARGIN = 40
MAX_VIEWPORT_WIDTH = 800
MAX_VIEWPORT_HEIGHT = 600

# Above this occupied share, food is drawn from an explicit free-tile list.
DENSE_BOARD_RATIO = 0.5


@dataclass
class SnakeConfig:
    """Runtime settings shared between the logic layer, the session and the GUI."""
    board_pixels: int = DEFAULT_BOARD_PIXELS
    tile_size: int = DEFAULT_TILE_SIZE
    base_speed_ms: int = BASE_SPEED_MS
    min_speed_ms: int = MIN_SPEED_MS
    speed_step_ms: int = SPEED_STEP_MS
    food_reward: int = FOOD_REWARD
    points_per_level: int = POINTS_PER_LEVEL
    particle_count: int = 8
    particle_life: int = 20
    particle_speed: float = 2.0
    high_score_path: str | None = None
    log_level: str = "INFO"


class BoardTooSmallError(ValueError):
    """Raised when a grid cannot hold a one-tile snake and a food tile."""


@dataclass(frozen=True)
class Grid:
    """Square tile grid. Only tile_count matters to the rules; tile_size is for pixels."""
    tile_count: int
    tile_size: int

    @classmethod
    def from_pixels(cls, board_pixels: int, tile_size: int) -> Grid:
        """Fit as many whole tiles as possible into board_pixels."""
        if tile_size <= 0:
            raise ValueError("tile_size must be > 0")
        if board_pixels < 0:
            raise ValueError("board_pixels must be >= 0")
        return cls(tile_count=board_pixels // tile_size, tile_size=tile_size)

    @classmethod
    def from_viewport(cls, width: int, height: int, tile_size: int, max_pixels: int | None = None) -> Grid:
        """Largest square board that fits the available area, capped at 800x600 and max_pixels."""
        usable_w = min(width - VIEWPORT_MARGIN, MAX_VIEWPORT_WIDTH)
        usable_h = min(height - VIEWPORT_MARGIN, MAX_VIEWPORT_HEIGHT)
        usable = min(usable_w, usable_h)
        if max_pixels is not None:
            usable = min(usable, max_pixels)
        return cls.from_pixels(max(0, usable), tile_size)

    @property
    def side_pixels(self) -> int:
        return self.tile_count * self.tile_size

    @property
    def area(self) -> int:
        return self.tile_count * self.tile_count

    def contains(self, coord: Coord) -> bool:
        x, y = coord
        return 0 <= x < self.tile_count and 0 <= y < self.tile_count

    def center(self) -> Coord:
        return self.tile_count // 2, self.tile_count // 2

    def tile_center(self, coord: Coord) -> tuple[float, float]:
        """Pixel centre of a tile."""
        x, y = coord
        half = self.tile_size / 2
        return x * self.tile_size + half, y * self.tile_size + half


def place_food(occupied: Collection[Coord], tile_count: int, rng: random.Random | None = None) -> Coord:
    """Pick a uniformly random tile not in occupied.

    Rejection sampling while the board is mostly free; once half of it is taken,
    choose directly among the free tiles so the draw stays bounded.
    """
    rng = rng or random
    area = tile_count * tile_count
    if len(occupied) >= area:
        raise ValueError("no free tile left for food")

    if len(occupied) < area * DENSE_BOARD_RATIO:
        while True:
            candidate = (rng.randrange(tile_count), rng.randrange(tile_count))
            if candidate not in occupied:
                return candidate

    taken = occupied if isinstance(occupied, (set, frozenset)) else set(occupied)
    free = [(x, y) for x in range(tile_count) for y in range(tile_count) if (x, y) not in taken]
    return rng.choice(free)


def speed_for_level(
    level: int,
    base_ms: int = BASE_SPEED_MS,
    step_ms: int = SPEED_STEP_MS,
    floor_ms: int = MIN_SPEED_MS,
) -> int:
    """Tick period for a level, never faster than floor_ms."""
    return max(floor_ms, base_ms - (level - 1) * step_ms)


def level_for_score(score: int, points_per_level: int = POINTS_PER_LEVEL) -> int:
    return score // points_per_level + 1


def opposite(direction: Direction) -> Direction:
    return -direction[0], -direction[1]


class DirectionController:
    """Double-buffered heading: input lands in pending, each tick commits it to active.

    Reversal checks compare against the last committed heading, so several key
    presses inside one tick cannot fold the snake back onto itself.
    """

    def __init__(self) -> None:
        self.active: Direction = STILL
        self.pending: Direction = STILL

    def reset(self) -> None:
        self.active = STILL
        self.pending = STILL

    def request(self, candidate: Direction) -> bool:
        """Buffer a new heading. Returns False when the request is ignored."""
        if candidate not in DIRECTIONS.values():
            return False

        reference = self.active if self.active != STILL else self.pending
        if reference != STILL and candidate == opposite(reference):
            return False
        if candidate == reference:
            return False

        self.pending = candidate
        # First input of a run takes effect without waiting for a tick.
        if self.active == STILL:
            self.active = candidate
        return True

    def commit(self) -> Direction:
        """Apply the buffered heading; called once per tick before moving."""
        if self.pending != STILL:
            self.active = self.pending
            self.pending = STILL
        return self.active


@dataclass(frozen=True)
class StepResult:
    """What happened during one tick."""
    moved: bool = False
    ate: bool = False
    eaten_at: Coord | None = None
    level_up: bool = False
    collision: str | None = None  # "wall" | "self"

    @property
    def alive(self) -> bool:
        return self.collision is None


class SnakeGame:
    """Pure game state + rules (no Tkinter/UI code, no timers)."""

    def __init__(self, config: SnakeConfig, grid: Grid, rng: random.Random | None = None) -> None:
        self.config = config
        self.grid = grid
        self.rng = rng or random.Random()
        self.controller = DirectionController()
        self.reset()

    def reset(self) -> None:
        """Single-segment snake in the centre, fresh food, score and speed."""
        if self.grid.area < 2:
            raise BoardTooSmallError(
                f"a {self.grid.tile_count}x{self.grid.tile_count} board cannot hold a snake and food"
            )
        head = self.grid.center()
        self.snake: deque[Coord] = deque([head])    # ordered body, head at index 0
        self.snake_set: set[Coord] = {head}          # O(1) body collision lookup
        self.controller.reset()
        self.score = 0
        self.level = 1
        self.step_ms = self.config.base_speed_ms
        self.alive = True
        self.death_reason: str | None = None
        self.food: Coord | None = place_food(self.snake_set, self.grid.tile_count, self.rng)

    @property
    def head(self) -> Coord:
        return self.snake[0]

    @property
    def direction(self) -> Direction:
        return self.controller.active

    def queue_direction(self, candidate: Direction) -> bool:
        return self.controller.request(candidate)

    def _die(self, reason: str) -> StepResult:
        self.alive = False
        self.death_reason = reason
        logger.debug("Snake died (%s) at head %s, length %d", reason, self.head, len(self.snake))
        return StepResult(collision=reason)

    def step(self) -> StepResult:
        """Advance one tick."""
        if not self.alive:
            return StepResult(collision=self.death_reason)

        dx, dy = self.controller.commit()
        if (dx, dy) == STILL:
            return StepResult()

        head_x, head_y = self.snake[0]
        new_head = (head_x + dx, head_y + dy)

        if not self.grid.contains(new_head):
            return self._die("wall")
        # The current tail still counts as an obstacle even though it would vacate this tick.
        if new_head in self.snake_set:
            return self._die("self")

        self.snake.appendleft(new_head)
        self.snake_set.add(new_head)

        if new_head != self.food:
            old_tail = self.snake.pop()
            self.snake_set.discard(old_tail)
            return StepResult(moved=True)

        self.score += self.config.food_reward
        if len(self.snake_set) < self.grid.area:
            self.food = place_food(self.snake_set, self.grid.tile_count, self.rng)
        else:
            # Board is full; the next move must collide.
            self.food = None

        level_up = False
        new_level = level_for_score(self.score, self.config.points_per_level)
        if new_level > self.level:
            self.level = new_level
            self.step_ms = speed_for_level(
                new_level,
                self.config.base_speed_ms,
                self.config.speed_step_ms,
                self.config.min_speed_ms,
            )
            level_up = True

        return StepResult(moved=True, ate=True, eaten_at=new_head, level_up=level_up)
