# Shared helpers: config loading, logging setup, time formatting and board encoding.
from __future__ import annotations

from dataclasses import replace
import logging
import os
from typing import Iterable, Mapping

from dotenv import load_dotenv
import numpy as np

try:
    from .game_logic import (
        MAX_BOARD_PIXELS,
        MAX_TILE_SIZE,
        MIN_BOARD_PIXELS,
        MIN_TILE_SIZE,
        Coord,
        SnakeConfig,
    )
except ImportError:
    from game_logic import (
        MAX_BOARD_PIXELS,
        MAX_TILE_SIZE,
        MIN_BOARD_PIXELS,
        MIN_TILE_SIZE,
        Coord,
        SnakeConfig,
    )


BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Board encoding values.
EMPTY = 0.0
FOOD = 0.5
BODY = -0.5
HEAD = 1.0
BOARD_GLYPHS = {EMPTY: ".", FOOD: "F", BODY: "o", HEAD: "H"}


def default_high_score_path() -> str:
    return os.path.join(DATA_DIR, "highscore.json")


def _parse_int(raw: str, low: int, high: int, label: str) -> int:
    """Parse and range-check an integer setting with a clear error message."""
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{label} must be an integer.")
    if not (low <= value <= high):
        raise ValueError(f"{label} must be between {low} and {high}.")
    return value


def load_config(env: Mapping[str, str] | None = None) -> SnakeConfig:
    """Defaults overridden by SNAKE_* environment variables (a .env file is honoured)."""
    if env is None:
        load_dotenv()
        env = os.environ

    cfg = SnakeConfig(high_score_path=default_high_score_path())

    if env.get("SNAKE_BOARD_PIXELS"):
        cfg = replace(
            cfg,
            board_pixels=_parse_int(env["SNAKE_BOARD_PIXELS"], MIN_BOARD_PIXELS, MAX_BOARD_PIXELS, "Board size"),
        )
    if env.get("SNAKE_TILE_SIZE"):
        cfg = replace(
            cfg,
            tile_size=_parse_int(env["SNAKE_TILE_SIZE"], MIN_TILE_SIZE, MAX_TILE_SIZE, "Tile size"),
        )
    if env.get("SNAKE_HIGH_SCORE_FILE"):
        cfg = replace(cfg, high_score_path=env["SNAKE_HIGH_SCORE_FILE"])
    if env.get("SNAKE_LOG_LEVEL"):
        level = env["SNAKE_LOG_LEVEL"].upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(LOG_LEVELS)}.")
        cfg = replace(cfg, log_level=level)
    return cfg


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def format_elapsed(seconds: int) -> str:
    """MM:SS, minutes keep counting past 59."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


def encode_board_state(snake: Iterable[Coord], food: Coord | None, tile_count: int) -> np.ndarray:
    """
    Board as a (tile_count, tile_count) array indexed [y, x]:
    - 0.0: empty
    - 0.5: food
    - -0.5: snake body
    - 1.0: snake head
    """
    board = np.full((tile_count, tile_count), EMPTY, dtype=np.float32)

    if food is not None:
        fx, fy = food
        board[fy, fx] = FOOD

    for idx, (x, y) in enumerate(snake):
        board[y, x] = HEAD if idx == 0 else BODY

    return board


def board_to_text(board: np.ndarray) -> str:
    """One text row per board row, top row first."""
    return "\n".join("".join(BOARD_GLYPHS[float(v)] for v in row) for row in board)
