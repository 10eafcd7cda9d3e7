# High-score persistence: a single integer behind get/set.
from __future__ import annotations

import json
import logging
import os
from typing import Protocol


logger = logging.getLogger(__name__)

HIGH_SCORE_KEY = "high_score"


class HighScoreStore(Protocol):
    def get_high_score(self) -> int: ...

    def set_high_score(self, score: int) -> None: ...


class MemoryHighScoreStore:
    """Keeps the high score for the lifetime of the process only."""

    def __init__(self, score: int = 0) -> None:
        self.score = score

    def get_high_score(self) -> int:
        return self.score

    def set_high_score(self, score: int) -> None:
        self.score = int(score)


class JsonHighScoreStore:
    """Stores {"high_score": n} in a JSON file; missing or broken files read as 0."""

    def __init__(self, path: str) -> None:
        self.path = path

    def get_high_score(self) -> int:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return 0
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read high score from %s: %s", self.path, exc)
            return 0

        try:
            return max(0, int(data.get(HIGH_SCORE_KEY, 0)))
        except (AttributeError, TypeError, ValueError):
            logger.warning("Ignoring malformed high score file %s", self.path)
            return 0

    def set_high_score(self, score: int) -> None:
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({HIGH_SCORE_KEY: int(score)}, f)
        except OSError as exc:
            logger.warning("Could not save high score to %s: %s", self.path, exc)
