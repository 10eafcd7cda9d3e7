import os
import random
import sys

import numpy as np
import pytest

# Modules live at the repository root.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from game_logic import Grid, SnakeConfig
from highscores import MemoryHighScoreStore
from scheduler import ManualScheduler
from session import GameSession


@pytest.fixture
def config():
    return SnakeConfig()


@pytest.fixture
def grid():
    return Grid(tile_count=10, tile_size=20)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return MemoryHighScoreStore()


@pytest.fixture
def make_session(config, grid, scheduler, store):
    def _make(**overrides):
        kwargs = dict(
            config=config,
            grid=grid,
            scheduler=scheduler,
            high_scores=store,
            rng=random.Random(99),
            particle_rng=np.random.default_rng(7),
        )
        kwargs.update(overrides)
        return GameSession(**kwargs)

    return _make
