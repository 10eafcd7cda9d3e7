# Cosmetic particle bursts shown when food is eaten; never touches game state.
from __future__ import annotations

import colorsys
from dataclasses import dataclass

import numpy as np


BURST_SIZE = 8
PARTICLE_LIFE = 20
PARTICLE_SPEED = 2.0
HUE_START = 340.0
HUE_SPAN = 60.0


@dataclass(frozen=True)
class ParticleView:
    """Read-only particle for renderers."""
    x: float
    y: float
    life: int
    alpha: float
    color: str


def hsl_to_hex(hue_deg: float, saturation: float = 1.0, lightness: float = 0.6) -> str:
    r, g, b = colorsys.hls_to_rgb((hue_deg % 360.0) / 360.0, lightness, saturation)
    return f"#{round(r * 255):02x}{round(g * 255):02x}{round(b * 255):02x}"


class ParticleSystem:
    """Struct-of-arrays particle store: positions/velocities are (n, 2) float arrays."""

    def __init__(
        self,
        tile_size: int,
        count: int = BURST_SIZE,
        life: int = PARTICLE_LIFE,
        max_speed: float = PARTICLE_SPEED,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.tile_size = tile_size
        self.count = count
        self.life = life
        self.max_speed = max_speed
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clear()

    def clear(self) -> None:
        self.positions = np.zeros((0, 2), dtype=np.float64)
        self.velocities = np.zeros((0, 2), dtype=np.float64)
        self.lives = np.zeros(0, dtype=np.int32)
        self.colors: list[str] = []

    def __len__(self) -> int:
        return int(self.lives.size)

    def spawn_burst(self, tile: tuple[int, int]) -> None:
        """Add `count` particles at the pixel centre of a tile."""
        half = self.tile_size / 2
        center = np.array([tile[0] * self.tile_size + half, tile[1] * self.tile_size + half])
        velocities = self.rng.uniform(-self.max_speed, self.max_speed, size=(self.count, 2))
        hues = self.rng.uniform(HUE_START, HUE_START + HUE_SPAN, size=self.count)

        self.positions = np.vstack([self.positions, np.tile(center, (self.count, 1))])
        self.velocities = np.vstack([self.velocities, velocities])
        self.lives = np.concatenate([self.lives, np.full(self.count, self.life, dtype=np.int32)])
        self.colors.extend(hsl_to_hex(h) for h in hues)

    def advance(self) -> None:
        """Move every particle one tick and drop the expired ones."""
        if not len(self):
            return
        self.positions += self.velocities
        self.lives -= 1
        alive = self.lives > 0
        self.positions = self.positions[alive]
        self.velocities = self.velocities[alive]
        self.lives = self.lives[alive]
        self.colors = [c for c, keep in zip(self.colors, alive) if keep]

    def snapshot(self) -> tuple[ParticleView, ...]:
        return tuple(
            ParticleView(
                x=float(x),
                y=float(y),
                life=int(life),
                alpha=float(life) / self.life,
                color=color,
            )
            for (x, y), life, color in zip(self.positions, self.lives, self.colors)
        )
