"""Quick-time event: an oscillating cursor and a target zone."""

from __future__ import annotations

from dataclasses import dataclass

from .rng import RNG
from .rules import (
    QTE_CURSOR_MAX,
    QTE_CURSOR_MIN,
    QTE_SPEED,
    QTE_ZONE_OFFSET_MAX,
    QTE_ZONE_OFFSET_MIN,
    QTE_ZONE_WIDTH,
    in_target_zone,
)


@dataclass
class QTEOutcome:
    blocked: bool
    cursor: float
    target_start: int
    damage: int
    timed_out: bool = False


class QuickTimeEvent:
    """Cursor bouncing between 0 and 98, advanced once per frame."""

    def __init__(self, rng: RNG) -> None:
        self.rng = rng
        self.position = QTE_CURSOR_MIN
        self.direction = 1
        self.speed = QTE_SPEED
        self.damage = 1
        self.target_start = QTE_ZONE_OFFSET_MIN
        self.active = False

    @property
    def target_end(self) -> int:
        return self.target_start + QTE_ZONE_WIDTH

    def start(self, *, speed: float, damage: int) -> int:
        """Place the target zone and reset the cursor; returns the zone start."""
        self.target_start = self.rng.randint(QTE_ZONE_OFFSET_MIN, QTE_ZONE_OFFSET_MAX)
        self.position = QTE_CURSOR_MIN
        self.direction = 1
        self.speed = speed
        self.damage = damage
        self.active = True
        return self.target_start

    def step(self) -> float:
        if not self.active:
            return self.position
        self.position += self.speed * self.direction
        if self.position >= QTE_CURSOR_MAX or self.position <= QTE_CURSOR_MIN:
            self.position = min(QTE_CURSOR_MAX, max(QTE_CURSOR_MIN, self.position))
            self.direction *= -1
        return self.position

    def resolve(self, *, timed_out: bool = False) -> QTEOutcome:
        """Compare the cursor with the zone; a timeout always fails."""
        self.active = False
        blocked = not timed_out and in_target_zone(self.position, self.target_start)
        return QTEOutcome(
            blocked=blocked,
            cursor=self.position,
            target_start=self.target_start,
            damage=0 if blocked else self.damage,
            timed_out=timed_out,
        )
