from __future__ import annotations

from codeknight.core.models import NodeType
from codeknight.core.qte import QuickTimeEvent
from codeknight.core.rng import RNG
from codeknight.core.rules import (
    ENEMY_TYPES,
    QTE_SPEED,
    QTE_SPEED_STRONG,
    in_target_zone,
    pick_enemy_template,
    qte_speed_for,
)
from tests.helpers import node


def test_target_zone_stays_on_the_bar() -> None:
    for seed in range(50):
        qte = QuickTimeEvent(RNG(seed))
        start = qte.start(speed=QTE_SPEED, damage=1)
        assert 20 <= start <= 79
        assert qte.target_end == start + 20
        assert qte.position == 0


def test_cursor_bounces_between_bounds() -> None:
    qte = QuickTimeEvent(RNG(1))
    qte.start(speed=QTE_SPEED_STRONG, damage=1)

    positions = [qte.step() for _ in range(200)]

    assert all(0 <= p <= 98 for p in positions)
    assert 98 in positions
    assert positions.index(98) < len(positions) - 1
    after_peak = positions[positions.index(98) + 1]
    assert after_peak < 98


def test_zone_edges_are_inclusive() -> None:
    qte = QuickTimeEvent(RNG(2))
    qte.start(speed=QTE_SPEED, damage=2)
    qte.target_start = 30

    for cursor, blocked in ((30, True), (50, True), (29.9, False), (50.5, False)):
        qte.active = True
        qte.position = cursor
        outcome = qte.resolve()
        assert outcome.blocked is blocked
        assert outcome.damage == (0 if blocked else 2)


def test_timeout_fails_even_inside_zone() -> None:
    qte = QuickTimeEvent(RNG(3))
    qte.start(speed=QTE_SPEED, damage=1)
    qte.position = qte.target_start + 5

    outcome = qte.resolve(timed_out=True)

    assert outcome.blocked is False
    assert outcome.timed_out is True
    assert outcome.damage == 1
    assert qte.active is False


def test_in_target_zone() -> None:
    assert in_target_zone(20, 20)
    assert in_target_zone(40, 20)
    assert not in_target_zone(40.1, 20)


def test_enemy_template_by_node_type() -> None:
    def pick(node_type: NodeType, node_id: int = 4, **kwargs) -> str:
        kwargs.setdefault("is_wildcard", False)
        return pick_enemy_template(node(node_id, node_type, []), ENEMY_TYPES, **kwargs).name

    assert pick(NodeType.BOSS) == "Syntax Guardian"
    assert pick(NodeType.MINIBOSS) == "Tough Undead"
    assert pick(NodeType.ENEMY) == "Zombie"
    assert pick(NodeType.ENEMY, node_id=6) == "Frail Zombie"
    assert pick(NodeType.WILDCARD, is_wildcard=True, roll=2) == "Skeleton"


def test_strongest_enemy_swings_faster() -> None:
    assert qte_speed_for(ENEMY_TYPES[-1], ENEMY_TYPES) == QTE_SPEED_STRONG
    assert qte_speed_for(ENEMY_TYPES[0], ENEMY_TYPES) == QTE_SPEED
    assert qte_speed_for(ENEMY_TYPES[0], ENEMY_TYPES[:1]) == QTE_SPEED
