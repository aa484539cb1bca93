"""Combat timing, QTE geometry and encounter tables.

All durations are milliseconds on the scheduler clock.
"""

from .models import EnemyType, Item, MapNode, NodeType

# Turn flow
TURN_TIME_LIMIT_MS = 15000
DELAY_ATTACK_ANIM_MS = 800
DELAY_DAMAGE_MS = 1200
DELAY_TURN_SWITCH_MS = 1400
DELAY_TIMEOUT_SWITCH_MS = 1000
DELAY_VICTORY_EXIT_MS = 1500
DELAY_ENEMY_WINDUP_MS = 1500

# QTE
FRAME_MS = 16
QTE_CURSOR_MIN = 0.0
QTE_CURSOR_MAX = 98.0
QTE_ZONE_WIDTH = 20
QTE_ZONE_OFFSET_MIN = 20
QTE_ZONE_OFFSET_MAX = 79
QTE_SPEED = 1.5
QTE_SPEED_STRONG = 2.2
QTE_TIMEOUT_MS = 6000
QTE_SETTLE_MS = 1100

# Question selection
BOSS_HARD_BIAS = 0.7
HARD_DIFFICULTY = "hard"

# Map events
EVENT_INTRO_MS = 2000
EVENT_OUTRO_MS = 1500
AMBUSH_CHANCE = 0.5
LARGE_POTION_CHANCE = 0.3

# Ordered weakest to strongest
ENEMY_TYPES: list[EnemyType] = [
    EnemyType(name="Frail Zombie", hp=2, icon="fa-person-falling"),
    EnemyType(name="Zombie", hp=3, icon="fa-biohazard"),
    EnemyType(name="Skeleton", hp=3, icon="fa-skull"),
    EnemyType(name="Tough Undead", hp=4, icon="fa-dungeon"),
    EnemyType(name="Syntax Guardian", hp=5, icon="fa-dragon"),
]

ITEMS: dict[str, Item] = {
    "potion_small": Item(name="Small Potion", hp=1, description="Restores 1 HP"),
    "potion_large": Item(name="Large Potion", hp=2, description="Restores 2 HP"),
}

COMBAT_NODE_TYPES = frozenset({NodeType.ENEMY, NodeType.BOSS, NodeType.MINIBOSS})


def pick_enemy_template(
    node: MapNode,
    templates: list[EnemyType],
    *,
    is_wildcard: bool,
    roll: int = 0,
) -> EnemyType:
    """Select the enemy template for an encounter.

    Args:
        node: node being fought on
        templates: templates ordered weakest to strongest
        is_wildcard: whether the fight is a wildcard ambush
        roll: random index used for wildcard ambushes

    Returns:
        The chosen template
    """
    if not templates:
        raise ValueError("No enemy templates configured")
    if node.type == NodeType.BOSS:
        return templates[-1]
    if node.type == NodeType.MINIBOSS:
        return templates[-2] if len(templates) > 1 else templates[-1]
    weakest = templates[: min(3, len(templates))]
    if is_wildcard:
        return weakest[roll % len(weakest)]
    return weakest[node.id % len(weakest)]


def qte_speed_for(template: EnemyType, templates: list[EnemyType]) -> float:
    """Cursor speed per frame; the strongest template swings faster."""
    if templates and template == templates[-1] and len(templates) > 1:
        return QTE_SPEED_STRONG
    return QTE_SPEED


def in_target_zone(cursor: float, target_start: float) -> bool:
    return target_start <= cursor <= target_start + QTE_ZONE_WIDTH
