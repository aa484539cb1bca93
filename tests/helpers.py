"""Shared builders for the test suite."""
from __future__ import annotations

from typing import Callable, Optional

from codeknight.core.combat import CombatManager
from codeknight.core.models import (
    EnemyType,
    Lesson,
    MapNode,
    NodeStatus,
    NodeType,
    Question,
    Topic,
    WorldData,
    WorldMap,
)
from codeknight.core.rules import FRAME_MS
from codeknight.core.session import GameSession
from codeknight.core.sinks import EventBuffer
from codeknight.core.state import GameState, Settings
from codeknight.core.world_data import InMemoryWorldSource

ONE_HP = [EnemyType(name="Slime", hp=1, icon="fa-droplet")]


def choice(qid: str, correct: int = 0, difficulty: str = "easy") -> Question:
    return Question(
        id=qid,
        text=f"Question {qid}?",
        answers=["A", "B", "C", "D"],
        correct=correct,
        difficulty=difficulty,
    )


def free_text(qid: str, *accepted: str) -> Question:
    return Question(id=qid, text=f"Type {qid}", type="input", accepted_answers=list(accepted))


def node(
    node_id: int,
    node_type: NodeType,
    connections: list[int],
    *,
    status: NodeStatus = NodeStatus.LOCKED,
    topic_id: Optional[str] = None,
) -> MapNode:
    return MapNode(
        id=node_id,
        type=node_type,
        name=f"Node {node_id}",
        description=f"Node {node_id} description",
        topic_id=topic_id,
        connections=connections,
        status=status,
    )


def build_world(world_id: str = "world_1", nodes: Optional[list[MapNode]] = None) -> WorldData:
    """0 start -> 1 enemy -> {2 enemy, 3 item} -> 4 lesson -> 5 wildcard -> 6 miniboss -> 7 boss."""
    if nodes is None:
        nodes = [
            node(0, NodeType.START, [1], status=NodeStatus.COMPLETED),
            node(1, NodeType.ENEMY, [2, 3], status=NodeStatus.UNLOCKED, topic_id="basics"),
            node(2, NodeType.ENEMY, [4], topic_id="objects"),
            node(3, NodeType.ITEM, [4]),
            node(4, NodeType.LESSON, [5], topic_id="objects"),
            node(5, NodeType.WILDCARD, [6]),
            node(6, NodeType.MINIBOSS, [7], topic_id="missing_topic"),
            node(7, NodeType.BOSS, []),
        ]
    topics = [
        Topic(
            id="basics",
            name="Basics",
            questions=[choice("b1", 1), choice("b2", 2), choice("b3", 0), free_text("b4", "Binary")],
        ),
        Topic(
            id="objects",
            name="Objects",
            questions=[choice("o1", 3, "hard"), choice("o2", 0)],
        ),
    ]
    lessons = {
        "objects": Lesson(topic_id="objects", title="Objects 101", pages=["Classes make objects."]),
    }
    return WorldData(
        world_id=world_id,
        map=WorldMap(id=world_id, name=f"World {world_id}", nodes=nodes),
        topics=topics,
        lessons=lessons,
    )


def build_settings(**overrides) -> Settings:
    settings = Settings()
    settings.seed = 7
    settings.autosave = False
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def build_session(
    worlds: Optional[list[WorldData]] = None,
    *,
    enemy_types: Optional[list[EnemyType]] = None,
    saves=None,
    **settings_overrides,
) -> tuple[GameSession, EventBuffer]:
    settings = build_settings(**settings_overrides)
    if saves is not None:
        settings.autosave = True
    events = EventBuffer(limit=100000)
    session = GameSession(
        settings=settings,
        source=InMemoryWorldSource(worlds or [build_world()]),
        state=GameState(settings=settings),
        saves=saves,
        presentation=events,
        audio=events,
        enemy_types=enemy_types,
    )
    assert session.start()
    return session, events


def run_until(session: GameSession, predicate: Callable[[], bool], limit_ms: int = 30000) -> None:
    """Step the session clock frame by frame until ``predicate`` holds."""
    elapsed = 0
    while not predicate():
        if elapsed >= limit_ms:
            raise AssertionError(f"condition not reached within {limit_ms}ms")
        session.advance(FRAME_MS)
        elapsed += FRAME_MS


def answer_correctly(combat: CombatManager, state: GameState) -> bool:
    question = state.current_question
    if question.is_free_text:
        return combat.handle_input_answer(question.accepted_answers[0])
    return combat.handle_answer(question.correct)


def answer_wrongly(combat: CombatManager, state: GameState) -> bool:
    question = state.current_question
    if question.is_free_text:
        return combat.handle_input_answer("definitely not it")
    wrong = next(i for i in range(len(question.answers)) if i != question.correct)
    return combat.handle_answer(wrong)


def enter_node(session: GameSession, node_id: int) -> None:
    assert session.map.select_node(node_id) is not None
    assert session.map.confirm_move()
