from __future__ import annotations

import json

import pytest

from codeknight.core.errors import WorldDataError
from codeknight.core.levels import LevelManager
from codeknight.core.models import NodeStatus, Topic
from codeknight.core.state import GameState
from codeknight.core.world_data import JsonWorldSource, InMemoryWorldSource
from tests.helpers import build_world


def _levels(*worlds) -> LevelManager:
    return LevelManager(GameState(), InMemoryWorldSource(list(worlds) or [build_world()]))


def test_load_world_installs_map_topics_and_lessons() -> None:
    levels = _levels()
    levels.state.player.current_node_id = 5

    assert levels.load_world("world_1") is True

    state = levels.state
    assert state.current_map.id == "world_1"
    assert [t.id for t in state.active_topics] == ["basics", "objects"]
    assert "objects" in state.lessons
    assert state.player.current_node_id == 0
    assert state.progression.current_world_id == "world_1"


def test_failed_load_leaves_state_untouched() -> None:
    empty = build_world("world_empty")
    empty.topics = [Topic(id="nothing")]
    levels = _levels(build_world(), empty)
    assert levels.load_world("world_1")
    current_map = levels.state.current_map

    assert levels.load_world("world_missing") is False
    assert levels.load_world("world_empty") is False

    assert levels.state.current_map is current_map
    assert levels.state.progression.current_world_id == "world_1"


def test_keep_map_preserves_restored_snapshot() -> None:
    levels = _levels()
    assert levels.load_world("world_1")
    levels.state.set_node_status(1, NodeStatus.COMPLETED)
    levels.state.player.current_node_id = 1

    assert levels.load_world("world_1", keep_map=True)

    assert levels.state.get_node(1).status is NodeStatus.COMPLETED
    assert levels.state.player.current_node_id == 1


def test_question_pool_per_node_type() -> None:
    levels = _levels()
    assert levels.load_world("world_1")
    state = levels.state

    assert len(levels.get_questions_for_node(state.get_node(7))) == 6
    assert [q.id for q in levels.get_questions_for_node(state.get_node(1))] == ["b1", "b2", "b3", "b4"]
    assert len(levels.get_questions_for_node(state.get_node(6))) == 6
    assert levels.get_questions_for_node(state.get_node(3)) is None


def test_next_world_follows_declared_order() -> None:
    levels = _levels(build_world("world_1"), build_world("world_2"))
    assert levels.load_world("world_1")
    assert levels.next_world_id() == "world_2"

    assert levels.load_world("world_2")
    assert levels.next_world_id() is None


def test_bundled_data_loads_both_worlds() -> None:
    source = JsonWorldSource()
    levels = LevelManager(GameState(), source)

    assert source.world_order() == ["world_1", "world_2"]
    assert levels.load_world("world_1")
    assert len(levels.state.current_map.nodes) == 9
    assert levels.state.get_node(0).status is NodeStatus.COMPLETED
    assert levels.state.all_questions()
    assert levels.load_world("world_2")
    assert levels.state.current_map.name == "The Sunken Caves"


def test_missing_data_dir_raises_and_load_world_fails(tmp_path) -> None:
    source = JsonWorldSource(str(tmp_path))

    with pytest.raises(WorldDataError):
        source.load("world_1")
    assert LevelManager(GameState(), source).load_world("world_1") is False


def test_malformed_question_is_reported(tmp_path) -> None:
    (tmp_path / "maps.json").write_text(
        json.dumps({"worlds": {"w": {"nodes": [{"id": 0, "type": "start", "name": "S"}]}}}),
        encoding="utf-8",
    )
    (tmp_path / "questions.json").write_text(
        json.dumps(
            {
                "curriculum": [
                    {
                        "world_id": "w",
                        "topics": [{"id": "t", "questions": [{"id": 1, "text": "?", "answers": ["a"]}]}],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "lessons.json").write_text("{}", encoding="utf-8")
    source = JsonWorldSource(str(tmp_path))

    with pytest.raises(WorldDataError):
        source.load("w")
    assert source.load("other") is None
    assert source.world_order() == ["w"]
