from __future__ import annotations

import json

from codeknight.core.models import NodeStatus
from codeknight.core.rules import ITEMS
from codeknight.core.save import SAVE_KEY, SaveManager
from codeknight.core.session import GameSession
from codeknight.core.sinks import EventBuffer
from codeknight.core.state import GameState
from codeknight.core.world_data import InMemoryWorldSource
from codeknight.server.controller import build_controller
from tests.helpers import (
    ONE_HP,
    answer_correctly,
    build_session,
    build_settings,
    build_world,
    enter_node,
    run_until,
)


def test_save_writes_snapshot_that_loads_back(tmp_path) -> None:
    saves = SaveManager(str(tmp_path / "nested" / "save.json"))
    session, _ = build_session()
    state = session.state
    state.player.hints = 3
    state.unlock_lesson("objects")
    state.set_node_status(1, NodeStatus.COMPLETED)

    assert saves.save(state) is True

    raw = json.loads(saves.save_path.read_text(encoding="utf-8"))
    assert raw["key"] == SAVE_KEY
    data = saves.load()
    assert data.player.hints == 3
    assert data.player.unlocked_lessons == {"objects"}
    assert data.map_snapshot.get_node(1).status is NodeStatus.COMPLETED
    assert data.progression.current_world_id == "world_1"
    assert data.timestamp > 0


def test_unreadable_save_loads_as_none(tmp_path) -> None:
    path = tmp_path / "save.json"
    saves = SaveManager(str(path))
    assert saves.load() is None

    path.write_text("{not json", encoding="utf-8")
    assert saves.load() is None

    path.write_text("[1, 2]", encoding="utf-8")
    assert saves.load() is None


def test_save_failure_returns_false(tmp_path) -> None:
    saves = SaveManager(str(tmp_path))

    assert saves.save(GameState()) is False


def test_clear_removes_the_file(tmp_path) -> None:
    saves = SaveManager(str(tmp_path / "save.json"))
    saves.save(GameState())
    assert saves.has_save()

    assert saves.clear() is True
    assert not saves.has_save()
    assert saves.clear() is True


def test_session_restores_progress_from_autosave(tmp_path) -> None:
    saves = SaveManager(str(tmp_path / "save.json"))
    session, _ = build_session(enemy_types=ONE_HP, saves=saves)
    enter_node(session, 1)
    answer_correctly(session.combat, session.state)
    run_until(session, lambda: session.last_result is not None)

    settings = build_settings(autosave=True)
    events = EventBuffer()
    restored = GameSession(
        settings=settings,
        source=InMemoryWorldSource([build_world()]),
        state=GameState(settings=settings),
        saves=saves,
        presentation=events,
        audio=events,
    )

    assert restored.restore() is True
    state = restored.state
    assert state.player.current_node_id == 1
    assert state.get_node(1).status is NodeStatus.COMPLETED
    assert state.get_node(2).status is NodeStatus.AVAILABLE
    assert [t.id for t in state.active_topics] == ["basics", "objects"]
    assert "render_map" in events.kinds()
    assert restored.map.select_node(2) is not None


def test_session_refuses_to_save_mid_combat(tmp_path) -> None:
    saves = SaveManager(str(tmp_path / "save.json"))
    session, events = build_session(saves=saves)

    assert session.save() is True
    assert "saved" in events.kinds()

    enter_node(session, 1)
    saves.clear()
    assert session.save() is False
    assert not saves.has_save()


def test_save_for_unknown_world_starts_a_clean_run(tmp_path) -> None:
    stale = GameState()
    stale.player.current_hp = 1
    stale.add_item(ITEMS["potion_large"])
    stale.unlock_lesson("objects")
    stale.progression.current_world_id = "world_gone"
    stale.progression.unlocked_worlds.add("world_gone")
    stale.progression.cleared_stages.append("world_gone:3")
    assert SaveManager(str(tmp_path / "save.json")).save(stale)

    controller = build_controller(
        settings=build_settings(save_path=str(tmp_path / "save.json")),
        source=InMemoryWorldSource([build_world()]),
    )

    state = controller.state
    assert state.player.current_hp == 3
    assert state.player.inventory == []
    assert state.player.unlocked_lessons == set()
    assert state.progression.current_world_id == "world_1"
    assert state.progression.unlocked_worlds == {"world_1"}
    assert state.progression.cleared_stages == []
    assert state.current_map.id == "world_1"
