"""Map progression: fog-of-war ranks, node moves and node completion."""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Callable, Dict, List, Optional

from .combat import CombatManager, CombatPhase, CombatResult
from .levels import LevelManager
from .models import Lesson, MapNode, NodeStatus, NodeType
from .rng import RNG
from .rules import (
    AMBUSH_CHANCE,
    COMBAT_NODE_TYPES,
    EVENT_INTRO_MS,
    EVENT_OUTRO_MS,
    ITEMS,
    LARGE_POTION_CHANCE,
)
from .save import SaveManager
from .scheduler import Scheduler
from .sinks import AudioSink, PresentationSink
from .state import GameState

logger = logging.getLogger(__name__)

ROOT_NODE_ID = 0
FIRST_NODE_ID = 1
OBSCURED_NAME = "???"


class Visibility(str, Enum):
    VISIBLE = "visible"
    REVEALING = "revealing"
    OBSCURED = "obscured"
    HIDDEN = "hidden"


def compute_ranks(nodes: List[MapNode], root_id: int = ROOT_NODE_ID) -> List[List[MapNode]]:
    """Group nodes by breadth-first depth from the root.

    Nodes unreachable from the root are left out.
    """
    by_id = {node.id: node for node in nodes}
    ranks: List[List[MapNode]] = []
    if root_id not in by_id:
        return ranks

    queue = deque([(root_id, 0)])
    visited = {root_id}
    while queue:
        node_id, depth = queue.popleft()
        node = by_id.get(node_id)
        if node is None:
            continue
        while len(ranks) <= depth:
            ranks.append([])
        ranks[depth].append(node)
        for next_id in node.connections:
            if next_id not in visited:
                visited.add(next_id)
                queue.append((next_id, depth + 1))
    return ranks


def rank_visibility(index: int, current_rank: int, *, reveal: bool) -> Visibility:
    if index <= current_rank:
        return Visibility.VISIBLE
    if index == current_rank + 1:
        return Visibility.REVEALING if reveal else Visibility.VISIBLE
    if index == current_rank + 2:
        return Visibility.OBSCURED
    return Visibility.HIDDEN


class MapProgression:
    """Moves the player across the world DAG and dispatches node encounters."""

    def __init__(
        self,
        state: GameState,
        levels: LevelManager,
        combat: CombatManager,
        scheduler: Scheduler,
        rng: RNG,
        *,
        saves: Optional[SaveManager] = None,
        presentation: Optional[PresentationSink] = None,
        audio: Optional[AudioSink] = None,
    ) -> None:
        self.state = state
        self.levels = levels
        self.combat = combat
        self.scheduler = scheduler
        self.rng = rng
        self.saves = saves
        self.ui = presentation or PresentationSink()
        self.audio = audio or AudioSink()

        self.pending_node_id: Optional[int] = None
        self.lesson_node_id: Optional[int] = None
        self._event_running = False
        self._rendered = False
        self._handlers: Dict[NodeType, Callable[[MapNode], None]] = {
            NodeType.START: self._pass_through,
            NodeType.ITEM: self._run_item_event,
            NodeType.WILDCARD: self._run_wildcard_event,
            NodeType.LESSON: self._open_lesson,
        }
        for node_type in COMBAT_NODE_TYPES:
            self._handlers[node_type] = self._enter_combat

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def ranks(self) -> List[List[MapNode]]:
        if self.state.current_map is None:
            return []
        return compute_ranks(self.state.current_map.nodes)

    def current_rank_index(self, ranks: Optional[List[List[MapNode]]] = None) -> int:
        ranks = self.ranks() if ranks is None else ranks
        current_id = self.state.player.current_node_id
        for index, rank in enumerate(ranks):
            if any(node.id == current_id for node in rank):
                return index
        return 0

    def layout(self, *, first_render: Optional[bool] = None) -> List[dict]:
        """Visible ranks with per-node display data; hidden ranks are omitted."""
        if first_render is None:
            first_render = not self._rendered
        reveal = not first_render and self.state.player.previous_node_id is not None

        ranks = self.ranks()
        current = self.current_rank_index(ranks)
        rows: List[dict] = []
        for index, rank in enumerate(ranks):
            visibility = rank_visibility(index, current, reveal=reveal)
            if visibility is Visibility.HIDDEN:
                continue
            obscured = visibility is Visibility.OBSCURED
            rows.append(
                {
                    "index": index,
                    "visibility": visibility.value,
                    "nodes": [
                        {
                            "id": node.id,
                            "name": OBSCURED_NAME if obscured else node.name,
                            "type": None if obscured else node.type.value,
                            "status": node.status.value,
                            "obscured": obscured,
                            "current": node.id == self.state.player.current_node_id,
                            "clickable": node.status.is_open and not obscured,
                        }
                        for node in rank
                    ],
                }
            )
        return rows

    def render(self) -> List[dict]:
        rows = self.layout()
        self._rendered = True
        self.ui.render_map(rows)
        return rows

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------
    @property
    def busy(self) -> bool:
        """True while an encounter owns the game flow."""
        return (
            self.combat.phase is not CombatPhase.IDLE
            or self._event_running
            or self.lesson_node_id is not None
            or self.state.game_over
            or self.state.run_complete
        )

    def is_legal_move(self, node_id: int) -> bool:
        current = self.state.current_node()
        if self.state.player.current_node_id == ROOT_NODE_ID and node_id == FIRST_NODE_ID:
            return True
        return current is not None and node_id in current.connections

    def can_select(self, node_id: int) -> bool:
        node = self.state.get_node(node_id)
        if node is None or self.busy or not node.status.is_open:
            return False
        if not self.is_legal_move(node_id):
            return False
        rows = self.layout(first_render=False)
        return any(
            entry["id"] == node_id and entry["clickable"] for row in rows for entry in row["nodes"]
        )

    def select_node(self, node_id: int) -> Optional[MapNode]:
        """Open the confirmation scroll for a node; None if not selectable."""
        if not self.can_select(node_id):
            return None
        self.pending_node_id = node_id
        self.audio.play_sfx("sfx_click")
        return self.state.get_node(node_id)

    def cancel_selection(self) -> None:
        self.pending_node_id = None

    def confirm_move(self) -> bool:
        """Travel to the pending node and run its encounter."""
        node_id = self.pending_node_id
        self.pending_node_id = None
        if node_id is None or not self.can_select(node_id):
            return False
        self.proceed_to_node(node_id)
        return True

    def proceed_to_node(self, node_id: int) -> None:
        previous = self.state.current_node()
        if previous is not None:
            for connected_id in previous.connections:
                if connected_id != node_id:
                    self.state.set_node_status(connected_id, NodeStatus.LOCKED)

        self.state.move_to(node_id)
        node = self.state.get_node(node_id)
        logger.info("Moved to node %s (%s)", node.id, node.type.value)
        self._handlers[node.type](node)

    # ------------------------------------------------------------------
    # Node handlers
    # ------------------------------------------------------------------
    def _pass_through(self, node: MapNode) -> None:
        self.complete_node()

    def _enter_combat(self, node: MapNode) -> None:
        self.combat.start_combat(node)

    def _run_item_event(self, node: MapNode) -> None:
        self._begin_event()

        def reveal() -> None:
            key = "potion_large" if self.rng.random() < LARGE_POTION_CHANCE else "potion_small"
            item = ITEMS[key]
            self.state.add_item(item)
            self.ui.show_event("Treasure Found!", "fa-chest", f"You found a {item.name}!")
            self.scheduler.call_later(EVENT_OUTRO_MS, self._finish_event)

        self.scheduler.call_later(EVENT_INTRO_MS, reveal)

    def _run_wildcard_event(self, node: MapNode) -> None:
        self._begin_event()

        def reveal() -> None:
            if self.rng.random() < AMBUSH_CHANCE:
                self.ui.show_event("AMBUSH!", "fa-skull-crossbones", "Prepare to fight!")
                self.scheduler.call_later(EVENT_OUTRO_MS, lambda: self._ambush(node))
            else:
                item = ITEMS["potion_small"]
                self.state.add_item(item)
                self.ui.show_event("Safe Path", "fa-sun", "You find a dropped item.")
                self.scheduler.call_later(EVENT_OUTRO_MS, self._finish_event)

        self.scheduler.call_later(EVENT_INTRO_MS, reveal)

    def _begin_event(self) -> None:
        self._event_running = True
        self.ui.show_event("Exploring...", "fa-shoe-prints", "You venture deeper into the forest...")

    def _finish_event(self) -> None:
        self._event_running = False
        self.ui.hide_event()
        self.complete_node()

    def _ambush(self, node: MapNode) -> None:
        self._event_running = False
        self.ui.hide_event()
        self.combat.start_combat(node, is_wildcard=True)

    def _open_lesson(self, node: MapNode) -> None:
        topic_id = node.topic_id or f"node_{node.id}"
        lesson = self.state.lessons.get(topic_id)
        if lesson is None:
            logger.warning("No lesson for topic %s", topic_id)
            lesson = Lesson(topic_id=topic_id, title=node.name, pages=[node.description])
        self.state.unlock_lesson(topic_id)
        self.lesson_node_id = node.id
        self.audio.play_sfx("sfx_journal_open")
        self.ui.show_lesson(lesson)

    def acknowledge_lesson(self) -> bool:
        if self.lesson_node_id is None:
            return False
        self.lesson_node_id = None
        self.audio.play_sfx("sfx_journal_close")
        self.complete_node()
        return True

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------
    def on_combat_finished(self, result: CombatResult) -> None:
        if result is CombatResult.VICTORY:
            self.complete_node()
        else:
            self.state.game_over = True
            self.ui.show_defeat()

    def complete_node(self) -> None:
        node = self.state.current_node()
        if node is None:
            logger.error("Current node %s not on the map", self.state.player.current_node_id)
            return

        node.status = NodeStatus.COMPLETED
        for next_id in node.connections:
            self.state.set_node_status(next_id, NodeStatus.AVAILABLE)
        self.state.progression.cleared_stages.append(
            f"{self.state.progression.current_world_id}:{node.id}"
        )

        if node.type == NodeType.BOSS:
            self._advance_world()

        if self.saves is not None and self.saves.save(self.state):
            self.ui.show_saved()

        if self.state.run_complete:
            self.ui.show_run_complete()
        else:
            self.render()

    def _advance_world(self) -> None:
        next_id = self.levels.next_world_id()
        if next_id is None:
            logger.info("Final world cleared")
            self.state.run_complete = True
            return
        if self.levels.load_world(next_id):
            self._rendered = False
        else:
            logger.error("Could not enter world %s, ending the run", next_id)
            self.state.run_complete = True

