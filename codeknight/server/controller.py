"""Game backend controller.

Owns the game session, pumps its clock on every request and serializes
state for the web layer.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..core.combat import CombatPhase
from ..core.errors import InvalidMoveError
from ..core.save import SaveManager
from ..core.session import GameSession
from ..core.sinks import EventBuffer
from ..core.state import GameState, Settings
from ..core.world_data import WorldSource

logger = logging.getLogger(__name__)


class GameController:
    """Wrap game flow and provide data to the web layer."""

    def __init__(
        self,
        *,
        settings: Settings,
        source: WorldSource,
        saves: SaveManager,
        resume: bool = True,
    ) -> None:
        self.settings = settings
        self.source = source
        self.saves = saves
        self.events = EventBuffer()
        self._lock = threading.Lock()
        self.session = self._new_session()

        restored = resume and self.saves.has_save() and self.session.restore()
        if restored:
            logger.info("Save restored (world %s)", self.session.state.progression.current_world_id)
        elif not self.session.start():
            raise RuntimeError(f"Cannot load start world {settings.start_world}")

    def _new_session(self) -> GameSession:
        return GameSession(
            settings=self.settings,
            source=self.source,
            state=GameState(settings=self.settings),
            saves=self.saves,
            presentation=self.events,
            audio=self.events,
        )

    @property
    def state(self) -> GameState:
        return self.session.state

    # ------------------------------------------------------------------
    # Public accessors
    # ------------------------------------------------------------------
    def get_state_payload(self) -> dict:
        """State payload for HUD/UI."""
        with self._lock:
            self.session.tick()
            return self._state_payload()

    def get_map_payload(self) -> dict:
        with self._lock:
            self.session.tick()
            return self._map_payload()

    def get_combat_payload(self) -> dict:
        with self._lock:
            self.session.tick()
            return self._combat_payload()

    def drain_events(self) -> dict:
        with self._lock:
            self.session.tick()
            return {"events": self.events.drain(), "state": self._state_payload()}

    # ------------------------------------------------------------------
    # Map actions
    # ------------------------------------------------------------------
    def select_node(self, node_id: int) -> dict:
        with self._lock:
            self.session.tick()
            node = self.session.map.select_node(node_id)
            if node is None:
                raise InvalidMoveError(f"Node {node_id} cannot be selected")
            return {
                "id": node.id,
                "name": node.name,
                "description": node.description or "The path ahead is unclear...",
            }

    def cancel_selection(self) -> dict:
        with self._lock:
            self.session.map.cancel_selection()
            return {"ok": True}

    def confirm_move(self) -> dict:
        with self._lock:
            self.session.tick()
            if not self.session.map.confirm_move():
                raise InvalidMoveError("No valid node selected")
            return self._state_payload()

    def acknowledge_lesson(self) -> dict:
        with self._lock:
            self.session.tick()
            if not self.session.map.acknowledge_lesson():
                raise ValueError("No lesson is open")
            return self._state_payload()

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------
    def get_journal_payload(self) -> dict:
        with self._lock:
            self.session.tick()
            return self._journal_payload()

    def open_journal(self, topic_id: str) -> dict:
        with self._lock:
            self.session.tick()
            if self.session.combat.in_combat:
                raise ValueError("The journal cannot be read during combat")
            if self.session.journal.open(topic_id) is None:
                raise ValueError(f"Lesson {topic_id} is not unlocked")
            return self._journal_payload()

    def flip_journal(self, delta: int) -> dict:
        with self._lock:
            self.session.tick()
            journal = self.session.journal
            if journal.current is None:
                raise ValueError("The journal is closed")
            flipped = journal.flip(delta)
            return {"flipped": flipped, **self._journal_payload()}

    def close_journal(self) -> dict:
        with self._lock:
            self.session.tick()
            return {"closed": self.session.journal.close(), **self._journal_payload()}

    def use_item(self, index: int) -> dict:
        with self._lock:
            self.session.tick()
            if self.session.combat.phase in (CombatPhase.ENEMY_TURN, CombatPhase.QTE):
                raise ValueError("Items cannot be used during the enemy turn")
            item = self.state.use_item(index)
            if item is None:
                return {"used": False, "state": self._state_payload()}
            self.events.update_stats(self.state.player, self.state.enemy)
            return {"used": True, "item": item.model_dump(), "state": self._state_payload()}

    def save(self) -> dict:
        with self._lock:
            self.session.tick()
            return {"saved": self.session.save()}

    def restart_game(self) -> dict:
        with self._lock:
            self.session.scheduler.clear()
            self.saves.clear()
            self.events.drain()
            self.session = self._new_session()
            if not self.session.start():
                raise RuntimeError(f"Cannot load start world {self.settings.start_world}")
            return self._state_payload()

    # ------------------------------------------------------------------
    # Combat actions
    # ------------------------------------------------------------------
    def answer(self, index: int) -> dict:
        with self._lock:
            self.session.tick()
            self._require_combat()
            accepted = self.session.combat.handle_answer(index)
            return {"accepted": accepted, "combat": self._combat_payload()}

    def submit_text(self, text: str) -> dict:
        with self._lock:
            self.session.tick()
            self._require_combat()
            accepted = self.session.combat.handle_input_answer(text)
            return {"accepted": accepted, "combat": self._combat_payload()}

    def use_hint(self) -> dict:
        with self._lock:
            self.session.tick()
            self._require_combat()
            used = self.session.combat.use_hint()
            return {"used": used, "combat": self._combat_payload()}

    def resolve_qte(self) -> dict:
        with self._lock:
            self.session.tick()
            self._require_combat()
            outcome = self.session.combat.resolve_qte()
            return {
                "resolved": outcome is not None,
                "blocked": outcome.blocked if outcome else None,
                "cursor": outcome.cursor if outcome else None,
                "combat": self._combat_payload(),
            }

    def _require_combat(self) -> None:
        if not self.session.combat.in_combat:
            raise ValueError("No combat in progress")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def _state_payload(self) -> dict:
        player = self.state.player
        return {
            "title": self.settings.title,
            "world_id": self.state.progression.current_world_id,
            "world_name": self.state.current_map.name if self.state.current_map else None,
            "player": player.model_dump(mode="json"),
            "progression": self.state.progression.model_dump(mode="json"),
            "pending_node_id": self.session.map.pending_node_id,
            "lesson_node_id": self.session.map.lesson_node_id,
            "combat_phase": self.session.combat.phase.value,
            "last_result": self.session.last_result.value if self.session.last_result else None,
            "game_over": self.state.game_over,
            "run_complete": self.state.run_complete,
        }

    def _journal_payload(self) -> dict:
        journal = self.session.journal
        lesson = journal.current
        return {
            "entries": [
                {"topic_id": entry.topic_id, "title": entry.title, "pages": len(entry.pages)}
                for entry in journal.entries()
            ],
            "open": {
                "topic_id": lesson.topic_id,
                "title": lesson.title,
                "page": journal.page,
                "page_count": len(lesson.pages),
                "text": lesson.pages[journal.page] if lesson.pages else "",
            }
            if lesson
            else None,
        }

    def _map_payload(self) -> dict:
        return {
            "world_id": self.state.progression.current_world_id,
            "current_node_id": self.state.player.current_node_id,
            "previous_node_id": self.state.player.previous_node_id,
            "ranks": self.session.map.layout(),
        }

    def _combat_payload(self) -> dict:
        combat = self.session.combat
        question = self.state.current_question
        enemy = self.state.enemy
        return {
            "phase": combat.phase.value,
            "is_player_turn": self.state.is_player_turn,
            "is_qte_active": self.state.is_qte_active,
            "enemy": enemy.model_dump() if enemy and combat.in_combat else None,
            "question": {
                "id": question.id,
                "text": question.text,
                "free_text": question.is_free_text,
                "answers": [] if question.is_free_text else question.answers,
                "disabled": sorted(self.state.disabled_options),
            }
            if question and combat.in_combat
            else None,
            "timer_ms": combat.remaining_ms(),
            "qte": {
                "cursor": combat.qte.position,
                "target_start": combat.qte.target_start,
                "target_end": combat.qte.target_end,
            }
            if self.state.is_qte_active
            else None,
        }


def build_controller(
    *,
    settings: Settings,
    source: WorldSource,
    saves: Optional[SaveManager] = None,
    resume: bool = True,
) -> GameController:
    """Factory to build GameController."""
    return GameController(
        settings=settings,
        source=source,
        saves=saves or SaveManager(settings.save_path),
        resume=resume,
    )
