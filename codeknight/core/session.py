"""Game session: wires the state store, scheduler and components together."""

from __future__ import annotations

import logging
from typing import List, Optional

from .combat import CombatManager, CombatResult
from .journal import Journal
from .levels import LevelManager
from .map import MapProgression
from .models import EnemyType
from .rng import RNG
from .save import SaveManager
from .scheduler import Scheduler
from .sinks import AudioSink, PresentationSink
from .state import GameState, Settings
from .world_data import WorldSource

logger = logging.getLogger(__name__)


class GameSession:
    """One run of the game.

    ``tick``/``advance`` move the clock and hand terminal combat results to
    the map layer; combat UI is torn down only after that hand-off.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        source: WorldSource,
        state: Optional[GameState] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[RNG] = None,
        saves: Optional[SaveManager] = None,
        presentation: Optional[PresentationSink] = None,
        audio: Optional[AudioSink] = None,
        enemy_types: Optional[List[EnemyType]] = None,
    ) -> None:
        self.settings = settings
        self.state = state or GameState(settings=settings)
        self.scheduler = scheduler or Scheduler()
        self.rng = rng or RNG(settings.seed)
        self.saves = saves
        self.ui = presentation or PresentationSink()
        self.audio = audio or AudioSink()

        self.levels = LevelManager(self.state, source)
        self.combat = CombatManager(
            self.state,
            self.levels,
            self.scheduler,
            self.rng,
            presentation=self.ui,
            audio=self.audio,
            enemy_types=enemy_types,
            turn_time_limit_ms=settings.turn_time_limit_ms,
            qte_timeout_ms=settings.qte_timeout_ms,
        )
        self.map = MapProgression(
            self.state,
            self.levels,
            self.combat,
            self.scheduler,
            self.rng,
            saves=saves if settings.autosave else None,
            presentation=self.ui,
            audio=self.audio,
        )
        self.journal = Journal(self.state, presentation=self.ui, audio=self.audio)
        self.last_result: Optional[CombatResult] = None

    def start(self, world_id: Optional[str] = None) -> bool:
        """Load the starting world and draw the map."""
        if not self.levels.load_world(world_id or self.settings.start_world):
            return False
        self.audio.play_bgm("bgm_forest")
        self.map.render()
        return True

    def restore(self) -> bool:
        """Resume from the save snapshot; False when there is nothing usable."""
        if self.saves is None:
            return False
        data = self.saves.load()
        if data is None:
            return False

        previous = (self.state.player, self.state.progression, self.state.current_map)
        self.state.player = data.player
        self.state.progression = data.progression
        self.state.current_map = data.map_snapshot
        if not self.levels.load_world(data.progression.current_world_id, keep_map=True):
            self.state.player, self.state.progression, self.state.current_map = previous
            logger.warning(
                "Save names world %s which cannot be loaded, ignoring it",
                data.progression.current_world_id,
            )
            return False
        self.audio.play_bgm("bgm_forest")
        self.map.render()
        return True

    def save(self) -> bool:
        """Explicit save point; refused mid-combat."""
        if self.saves is None or self.combat.in_combat:
            return False
        if self.saves.save(self.state):
            self.ui.show_saved()
            return True
        return False

    def advance(self, ms: int) -> None:
        self.scheduler.advance(ms)
        self._collect_combat_result()

    def tick(self) -> None:
        self.scheduler.pump()
        self._collect_combat_result()

    def _collect_combat_result(self) -> None:
        result = self.combat.poll_result()
        if result is None:
            return
        self.last_result = result
        self.map.on_combat_finished(result)
        self.combat.cleanup()
