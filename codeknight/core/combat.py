"""Turn-based quiz combat.

Phases run ``IDLE -> PLAYER_TURN -> RESOLVING -> ENEMY_TURN -> QTE ->
QTE_RESOLVING -> PLAYER_TURN`` until the fight ends in ``VICTORY`` or
``DEFEAT``. Every delayed step is a scheduler task stamped with the phase
generation it was created in; entering a new phase cancels outstanding
tasks and bumps the generation so late callbacks do nothing.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from .levels import LevelManager
from .models import Enemy, EnemyType, MapNode, NodeType, Question
from .qte import QTEOutcome, QuickTimeEvent
from .rng import RNG
from .rules import (
    BOSS_HARD_BIAS,
    DELAY_ATTACK_ANIM_MS,
    DELAY_DAMAGE_MS,
    DELAY_ENEMY_WINDUP_MS,
    DELAY_TIMEOUT_SWITCH_MS,
    DELAY_TURN_SWITCH_MS,
    DELAY_VICTORY_EXIT_MS,
    ENEMY_TYPES,
    HARD_DIFFICULTY,
    QTE_SETTLE_MS,
    QTE_TIMEOUT_MS,
    TURN_TIME_LIMIT_MS,
    pick_enemy_template,
    qte_speed_for,
)
from .scheduler import Scheduler, TaskHandle
from .sinks import AudioSink, PresentationSink
from .state import GameState

logger = logging.getLogger(__name__)


class CombatPhase(str, Enum):
    IDLE = "idle"
    PLAYER_TURN = "player_turn"
    RESOLVING = "resolving"
    ENEMY_TURN = "enemy_turn"
    QTE = "qte"
    QTE_RESOLVING = "qte_resolving"
    VICTORY = "victory"
    DEFEAT = "defeat"


class CombatResult(str, Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"


class CombatManager:
    """Battle state machine over the shared game state."""

    def __init__(
        self,
        state: GameState,
        levels: LevelManager,
        scheduler: Scheduler,
        rng: RNG,
        *,
        presentation: Optional[PresentationSink] = None,
        audio: Optional[AudioSink] = None,
        enemy_types: Optional[List[EnemyType]] = None,
        turn_time_limit_ms: int = TURN_TIME_LIMIT_MS,
        qte_timeout_ms: int = QTE_TIMEOUT_MS,
    ) -> None:
        self.state = state
        self.levels = levels
        self.scheduler = scheduler
        self.rng = rng
        self.ui = presentation or PresentationSink()
        self.audio = audio or AudioSink()
        self.enemy_types = list(enemy_types or ENEMY_TYPES)
        self.turn_time_limit_ms = turn_time_limit_ms
        self.qte_timeout_ms = qte_timeout_ms

        self.qte = QuickTimeEvent(rng)
        self.used_question_ids: set = set()
        self.node: Optional[MapNode] = None
        self.is_boss = False

        self._phase = CombatPhase.IDLE
        self._generation = 0
        self._tasks: List[TaskHandle] = []
        self._timer_task: Optional[TaskHandle] = None
        self._qte_task: Optional[TaskHandle] = None
        self._turn_started_ms = 0
        self._pending_result: Optional[CombatResult] = None
        self._speed = 0.0

    # ------------------------------------------------------------------
    # Phase bookkeeping
    # ------------------------------------------------------------------
    @property
    def phase(self) -> CombatPhase:
        return self._phase

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_combat(self) -> bool:
        return self._phase not in (CombatPhase.IDLE, CombatPhase.VICTORY, CombatPhase.DEFEAT)

    def _enter(self, phase: CombatPhase) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        self._generation += 1
        self._phase = phase

    def _guard(self, step: Callable[[], None]) -> Callable[[], None]:
        generation = self._generation

        def run() -> None:
            if generation != self._generation:
                logger.debug("Skipping stale %s (generation %d)", step.__name__, generation)
                return
            step()

        return run

    def _track(self, task: TaskHandle) -> TaskHandle:
        self._tasks = [t for t in self._tasks if t.pending]
        self._tasks.append(task)
        return task

    def _later(self, delay_ms: int, step: Callable[[], None]) -> TaskHandle:
        return self._track(self.scheduler.call_later(delay_ms, self._guard(step)))

    def _next_frame(self, step: Callable[[], None]) -> TaskHandle:
        return self._track(self.scheduler.request_frame(self._guard(step)))

    def _accepting_input(self) -> bool:
        return (
            self._phase is CombatPhase.PLAYER_TURN
            and self.state.is_player_turn
            and not self.state.is_qte_active
        )

    def poll_result(self) -> Optional[CombatResult]:
        """Return the terminal result once, then None."""
        result, self._pending_result = self._pending_result, None
        return result

    # ------------------------------------------------------------------
    # Entry
    # ------------------------------------------------------------------
    def start_combat(self, node: MapNode, is_wildcard: bool = False) -> Enemy:
        self.cleanup(hide=False)
        self.audio.play_bgm("bgm_combat")

        template = pick_enemy_template(
            node,
            self.enemy_types,
            is_wildcard=is_wildcard,
            roll=self.rng.randint(0, 2) if is_wildcard else 0,
        )
        self.state.enemy = Enemy.from_template(template)
        self._speed = qte_speed_for(template, self.enemy_types)
        self.node = node
        self.is_boss = node.type == NodeType.BOSS

        pool = self.levels.get_questions_for_node(node)
        if not pool:
            pool = self.state.all_questions()
        self.state.current_topic_questions = list(pool)
        self.used_question_ids = set()
        self._pending_result = None

        logger.info("Combat at node %s against %s", node.id, template.name)
        self._enter(CombatPhase.PLAYER_TURN)
        self.state.is_player_turn = True
        self.state.is_qte_active = False

        self.ui.setup_enemy(self.state.enemy)
        self.ui.update_stats(self.state.player, self.state.enemy)
        self.ui.set_turn_indicator(True)
        self.generate_new_question()
        return self.state.enemy

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------
    def generate_new_question(self) -> Question:
        questions = self.state.current_topic_questions
        if not questions:
            raise ValueError("No questions available for this combat")

        available = [q for q in questions if q.id not in self.used_question_ids]
        if not available:
            self.used_question_ids.clear()
            available = list(questions)

        selected: Question
        if self.is_boss:
            hard = [q for q in available if q.difficulty == HARD_DIFFICULTY]
            if hard and self.rng.random() < BOSS_HARD_BIAS:
                selected = self.rng.choice(hard)
            else:
                selected = self.rng.choice(available)
        else:
            selected = self.rng.choice(available)

        self.used_question_ids.add(selected.id)
        self.state.current_question = selected
        self.state.disabled_options = set()
        self.ui.display_question(selected)
        self.start_turn_timer()
        return selected

    # ------------------------------------------------------------------
    # Player input
    # ------------------------------------------------------------------
    def handle_answer(self, index: int) -> bool:
        """Multiple-choice answer. Returns False when the input is ignored."""
        question = self.state.current_question
        if not self._accepting_input() or question is None or question.is_free_text:
            return False
        if not 0 <= index < len(question.answers) or index in self.state.disabled_options:
            return False

        self.stop_turn_timer()
        if question.is_correct_choice(index):
            self._process_correct_answer()
        else:
            self._process_wrong_answer()
        return True

    def handle_input_answer(self, text: str) -> bool:
        """Free-text answer. Blank submissions are ignored."""
        question = self.state.current_question
        if not self._accepting_input() or question is None or not question.is_free_text:
            return False
        if not text.strip():
            return False

        self.stop_turn_timer()
        if question.matches_text(text):
            self._process_correct_answer()
        else:
            self._process_wrong_answer()
        return True

    def use_hint(self) -> bool:
        """Disable one random enabled wrong option."""
        question = self.state.current_question
        if not self._accepting_input() or question is None:
            return False
        if self.state.player.hints <= 0:
            self.ui.show_feedback("No Hints!", False)
            return False
        if question.is_free_text:
            self.ui.show_feedback("Cannot hint here!", False)
            return False

        wrong = [
            index
            for index in range(len(question.answers))
            if index != question.correct and index not in self.state.disabled_options
        ]
        if not wrong:
            return False

        removed = self.rng.choice(wrong)
        self.state.disabled_options.add(removed)
        self.state.spend_hint()
        self.ui.remove_wrong_answer(removed)
        self.ui.update_stats(self.state.player, self.state.enemy)
        return True

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def _process_correct_answer(self) -> None:
        self._enter(CombatPhase.RESOLVING)
        self.ui.animate_player_attack()
        self.ui.show_feedback("Correct!", True)
        self.audio.play_sfx("sfx_click")
        self.audio.play_sfx("sfx_attack")
        self._later(DELAY_ATTACK_ANIM_MS, self._land_attack)

    def _process_wrong_answer(self) -> None:
        self._enter(CombatPhase.RESOLVING)
        self.ui.show_feedback("Missed!", False)
        self._later(DELAY_TURN_SWITCH_MS, self._start_enemy_turn)

    def _land_attack(self) -> None:
        self.state.damage_enemy(1)
        self.ui.shake_enemy()
        self.ui.update_stats(self.state.player, self.state.enemy)
        self.check_win_condition()

    def check_win_condition(self) -> bool:
        if self.state.is_enemy_defeated():
            self.stop_turn_timer()
            self._later(DELAY_DAMAGE_MS, self._announce_victory)
            return True
        self._later(DELAY_TURN_SWITCH_MS, self._start_enemy_turn)
        return False

    def _announce_victory(self) -> None:
        self.ui.show_feedback("VICTORY!", True)
        self.audio.play_bgm("bgm_forest")
        # combat UI stays up until the result has been consumed
        self._later(DELAY_VICTORY_EXIT_MS, self._finish_victory)

    def _finish_victory(self) -> None:
        self._finish(CombatResult.VICTORY)

    def _finish(self, result: CombatResult) -> None:
        self._enter(CombatPhase.VICTORY if result is CombatResult.VICTORY else CombatPhase.DEFEAT)
        self.state.is_player_turn = False
        self.state.is_qte_active = False
        self._pending_result = result
        logger.info("Combat ended: %s", result.value)

    # ------------------------------------------------------------------
    # Enemy turn and QTE
    # ------------------------------------------------------------------
    def _start_enemy_turn(self) -> None:
        if self.state.is_enemy_defeated():
            return
        self._enter(CombatPhase.ENEMY_TURN)
        self.state.is_player_turn = False
        self.ui.set_turn_indicator(False)
        self._later(DELAY_ENEMY_WINDUP_MS, self._start_qte)

    def _start_qte(self) -> None:
        self.ui.animate_enemy_attack()
        self._enter(CombatPhase.QTE)
        self.state.is_qte_active = True
        damage = self.state.enemy.damage if self.state.enemy else 1
        target = self.qte.start(speed=self._speed, damage=damage)
        self.ui.show_qte(target)
        self._qte_task = self._next_frame(self._qte_frame)
        if self.qte_timeout_ms > 0:
            self._later(self.qte_timeout_ms, self._qte_timed_out)

    def _qte_frame(self) -> None:
        self.ui.update_qte_cursor(self.qte.step())
        self._qte_task = self._next_frame(self._qte_frame)

    def _qte_timed_out(self) -> None:
        logger.info("QTE timed out, counting as a failed block")
        self._resolve_qte(timed_out=True)

    def resolve_qte(self) -> Optional[QTEOutcome]:
        """Player pressed the block key."""
        if self._phase is not CombatPhase.QTE or not self.state.is_qte_active:
            return None
        return self._resolve_qte(timed_out=False)

    def _resolve_qte(self, *, timed_out: bool) -> QTEOutcome:
        if self._qte_task is not None:
            self._qte_task.cancel()
            self._qte_task = None
        outcome = self.qte.resolve(timed_out=timed_out)
        self.state.is_qte_active = False

        if outcome.blocked:
            self.ui.show_feedback("BLOCKED!", True)
            self.audio.play_sfx("sfx_block")
        else:
            self.ui.show_feedback("TOOK DAMAGE!", False)
            self.audio.play_sfx("sfx_hurt")
            self.ui.flash_damage()
            self.state.damage_player(outcome.damage)
        self.ui.update_stats(self.state.player, self.state.enemy)
        self.ui.hide_qte(outcome.blocked)

        self._enter(CombatPhase.QTE_RESOLVING)
        self._later(QTE_SETTLE_MS, self._after_qte)
        return outcome

    def _after_qte(self) -> None:
        if not self.state.is_player_alive():
            self._finish(CombatResult.DEFEAT)
            return
        self._enter(CombatPhase.PLAYER_TURN)
        self.state.is_player_turn = True
        self.ui.set_turn_indicator(True)
        self.generate_new_question()

    # ------------------------------------------------------------------
    # Turn timer
    # ------------------------------------------------------------------
    def start_turn_timer(self) -> None:
        if not self._accepting_input():
            return
        self.stop_turn_timer(reset_display=False)
        self._turn_started_ms = self.scheduler.now_ms
        self._tick_turn_timer()

    def remaining_ms(self) -> int:
        if self._timer_task is None:
            return self.turn_time_limit_ms
        elapsed = self.scheduler.now_ms - self._turn_started_ms
        return max(0, self.turn_time_limit_ms - elapsed)

    def _tick_turn_timer(self) -> None:
        if not self._accepting_input():
            return
        elapsed = self.scheduler.now_ms - self._turn_started_ms
        remaining = max(0, self.turn_time_limit_ms - elapsed)
        self.ui.update_timer(remaining / self.turn_time_limit_ms * 100)
        if remaining <= 0:
            self._on_time_up()
        else:
            self._timer_task = self._next_frame(self._tick_turn_timer)

    def stop_turn_timer(self, *, reset_display: bool = True) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        if reset_display:
            self.ui.update_timer(100)

    def _on_time_up(self) -> None:
        self.stop_turn_timer(reset_display=False)
        self.ui.show_feedback("TIME'S UP!", False)
        self._enter(CombatPhase.RESOLVING)
        self._later(DELAY_TIMEOUT_SWITCH_MS, self._start_enemy_turn)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def cleanup(self, *, hide: bool = True) -> None:
        """Cancel timers and return to idle; safe to call at any phase."""
        self.stop_turn_timer(reset_display=False)
        if self._qte_task is not None:
            self._qte_task.cancel()
            self._qte_task = None
        self.qte.active = False
        self._enter(CombatPhase.IDLE)
        self.state.is_player_turn = False
        self.state.is_qte_active = False
        if hide:
            self.ui.hide_combat()
