"""Presentation and audio sinks.

The core only ever notifies these; no return value is consulted. The base
classes route every notification through ``emit`` which does nothing, so a
bare instance is a valid silent sink.
"""

from __future__ import annotations

from typing import Any, Optional

from .models import Enemy, Lesson, Player, Question


class PresentationSink:
    """Receives UI notifications from the combat and map layers."""

    def emit(self, kind: str, **payload: Any) -> None:
        return None

    def setup_enemy(self, enemy: Enemy) -> None:
        self.emit("setup_enemy", enemy=enemy.model_dump())

    def update_stats(self, player: Player, enemy: Optional[Enemy]) -> None:
        self.emit(
            "update_stats",
            player_hp=player.current_hp,
            player_max_hp=player.max_hp,
            hints=player.hints,
            enemy_hp=enemy.current_hp if enemy else None,
            enemy_max_hp=enemy.max_hp if enemy else None,
        )

    def set_turn_indicator(self, is_player_turn: bool) -> None:
        self.emit("turn_indicator", is_player_turn=is_player_turn)

    def display_question(self, question: Question) -> None:
        self.emit(
            "display_question",
            id=question.id,
            text=question.text,
            free_text=question.is_free_text,
            answers=[] if question.is_free_text else list(question.answers),
        )

    def update_timer(self, percent: float) -> None:
        self.emit("timer", percent=percent)

    def show_feedback(self, text: str, success: bool) -> None:
        self.emit("feedback", text=text, success=success)

    def remove_wrong_answer(self, index: int) -> None:
        self.emit("remove_answer", index=index)

    def animate_player_attack(self) -> None:
        self.emit("player_attack")

    def animate_enemy_attack(self) -> None:
        self.emit("enemy_attack")

    def shake_enemy(self) -> None:
        self.emit("shake")

    def flash_damage(self) -> None:
        self.emit("flash")

    def show_qte(self, target_start: int) -> None:
        self.emit("qte_start", target_start=target_start)

    def update_qte_cursor(self, position: float) -> None:
        return None

    def hide_qte(self, blocked: bool) -> None:
        self.emit("qte_end", blocked=blocked)

    def hide_combat(self) -> None:
        self.emit("combat_hidden")

    def render_map(self, ranks: list[dict]) -> None:
        self.emit("render_map", ranks=ranks)

    def show_event(self, title: str, icon: str, text: str) -> None:
        self.emit("event_scene", title=title, icon=icon, text=text)

    def hide_event(self) -> None:
        self.emit("event_hidden")

    def show_lesson(self, lesson: Lesson) -> None:
        self.emit("lesson", topic_id=lesson.topic_id, title=lesson.title, pages=lesson.pages)

    def show_journal_page(self, lesson: Lesson, page: int) -> None:
        self.emit(
            "journal_page",
            topic_id=lesson.topic_id,
            title=lesson.title,
            page=page,
            page_count=len(lesson.pages),
            text=lesson.pages[page] if lesson.pages else "",
        )

    def hide_journal(self) -> None:
        self.emit("journal_closed")

    def show_defeat(self) -> None:
        self.emit("defeat")

    def show_run_complete(self) -> None:
        self.emit("run_complete")

    def show_saved(self) -> None:
        self.emit("saved")


class AudioSink:
    """Fire-and-forget sound cues keyed by name."""

    def emit(self, kind: str, **payload: Any) -> None:
        return None

    def play_sfx(self, key: str) -> None:
        self.emit("sfx", key=key)

    def play_bgm(self, key: str) -> None:
        self.emit("bgm", key=key)


class EventBuffer(PresentationSink, AudioSink):
    """Records notifications so the web client can poll them."""

    def __init__(self, limit: int = 500) -> None:
        self.limit = limit
        self.events: list[dict] = []

    def emit(self, kind: str, **payload: Any) -> None:
        event = {"type": kind, **payload}
        # timer updates arrive every frame; only the latest matters
        if kind == "timer" and self.events and self.events[-1]["type"] == "timer":
            self.events[-1] = event
            return
        self.events.append(event)
        if len(self.events) > self.limit:
            del self.events[: len(self.events) - self.limit]

    def drain(self) -> list[dict]:
        events, self.events = self.events, []
        return events

    def kinds(self) -> list[str]:
        return [event["type"] for event in self.events]
