"""Lesson journal: unlocked lessons can be reopened and paged through."""

from __future__ import annotations

import logging
from typing import List, Optional

from .models import Lesson
from .sinks import AudioSink, PresentationSink
from .state import GameState

logger = logging.getLogger(__name__)


class Journal:
    """Browses the lessons the player has unlocked."""

    def __init__(
        self,
        state: GameState,
        *,
        presentation: Optional[PresentationSink] = None,
        audio: Optional[AudioSink] = None,
    ) -> None:
        self.state = state
        self.ui = presentation or PresentationSink()
        self.audio = audio or AudioSink()
        self.open_topic_id: Optional[str] = None
        self.page = 0

    def entries(self) -> List[Lesson]:
        """Unlocked lessons known to the current world, ordered by topic id."""
        return [
            self.state.lessons[topic_id]
            for topic_id in sorted(self.state.player.unlocked_lessons)
            if topic_id in self.state.lessons
        ]

    @property
    def current(self) -> Optional[Lesson]:
        if self.open_topic_id is None:
            return None
        return self.state.lessons.get(self.open_topic_id)

    def open(self, topic_id: str) -> Optional[Lesson]:
        """Open an unlocked lesson at its first page; None if not unlocked."""
        if topic_id not in self.state.player.unlocked_lessons:
            return None
        lesson = self.state.lessons.get(topic_id)
        if lesson is None:
            logger.warning("Unlocked lesson %s is not in the current world", topic_id)
            return None
        self.open_topic_id = topic_id
        self.page = 0
        self.audio.play_sfx("sfx_journal_open")
        self.ui.show_journal_page(lesson, self.page)
        return lesson

    def flip(self, delta: int) -> bool:
        """Turn ``delta`` pages; refused past either end of the lesson."""
        lesson = self.current
        if lesson is None:
            return False
        target = self.page + delta
        if delta == 0 or not 0 <= target < len(lesson.pages):
            return False
        self.page = target
        self.audio.play_sfx("sfx_journal_flip")
        self.ui.show_journal_page(lesson, self.page)
        return True

    def close(self) -> bool:
        if self.open_topic_id is None:
            return False
        self.open_topic_id = None
        self.page = 0
        self.audio.play_sfx("sfx_journal_close")
        self.ui.hide_journal()
        return True
