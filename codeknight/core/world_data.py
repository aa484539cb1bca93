"""World data loader.

Reads maps.json, questions.json and lessons.json from a data directory
(defaults to the bundled ``codeknight/data``).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .errors import WorldDataError
from .models import Lesson, Topic, WorldData, WorldMap

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class WorldSource:
    """Interface for anything that can produce world bundles."""

    def load(self, world_id: str) -> Optional[WorldData]:
        """Return the world bundle, or None if no curriculum matches."""
        raise NotImplementedError

    def world_order(self) -> List[str]:
        raise NotImplementedError


class JsonWorldSource(WorldSource):
    """World source backed by the JSON files on disk."""

    def __init__(self, data_dir: Optional[str] = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR

    def _read(self, name: str) -> Dict[str, Any]:
        path = self.data_dir / name
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise WorldDataError(f"Cannot read {path}: {exc}") from exc

    def world_order(self) -> List[str]:
        maps = self._read("maps.json")
        return list(maps.get("world_order") or maps.get("worlds", {}).keys())

    def load(self, world_id: str) -> Optional[WorldData]:
        maps = self._read("maps.json")
        questions = self._read("questions.json")
        lessons = self._read("lessons.json")

        curriculum = next(
            (c for c in questions.get("curriculum", []) if c.get("world_id") == world_id),
            None,
        )
        map_data = maps.get("worlds", {}).get(world_id)
        if curriculum is None or map_data is None:
            return None

        try:
            world_map = WorldMap(id=world_id, **map_data)
            topics = [Topic.model_validate(t) for t in curriculum.get("topics", [])]
            lesson_map = {
                topic_id: Lesson(topic_id=topic_id, **entry)
                for topic_id, entry in lessons.get("lessons", {}).items()
            }
        except (ValidationError, TypeError) as exc:
            raise WorldDataError(f"Malformed data for {world_id}: {exc}") from exc

        return WorldData(world_id=world_id, map=world_map, topics=topics, lessons=lesson_map)


class InMemoryWorldSource(WorldSource):
    """World source over already-built bundles."""

    def __init__(self, worlds: List[WorldData]) -> None:
        self._worlds = {w.world_id: w for w in worlds}
        self._order = [w.world_id for w in worlds]

    def world_order(self) -> List[str]:
        return list(self._order)

    def load(self, world_id: str) -> Optional[WorldData]:
        world = self._worlds.get(world_id)
        return world.model_copy(deep=True) if world else None
