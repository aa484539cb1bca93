"""World loading and question pool resolution."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import WorldDataError
from .models import MapNode, NodeType, Question
from .state import GameState
from .world_data import WorldSource

logger = logging.getLogger(__name__)


class LevelManager:
    """Installs worlds into the game state and maps nodes to question pools."""

    def __init__(self, state: GameState, source: WorldSource) -> None:
        self.state = state
        self.source = source

    def load_world(self, world_id: str, *, keep_map: bool = False) -> bool:
        """Load a world's map, curriculum and lessons.

        Args:
            world_id: id of the world to install
            keep_map: keep the current map (restoring a saved snapshot)

        Returns:
            False when the world cannot be loaded; state is left untouched
        """
        logger.info("Loading world %s", world_id)
        try:
            world = self.source.load(world_id)
        except WorldDataError as exc:
            logger.error("Failed to load world %s: %s", world_id, exc)
            return False

        if world is None:
            logger.error("Curriculum not found for world %s", world_id)
            return False
        if not any(topic.questions for topic in world.topics):
            logger.error("World %s has an empty curriculum", world_id)
            return False

        if not (keep_map and self.state.current_map is not None):
            self.state.current_map = world.map
            self.state.reset_position()
        self.state.active_topics = world.topics
        self.state.lessons = world.lessons
        self.state.progression.current_world_id = world_id
        self.state.progression.unlocked_worlds.add(world_id)
        return True

    def next_world_id(self) -> Optional[str]:
        """World after the current one, or None at the end of the run."""
        try:
            order = self.source.world_order()
        except WorldDataError as exc:
            logger.error("Cannot read world order: %s", exc)
            return None
        current = self.state.progression.current_world_id
        if current not in order:
            return None
        index = order.index(current)
        return order[index + 1] if index + 1 < len(order) else None

    def get_questions_for_node(self, node: MapNode) -> Optional[List[Question]]:
        """Resolve the question pool for a node.

        Boss nodes drain the whole curriculum; nodes with a topic get that
        topic (or the whole curriculum if the topic is unknown). Returns
        None when the node names no pool.
        """
        if node.type == NodeType.BOSS:
            logger.debug("Boss fight, aggregating all topics")
            return self.state.all_questions()

        if not node.topic_id:
            return None

        for topic in self.state.active_topics:
            if topic.id == node.topic_id:
                return list(topic.questions)

        logger.warning("Topic %s not found, using full pool", node.topic_id)
        return self.state.all_questions()
