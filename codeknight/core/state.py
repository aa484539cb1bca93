"""Global game state management."""

from __future__ import annotations

import time
from typing import Optional

from .models import (
    Enemy,
    Item,
    Lesson,
    MapNode,
    NodeStatus,
    Player,
    Progression,
    Question,
    SaveData,
    Topic,
    WorldMap,
)


class GameState:
    """Holds the full game state.

    Components receive the same instance and mutate it only through the
    methods below so hp bounds and node status rules stay in one place.
    """

    def __init__(self, save_data: Optional[SaveData] = None, *, settings: Optional["Settings"] = None):
        if save_data:
            self.player = save_data.player
            self.progression = save_data.progression
            self.current_map: Optional[WorldMap] = save_data.map_snapshot
        else:
            settings = settings or Settings()
            self.player = Player(
                max_hp=settings.max_hp,
                current_hp=settings.max_hp,
                hints=settings.start_hints,
                max_hints=settings.max_hints,
            )
            self.progression = Progression(
                current_world_id=settings.start_world,
                unlocked_worlds={settings.start_world},
            )
            self.current_map = None

        # world content
        self.active_topics: list[Topic] = []
        self.lessons: dict[str, Lesson] = {}

        # runtime state
        self.enemy: Optional[Enemy] = None
        self.current_topic_questions: list[Question] = []
        self.current_question: Optional[Question] = None
        self.disabled_options: set[int] = set()
        self.is_player_turn = False
        self.is_qte_active = False
        self.game_over = False
        self.run_complete = False

    # ------------------------------------------------------------------
    # Player
    # ------------------------------------------------------------------
    def damage_player(self, amount: int) -> int:
        """Subtract hp; not floored, the defeat check handles <= 0."""
        self.player.current_hp -= max(0, amount)
        return self.player.current_hp

    def heal_player(self, amount: int) -> int:
        self.player.current_hp = min(self.player.max_hp, self.player.current_hp + max(0, amount))
        return self.player.current_hp

    def is_player_alive(self) -> bool:
        return self.player.current_hp > 0

    def spend_hint(self) -> bool:
        if self.player.hints <= 0:
            return False
        self.player.hints -= 1
        return True

    def add_item(self, item: Item) -> None:
        self.player.inventory.append(item.model_copy())

    def use_item(self, index: int) -> Optional[Item]:
        """Consume a potion; refused when hp is full or index is bad."""
        if not 0 <= index < len(self.player.inventory):
            return None
        if self.player.current_hp >= self.player.max_hp:
            return None
        item = self.player.inventory.pop(index)
        self.heal_player(item.hp)
        return item

    def unlock_lesson(self, topic_id: str) -> bool:
        if topic_id in self.player.unlocked_lessons:
            return False
        self.player.unlocked_lessons.add(topic_id)
        return True

    # ------------------------------------------------------------------
    # Enemy
    # ------------------------------------------------------------------
    def damage_enemy(self, amount: int = 1) -> int:
        if self.enemy is None:
            raise ValueError("No enemy in play")
        self.enemy.current_hp -= max(0, amount)
        return self.enemy.current_hp

    def is_enemy_defeated(self) -> bool:
        return self.enemy is not None and self.enemy.current_hp <= 0

    # ------------------------------------------------------------------
    # Map
    # ------------------------------------------------------------------
    def get_node(self, node_id: int) -> Optional[MapNode]:
        if self.current_map is None:
            return None
        return self.current_map.get_node(node_id)

    def current_node(self) -> Optional[MapNode]:
        return self.get_node(self.player.current_node_id)

    def set_node_status(self, node_id: int, status: NodeStatus) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node.status = status
        return True

    def move_to(self, node_id: int) -> None:
        self.player.previous_node_id = self.player.current_node_id
        self.player.current_node_id = node_id

    def reset_position(self) -> None:
        self.player.current_node_id = 0
        self.player.previous_node_id = None

    def all_questions(self) -> list[Question]:
        return [q for topic in self.active_topics for q in topic.questions]

    def to_save_data(self) -> SaveData:
        return SaveData(
            player=self.player.model_copy(deep=True),
            progression=self.progression.model_copy(deep=True),
            map_snapshot=self.current_map.model_copy(deep=True) if self.current_map else None,
            timestamp=time.time(),
        )


class Settings:
    """Game settings."""

    def __init__(self):
        # Game
        self.title = "Code Knight"
        self.start_world = "world_1"
        self.data_dir: Optional[str] = None
        self.seed: Optional[int] = None
        self.turn_time_limit_ms = 15000
        self.qte_timeout_ms = 6000
        self.max_hp = 3
        self.start_hints = 1
        self.max_hints = 5

        # Save
        self.save_path = "./save/knight_save_v1.json"
        self.autosave = True

        # Web server
        self.server_host = "127.0.0.1"
        self.server_port = 8000
        self.auto_open_browser = False
        self.static_root = "./web"

        # Logging
        self.log_level = "INFO"

    def load_from_dict(self, config: dict) -> None:
        if "game" in config:
            g = config["game"] or {}
            self.title = g.get("title", self.title)
            self.start_world = g.get("start_world", self.start_world)
            self.data_dir = g.get("data_dir", self.data_dir)
            self.seed = g.get("seed", self.seed)
            self.turn_time_limit_ms = int(g.get("turn_time_limit_ms", self.turn_time_limit_ms))
            self.qte_timeout_ms = int(g.get("qte_timeout_ms", self.qte_timeout_ms))
            self.max_hp = int(g.get("max_hp", self.max_hp))
            self.start_hints = int(g.get("start_hints", self.start_hints))
            self.max_hints = int(g.get("max_hints", self.max_hints))

        if "save" in config:
            s = config["save"] or {}
            self.save_path = s.get("path", self.save_path)
            self.autosave = bool(s.get("autosave", self.autosave))

        if "server" in config:
            srv = config["server"] or {}
            self.server_host = srv.get("host", self.server_host)
            self.server_port = int(srv.get("port", self.server_port))
            self.auto_open_browser = srv.get("auto_open_browser", self.auto_open_browser)
            self.static_root = srv.get("static_root", self.static_root)

        if "logging" in config:
            lg = config["logging"] or {}
            self.log_level = str(lg.get("level", self.log_level)).upper()
