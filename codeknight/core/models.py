"""Data models (Pydantic) for players, maps, questions and saves."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, model_validator


class NodeType(str, Enum):
    """Encounter kind of a map node."""

    START = "start"
    ENEMY = "enemy"
    BOSS = "boss"
    MINIBOSS = "miniboss"
    ITEM = "item"
    WILDCARD = "wildcard"
    LESSON = "lesson"


class NodeStatus(str, Enum):
    """Progress status of a map node."""

    LOCKED = "locked"
    AVAILABLE = "available"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"

    @property
    def is_open(self) -> bool:
        return self in (NodeStatus.AVAILABLE, NodeStatus.UNLOCKED)


class Item(BaseModel):
    """Consumable template; inventory keeps copies."""

    name: str
    hp: int = Field(default=1, ge=0, description="HP restored on use")
    description: str = ""


class EnemyType(BaseModel):
    """Enemy template an encounter is created from."""

    name: str
    hp: int = Field(..., ge=1)
    icon: str = "fa-skull"
    damage: int = Field(default=1, ge=0)


class Enemy(BaseModel):
    """Transient combat opponent, never persisted."""

    name: str = "Enemy"
    max_hp: int = 2
    current_hp: int = 2
    damage: int = Field(default=1, ge=0)
    icon: str = "fa-skull"

    @classmethod
    def from_template(cls, template: EnemyType) -> "Enemy":
        return cls(
            name=template.name,
            max_hp=template.hp,
            current_hp=template.hp,
            damage=template.damage,
            icon=template.icon,
        )


class Player(BaseModel):
    """Player run state."""

    max_hp: int = Field(default=3, ge=1)
    current_hp: int = 3
    inventory: list[Item] = Field(default_factory=list)
    hints: int = Field(default=1, ge=0)
    max_hints: int = Field(default=5, ge=0)
    current_node_id: int = 0
    previous_node_id: Optional[int] = None
    unlocked_lessons: set[str] = Field(default_factory=set)


class Question(BaseModel):
    """Quiz question: multiple choice or free text."""

    id: Union[int, str]
    text: str
    type: str = Field(default="choice", description="'choice' or 'input'")
    answers: list[str] = Field(default_factory=list)
    correct: Optional[int] = None
    accepted_answers: list[str] = Field(default_factory=list)
    difficulty: str = "medium"

    @model_validator(mode="after")
    def _check_answer_shape(self) -> "Question":
        if self.type == "input":
            if not self.accepted_answers:
                raise ValueError(f"Free-text question {self.id} has no accepted answers")
        elif self.type == "choice":
            if self.correct is None or not 0 <= self.correct < len(self.answers):
                raise ValueError(f"Question {self.id} has no valid correct index")
        else:
            raise ValueError(f"Unknown question type: {self.type}")
        return self

    @property
    def is_free_text(self) -> bool:
        return self.type == "input"

    def is_correct_choice(self, index: int) -> bool:
        return not self.is_free_text and index == self.correct

    def matches_text(self, text: str) -> bool:
        """Case-insensitive, whitespace-trimmed membership test."""
        normalized = normalize_answer(text)
        return normalized in {normalize_answer(a) for a in self.accepted_answers}


def normalize_answer(text: str) -> str:
    return text.strip().lower()


class Topic(BaseModel):
    """Question pool tied to a curriculum subject."""

    id: str
    name: str = ""
    questions: list[Question] = Field(default_factory=list)


class Lesson(BaseModel):
    """Lore/lesson entry unlocked by lesson nodes."""

    topic_id: str
    title: str
    pages: list[str] = Field(default_factory=list)


class MapNode(BaseModel):
    """Vertex of the world map DAG."""

    id: int
    type: NodeType
    name: str
    description: str = ""
    topic_id: Optional[str] = None
    difficulty: Optional[str] = None
    connections: list[int] = Field(default_factory=list)
    status: NodeStatus = NodeStatus.LOCKED


class WorldMap(BaseModel):
    """Node graph of one world; node 0 is the root."""

    id: str
    name: str = ""
    background: Optional[str] = None
    nodes: list[MapNode] = Field(default_factory=list)

    def get_node(self, node_id: int) -> Optional[MapNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class WorldData(BaseModel):
    """Everything installed into the game state when a world loads."""

    world_id: str
    map: WorldMap
    topics: list[Topic] = Field(default_factory=list)
    lessons: dict[str, Lesson] = Field(default_factory=dict)


class Progression(BaseModel):
    """World-level progress."""

    current_world_id: str = "world_1"
    unlocked_worlds: set[str] = Field(default_factory=lambda: {"world_1"})
    cleared_stages: list[str] = Field(default_factory=list)


class SaveData(BaseModel):
    """Save data payload."""

    player: Player = Field(default_factory=Player)
    progression: Progression = Field(default_factory=Progression)
    map_snapshot: Optional[WorldMap] = Field(default=None, description="Map with node statuses")
    timestamp: float = Field(default=0.0, description="Unix time of the save")
