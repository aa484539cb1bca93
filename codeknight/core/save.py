"""Save system.

Reads and writes the player/progression/map snapshot as JSON.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import SaveLoadError
from .models import SaveData
from .state import GameState

logger = logging.getLogger(__name__)

SAVE_KEY = "knight_save_v1"


class SaveManager:
    """JSON file persistence; failures are logged, never raised."""

    def __init__(self, save_path: str) -> None:
        self.save_path = Path(save_path)

    def ensure_save_dir(self) -> None:
        self.save_path.parent.mkdir(parents=True, exist_ok=True)

    def has_save(self) -> bool:
        return self.save_path.exists()

    def save(self, state: GameState) -> bool:
        """Write the current snapshot.

        Returns:
            Whether the save succeeded
        """
        try:
            self._write(state.to_save_data())
        except SaveLoadError as exc:
            logger.error("Save failed: %s", exc)
            return False
        logger.info("Game saved to %s", self.save_path)
        return True

    def load(self) -> Optional[SaveData]:
        """Read the snapshot; None if absent or unreadable."""
        if not self.has_save():
            return None
        try:
            return self._read()
        except SaveLoadError as exc:
            logger.error("Load failed: %s", exc)
            return None

    def clear(self) -> bool:
        try:
            if self.save_path.exists():
                self.save_path.unlink()
            return True
        except OSError as exc:
            logger.error("Failed to delete save: %s", exc)
            return False

    def _write(self, data: SaveData) -> None:
        try:
            self.ensure_save_dir()
            payload = {"key": SAVE_KEY, **data.model_dump(mode="json")}
            with open(self.save_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
        except (OSError, TypeError, ValueError) as exc:
            raise SaveLoadError(str(exc)) from exc

    def _read(self) -> SaveData:
        try:
            with open(self.save_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise SaveLoadError("Save file is not an object")
            data.pop("key", None)
            return SaveData.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise SaveLoadError(str(exc)) from exc
