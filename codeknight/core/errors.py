"""Core exceptions."""


class WorldDataError(Exception):
    """Raised when world data files are missing or malformed."""


class SaveLoadError(Exception):
    """Raised when a save snapshot cannot be written or read."""


class InvalidMoveError(ValueError):
    """Raised when a map move is requested for an unreachable node."""
